"""Daily selection engine.

Decides whether a pick, an un-pick or a collection is legal right now and
applies it to the store. Business rule violations come back as
:class:`Rejection` values inside an :class:`Outcome`; the only thing that
turns into ``store_error`` is a :class:`~mealpick.db.StoreUnavailable` raised
by a repository.

Order of checks for ``select``:
1. deadline window for (role, day offset) at ``now``
2. geofence, only for worker same-day picks and only when enabled
3. the date's menu and the meal on it
4. atomic upsert
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal

from .config import Config
from .db import StoreUnavailable
from .deadline import TODAY, DeadlineClock
from .food_status_repo import FoodStatusRepo
from .geo import GeoReading, SiteFence, is_on_site
from .menu_repo import MenuRepo
from .metrics import increment
from .notifications import SELECTION_CONFIRMED, notify
from .roles import DISTRIBUTION_ROLES, ActingUser
from .selection_repo import SelectionRecord, SelectionRepo

logger = logging.getLogger(__name__)

RejectionKind = Literal[
    "deadline_passed",
    "out_of_range",
    "stale_location",
    "low_accuracy",
    "location_required",
    "menu_not_found",
    "meal_not_on_menu",
    "not_permitted",
    "selection_not_found",
    "store_error",
]

# Transient location problems: re-acquire a fix and retry
RETRYABLE_KINDS: frozenset[str] = frozenset({"stale_location", "low_accuracy", "location_required", "out_of_range"})


@dataclass(frozen=True)
class Rejection:
    kind: RejectionKind
    detail: str
    distance_m: float | None = None

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


@dataclass(frozen=True)
class Outcome:
    selection: SelectionRecord | None = None
    rejection: Rejection | None = None
    removed: bool = False

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @property
    def is_infrastructure(self) -> bool:
        return self.rejection is not None and self.rejection.kind == "store_error"


def _reject(kind: RejectionKind, detail: str, distance_m: float | None = None) -> Outcome:
    increment("selection.rejected", {"kind": kind})
    return Outcome(rejection=Rejection(kind, detail, distance_m))


class SelectionService:
    def __init__(
        self,
        clock: DeadlineClock | None = None,
        fence: SiteFence | None = None,
        geofencing_enabled: bool = False,
        selections: SelectionRepo | None = None,
        menus: MenuRepo | None = None,
        food_status: FoodStatusRepo | None = None,
    ) -> None:
        if geofencing_enabled and fence is None:
            raise ValueError("geofencing enabled without a site fence")
        self.clock = clock or DeadlineClock()
        self.fence = fence
        self.geofencing_enabled = geofencing_enabled
        self.selections = selections or SelectionRepo()
        self.menus = menus or MenuRepo()
        self.food_status = food_status or FoodStatusRepo()

    @classmethod
    def from_config(cls, cfg: Config) -> SelectionService:
        return cls(
            clock=DeadlineClock.from_config(cfg),
            fence=SiteFence.from_config(cfg),
            geofencing_enabled=cfg.geofencing_enabled,
        )

    # --- gates ---
    def _window_gate(self, user: ActingUser, day: date, day_offset: int, now: datetime) -> Outcome | None:
        if user.role not in ("worker", "admin"):
            return _reject("not_permitted", f"role {user.role} cannot change meal selections")
        actual = self.clock.day_offset(day, now)
        if actual != day_offset:
            return _reject("deadline_passed", f"{day.isoformat()} is not day offset {day_offset} at {now.isoformat()}")
        if not self.clock.is_selection_allowed(user.role, day_offset, now):
            closes = self.clock.closes_at(day, day_offset) if day_offset in (0, 1) else None
            detail = f"selection closed at {closes.strftime('%H:%M')}" if closes else "no selection window for this date"
            return _reject("deadline_passed", detail)
        return None

    def _geo_gate(self, user: ActingUser, day_offset: int, reading: GeoReading | None) -> Outcome | None:
        if not self.geofencing_enabled or day_offset != TODAY or user.role != "worker":
            return None
        if reading is None:
            return _reject("location_required", "a location fix is required for same-day selection")
        if self.fence is None:
            raise RuntimeError("geofencing enabled without a site fence")
        check = is_on_site(reading, self.fence)
        if not check.allowed:
            return _reject(check.reason or "out_of_range", check.detail, check.distance_m)
        return None

    # --- operations ---
    def select(
        self,
        user: ActingUser,
        day: date,
        day_offset: int,
        meal_id: str,
        now: datetime,
        geo_reading: GeoReading | None = None,
    ) -> Outcome:
        rejected = self._window_gate(user, day, day_offset, now) or self._geo_gate(user, day_offset, geo_reading)
        if rejected:
            return rejected
        try:
            menu = self.menus.get_menu(day)
            if menu is None:
                return _reject("menu_not_found", f"no menu configured for {day.isoformat()}")
            meal = menu.find_meal(meal_id)
            if meal is None:
                return _reject("meal_not_on_menu", f"meal {meal_id} is not on the menu for {day.isoformat()}")
            record = self.selections.upsert_selection(user.id, day, meal.id, meal.name, self.clock.local(now))
        except StoreUnavailable as exc:
            logger.warning("select failed for user=%s date=%s: %s", user.id, day, exc)
            return _reject("store_error", str(exc))
        increment("selection.accepted", {"day_offset": str(day_offset)})
        notify(
            SELECTION_CONFIRMED,
            user.id,
            f"{meal.name} selected for {day.isoformat()}",
            {"date": day.isoformat(), "meal_id": meal.id},
        )
        logger.info("selection user=%s date=%s meal=%s", user.id, day, meal.id)
        return Outcome(selection=record)

    def deselect(self, user: ActingUser, day: date, day_offset: int, now: datetime) -> Outcome:
        rejected = self._window_gate(user, day, day_offset, now)
        if rejected:
            return rejected
        try:
            removed = self.selections.delete_selection(user.id, day)
        except StoreUnavailable as exc:
            logger.warning("deselect failed for user=%s date=%s: %s", user.id, day, exc)
            return _reject("store_error", str(exc))
        if removed:
            increment("selection.removed", {"day_offset": str(day_offset)})
        return Outcome(removed=removed)

    def mark_collected(self, actor: ActingUser, user_id: int, day: date, now: datetime) -> Outcome:
        if actor.role not in DISTRIBUTION_ROLES:
            return _reject("not_permitted", f"role {actor.role} cannot mark collections")
        try:
            record = self.selections.mark_collected(user_id, day, self.clock.local(now))
        except StoreUnavailable as exc:
            logger.warning("collect failed for user=%s date=%s: %s", user_id, day, exc)
            return _reject("store_error", str(exc))
        if record is None:
            return _reject("selection_not_found", f"user {user_id} has no selection for {day.isoformat()}")
        increment("selection.collected")
        return Outcome(selection=record)

    def mark_food_ready(self, actor: ActingUser, day: date, now: datetime) -> Outcome:
        if actor.role not in DISTRIBUTION_ROLES:
            return _reject("not_permitted", f"role {actor.role} cannot update food status")
        try:
            self.food_status.mark_ready(day, self.clock.local(now))
        except StoreUnavailable as exc:
            logger.warning("food status update failed for date=%s: %s", day, exc)
            return _reject("store_error", str(exc))
        logger.info("food ready date=%s by user=%s", day, actor.id)
        return Outcome()


__all__ = ["RejectionKind", "Rejection", "Outcome", "SelectionService", "RETRYABLE_KINDS"]
