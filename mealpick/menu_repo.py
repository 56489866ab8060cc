from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import date as _date, datetime, timedelta
from typing import Any

from sqlalchemy import JSON, bindparam, text

from .db import session_scope

MIN_MEAL_OPTIONS = 2


class MenuValidationError(ValueError):
    pass


@dataclass(frozen=True)
class MealOption:
    id: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class MenuRecord:
    date: str
    meals: list[MealOption] = field(default_factory=list)
    created_by: int | None = None
    updated_at: str | None = None

    def find_meal(self, meal_id: str) -> MealOption | None:
        for m in self.meals:
            if m.id == str(meal_id):
                return m
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _day(d: _date | str) -> str:
    return d.isoformat() if isinstance(d, _date) else str(d)


def normalize_meals(day: str, meals: Iterable[Mapping[str, Any] | MealOption]) -> list[MealOption]:
    """Drop blank-named options and assign ``<date>-<index>`` ids where missing.

    Raises MenuValidationError when fewer than two options remain or ids repeat.
    """
    out: list[MealOption] = []
    for m in meals:
        raw = asdict(m) if isinstance(m, MealOption) else dict(m)
        name = str(raw.get("name") or "").strip()
        if not name:
            continue
        mid = str(raw.get("id") or "").strip() or f"{day}-{len(out)}"
        out.append(MealOption(id=mid, name=name, description=str(raw.get("description") or "").strip()))
    if len(out) < MIN_MEAL_OPTIONS:
        raise MenuValidationError(f"{day}: at least {MIN_MEAL_OPTIONS} meal options required")
    ids = [m.id for m in out]
    if len(set(ids)) != len(ids):
        raise MenuValidationError(f"{day}: meal ids must be unique")
    return out


def _row_to_menu(row: Any) -> MenuRecord:
    raw = row[1]
    if isinstance(raw, str):
        raw = json.loads(raw or "[]")
    meals = [MealOption(id=str(m.get("id")), name=str(m.get("name")), description=str(m.get("description") or "")) for m in raw or []]
    return MenuRecord(
        date=str(row[0]),
        meals=meals,
        created_by=int(row[2]) if row[2] is not None else None,
        updated_at=str(row[3]) if row[3] is not None else None,
    )


class MenuRepo:
    """One menu per calendar date; saving a date again replaces its options."""

    def save_menu(
        self,
        day: _date | str,
        meals: Iterable[Mapping[str, Any] | MealOption],
        created_by: int | None = None,
        timestamp: datetime | None = None,
    ) -> MenuRecord:
        d = _day(day)
        options = normalize_meals(d, meals)
        ts = (timestamp or datetime.now()).isoformat(timespec="seconds")
        stmt = text(
            """
            INSERT INTO menus (date, meals, created_by, updated_at)
            VALUES (:d, :meals, :by, :ts)
            ON CONFLICT (date)
            DO UPDATE SET meals = excluded.meals, created_by = excluded.created_by, updated_at = excluded.updated_at
            """
        ).bindparams(bindparam("meals", type_=JSON))
        with session_scope() as db:
            db.execute(stmt, {"d": d, "meals": [asdict(m) for m in options], "by": created_by, "ts": ts})
            db.commit()
        return MenuRecord(date=d, meals=options, created_by=created_by, updated_at=ts)

    def get_menu(self, day: _date | str) -> MenuRecord | None:
        with session_scope() as db:
            row = db.execute(
                text("SELECT date, meals, created_by, updated_at FROM menus WHERE date=:d"),
                {"d": _day(day)},
            ).fetchone()
        return _row_to_menu(row) if row else None

    def list_range(self, start: _date, days: int = 7) -> list[MenuRecord]:
        end = start + timedelta(days=max(days, 1) - 1)
        with session_scope() as db:
            rows = db.execute(
                text(
                    """
                    SELECT date, meals, created_by, updated_at FROM menus
                    WHERE date >= :start AND date <= :end
                    ORDER BY date
                    """
                ),
                {"start": start.isoformat(), "end": end.isoformat()},
            ).fetchall()
        return [_row_to_menu(r) for r in rows]

    def delete_menu(self, day: _date | str) -> bool:
        with session_scope() as db:
            res = db.execute(text("DELETE FROM menus WHERE date=:d"), {"d": _day(day)})
            db.commit()
            return (res.rowcount or 0) > 0


__all__ = ["MIN_MEAL_OPTIONS", "MenuValidationError", "MealOption", "MenuRecord", "MenuRepo", "normalize_meals"]
