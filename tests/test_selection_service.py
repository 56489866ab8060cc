from __future__ import annotations

import math
from datetime import date, datetime

import pytest

from mealpick.db import StoreUnavailable
from mealpick.deadline import TODAY, TOMORROW, DeadlineClock
from mealpick.geo import EARTH_RADIUS_M, GeoReading, SiteFence
from mealpick.menu_repo import MenuRepo
from mealpick.metrics import LoggingMetrics, set_metrics
from mealpick.notifications import SELECTION_CONFIRMED, set_notifier
from mealpick.roles import ActingUser
from mealpick.selection_repo import SelectionRepo
from mealpick.selection_service import SelectionService

TODAY_D = date(2026, 3, 10)
TOMORROW_D = date(2026, 3, 11)
SITE = (5.6037, -0.1870)


def _at(h, m=0, s=0, day=10):
    return datetime(2026, 3, day, h, m, s)


def _actor(user, role=None):
    return ActingUser(id=user.id, role=role or user.role, department=user.department, name=user.name)


@pytest.fixture
def menus():
    repo = MenuRepo()
    for d in (TODAY_D, TOMORROW_D):
        repo.save_menu(d, [{"name": "Jollof Rice"}, {"name": "Banku"}])
    return repo


@pytest.fixture
def engine(menus):
    return SelectionService(clock=DeadlineClock(), menus=menus)


@pytest.fixture
def geo_engine(menus):
    fence = SiteFence(lat=SITE[0], lon=SITE[1], radius_m=200.0)
    return SelectionService(clock=DeadlineClock(), fence=fence, geofencing_enabled=True, menus=menus)


class _Recorder:
    def __init__(self):
        self.sent = []

    def send(self, event, user_id, message, data=None):
        self.sent.append((event, user_id, dict(data or {})))


class _BrokenNotifier:
    def send(self, event, user_id, message, data=None):
        raise RuntimeError("push gateway down")


class _DownSelections(SelectionRepo):
    def upsert_selection(self, *a, **kw):
        raise StoreUnavailable("OperationalError: database is locked")

    def delete_selection(self, *a, **kw):
        raise StoreUnavailable("OperationalError: database is locked")


def test_select_today_before_cutoff(engine, make_user):
    w = make_user()
    out = engine.select(_actor(w), TODAY_D, TODAY, f"{TODAY_D}-0", _at(7, 59, 59))
    assert out.ok
    assert out.selection.meal_name == "Jollof Rice"
    assert out.selection.user_id == w.id


def test_select_after_today_cutoff_rejected_store_unchanged(engine, make_user):
    w = make_user()
    out = engine.select(_actor(w), TODAY_D, TODAY, f"{TODAY_D}-0", _at(8, 5))
    assert not out.ok
    assert out.rejection.kind == "deadline_passed"
    assert "08:00" in out.rejection.detail
    assert not out.is_infrastructure
    assert engine.selections.get(w.id, TODAY_D) is None


def test_reselect_keeps_one_row_with_second_meal(engine, make_user):
    w = make_user()
    engine.select(_actor(w), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-0", _at(12))
    out = engine.select(_actor(w), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-1", _at(13))
    assert out.ok
    rows = engine.selections.list_for_date(TOMORROW_D)
    assert len(rows) == 1
    assert rows[0].meal_name == "Banku"


def test_deselect_without_row_is_not_an_error(engine, make_user):
    w = make_user()
    out = engine.deselect(_actor(w), TOMORROW_D, TOMORROW, _at(12))
    assert out.ok
    assert out.removed is False


def test_deselect_removes_and_respects_deadline(engine, make_user):
    w = make_user()
    engine.select(_actor(w), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-0", _at(12))
    late = engine.deselect(_actor(w), TOMORROW_D, TOMORROW, _at(20))
    assert late.rejection.kind == "deadline_passed"
    assert engine.selections.get(w.id, TOMORROW_D) is not None
    out = engine.deselect(_actor(w), TOMORROW_D, TOMORROW, _at(19))
    assert out.ok and out.removed is True


def test_distributor_cannot_select(engine, distributor):
    out = engine.select(_actor(distributor), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-0", _at(9))
    assert out.rejection.kind == "not_permitted"


def test_admin_can_correct_after_cutoff(engine, admin):
    out = engine.select(_actor(admin), TODAY_D, TODAY, f"{TODAY_D}-1", _at(23))
    assert out.ok


def test_offset_must_match_date(engine, make_user):
    w = make_user()
    out = engine.select(_actor(w), TOMORROW_D, TODAY, f"{TOMORROW_D}-0", _at(6))
    assert out.rejection.kind == "deadline_passed"


def test_past_and_far_dates_closed(engine, make_user):
    w = make_user()
    past = engine.select(_actor(w), date(2026, 3, 9), -1, "2026-03-09-0", _at(6))
    future = engine.select(_actor(w), date(2026, 3, 14), 4, "2026-03-14-0", _at(6))
    assert past.rejection.kind == "deadline_passed"
    assert future.rejection.kind == "deadline_passed"


def test_menu_rejections(engine, make_user):
    w = make_user()
    engine.menus.delete_menu(TOMORROW_D)
    missing = engine.select(_actor(w), TOMORROW_D, TOMORROW, "x", _at(9))
    assert missing.rejection.kind == "menu_not_found"
    off_menu = engine.select(_actor(w), TODAY_D, TODAY, "not-a-meal", _at(7))
    assert off_menu.rejection.kind == "meal_not_on_menu"


def _north(metres):
    return SITE[0] + math.degrees(metres / EARTH_RADIUS_M)


def test_geofence_same_day(geo_engine, make_user):
    w = make_user()
    meal = f"{TODAY_D}-0"
    assert geo_engine.select(_actor(w), TODAY_D, TODAY, meal, _at(7)).rejection.kind == "location_required"

    far = geo_engine.select(_actor(w), TODAY_D, TODAY, meal, _at(7), GeoReading(_north(450), SITE[1], 10, 1000))
    assert far.rejection.kind == "out_of_range"
    assert far.rejection.distance_m == pytest.approx(450, abs=0.01)
    assert far.rejection.retryable

    stale = geo_engine.select(_actor(w), TODAY_D, TODAY, meal, _at(7), GeoReading(SITE[0], SITE[1], 10, 45_000))
    assert stale.rejection.kind == "stale_location"

    fuzzy = geo_engine.select(_actor(w), TODAY_D, TODAY, meal, _at(7), GeoReading(SITE[0], SITE[1], 150, 0))
    assert fuzzy.rejection.kind == "low_accuracy"

    ok = geo_engine.select(_actor(w), TODAY_D, TODAY, meal, _at(7), GeoReading(_north(150), SITE[1], 10, 0))
    assert ok.ok


def test_geofence_not_applied_to_tomorrow_or_admin(geo_engine, make_user, admin):
    w = make_user()
    assert geo_engine.select(_actor(w), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-0", _at(9)).ok
    assert geo_engine.select(_actor(admin), TODAY_D, TODAY, f"{TODAY_D}-0", _at(9)).ok


def test_geofence_deadline_checked_first(geo_engine, make_user):
    w = make_user()
    out = geo_engine.select(_actor(w), TODAY_D, TODAY, f"{TODAY_D}-0", _at(9))
    assert out.rejection.kind == "deadline_passed"


def test_geofencing_requires_fence():
    with pytest.raises(ValueError):
        SelectionService(geofencing_enabled=True)


def test_fence_dropped_after_construction_raises(geo_engine, make_user):
    w = make_user()
    geo_engine.fence = None
    reading = GeoReading(lat=SITE[0], lon=SITE[1], accuracy_m=10, sample_age_ms=1000)
    with pytest.raises(RuntimeError):
        geo_engine.select(_actor(w), TODAY_D, TODAY, f"{TODAY_D}-0", _at(7), geo_reading=reading)


def test_store_outage_is_infrastructure(menus, make_user):
    engine = SelectionService(clock=DeadlineClock(), menus=menus, selections=_DownSelections())
    w = make_user()
    out = engine.select(_actor(w), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-0", _at(9))
    assert out.rejection.kind == "store_error"
    assert out.is_infrastructure
    assert engine.deselect(_actor(w), TOMORROW_D, TOMORROW, _at(9)).is_infrastructure


def test_metrics_logged(engine, make_user, caplog):
    caplog.set_level("INFO", logger="metrics")
    set_metrics(LoggingMetrics())
    w = make_user()
    engine.select(_actor(w), TODAY_D, TODAY, f"{TODAY_D}-0", _at(7))
    engine.select(_actor(w), TODAY_D, TODAY, f"{TODAY_D}-0", _at(9))
    lines = [r.getMessage() for r in caplog.records if r.name == "metrics"]
    assert any("selection.accepted" in ln for ln in lines), lines
    assert any("selection.rejected" in ln and "deadline_passed" in ln for ln in lines), lines


def test_confirmation_notified_and_failures_swallowed(engine, make_user):
    rec = _Recorder()
    set_notifier(rec)
    w = make_user()
    engine.select(_actor(w), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-1", _at(9))
    assert rec.sent == [(SELECTION_CONFIRMED, w.id, {"date": "2026-03-11", "meal_id": "2026-03-11-1"})]
    engine.select(_actor(w), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-0", _at(9))
    assert len(rec.sent) == 2

    set_notifier(_BrokenNotifier())
    assert engine.select(_actor(w), TOMORROW_D, TOMORROW, f"{TOMORROW_D}-1", _at(10)).ok


def test_mark_collected(engine, make_user, distributor):
    w = make_user()
    assert engine.mark_collected(_actor(w), w.id, TODAY_D, _at(12)).rejection.kind == "not_permitted"
    missing = engine.mark_collected(_actor(distributor), w.id, TODAY_D, _at(12))
    assert missing.rejection.kind == "selection_not_found"
    engine.select(_actor(w), TODAY_D, TODAY, f"{TODAY_D}-0", _at(7))
    first = engine.mark_collected(_actor(distributor), w.id, TODAY_D, _at(12))
    second = engine.mark_collected(_actor(distributor), w.id, TODAY_D, _at(13))
    assert first.selection.collected and second.selection.collected
    assert first.selection.collected_at == second.selection.collected_at


def test_mark_food_ready(engine, make_user, distributor):
    w = make_user()
    assert engine.mark_food_ready(_actor(w), TODAY_D, _at(11)).rejection.kind == "not_permitted"
    assert engine.mark_food_ready(_actor(distributor), TODAY_D, _at(11)).ok
    assert engine.food_status.is_ready(TODAY_D)
