from __future__ import annotations

from datetime import date, datetime

from mealpick.report_service import ReportService, build_daily_report, dashboard_stats
from mealpick.roster_repo import WorkerRecord
from mealpick.selection_repo import SelectionRecord, SelectionRepo

DAY = "2026-03-10"


def _w(id_, name, dept, role="worker", active=True):
    first, last = name.split(" ", 1)
    return WorkerRecord(id_, f"{first[0].lower()}{last.lower()}{id_}", first, last, name, dept, role, active)


def _s(id_, user_id, meal, at="2026-03-10T09:00:00", collected=False, day=DAY):
    return SelectionRecord(id_, user_id, day, f"{day}-0", meal, at, collected)


def test_scenario_one_of_two_selected():
    roster = [_w(1, "Ama Mensah", "IT"), _w(2, "Yaw Asante", "Sales")]
    report = build_daily_report(DAY, roster, [_s(10, 1, "Jollof Rice")])
    assert [(r.id, r.has_selected, r.meal_name) for r in report.rows] == [
        (1, True, "Jollof Rice"),
        (2, False, None),
    ]
    assert report.rows[0].selection_time == "09:00"
    assert report.stats == {"total": 2, "selected": 1, "not_selected": 1, "selection_rate": 50}
    assert list(report.departments) == ["IT"]
    assert report.meal_counts == {"Jollof Rice": 1}


def test_empty_roster_rate_zero():
    report = build_daily_report(DAY, [], [])
    assert report.stats == {"total": 0, "selected": 0, "not_selected": 0, "selection_rate": 0}
    assert report.rows == []


def test_only_active_workers_counted():
    roster = [
        _w(1, "Ama Mensah", "IT"),
        _w(2, "Yaw Asante", "Sales", active=False),
        _w(3, "Kofi Boateng", "Management", role="admin"),
    ]
    selections = [_s(10, 2, "Banku"), _s(11, 3, "Banku"), _s(12, 99, "Banku")]
    report = build_daily_report(DAY, roster, selections)
    assert [r.id for r in report.rows] == [1]
    assert report.stats["selected"] == 0
    assert report.meal_counts == {}


def test_grouping_and_ordering_deterministic():
    roster = [
        _w(4, "Yaw Asante", "Sales"),
        _w(1, "Ama Mensah", "IT"),
        _w(3, "Esi Owusu", "IT"),
        _w(2, "Ama Mensah", "IT"),
    ]
    selections = [_s(10, 4, "Waakye"), _s(11, 3, "Banku"), _s(12, 2, "Banku"), _s(13, 1, "Waakye")]
    a = build_daily_report(DAY, roster, selections)
    b = build_daily_report(DAY, list(reversed(roster)), list(reversed(selections)))
    assert a.to_dict() == b.to_dict()
    assert [(r.department, r.name, r.id) for r in a.rows] == [
        ("IT", "Ama Mensah", 1),
        ("IT", "Ama Mensah", 2),
        ("IT", "Esi Owusu", 3),
        ("Sales", "Yaw Asante", 4),
    ]
    assert list(a.departments) == ["IT", "Sales"]
    assert list(a.meal_counts.items()) == [("Banku", 2), ("Waakye", 2)]
    assert a.department_stats["IT"] == {"total": 3, "selected": 3, "not_selected": 0}


def test_totals_add_up_and_collection_summary():
    roster = [_w(i, f"Worker N{i}", "Ops") for i in range(1, 8)]
    selections = [_s(100 + i, i, "Fufu", collected=(i % 2 == 0)) for i in range(1, 5)]
    report = build_daily_report(DAY, roster, selections, food_ready=True)
    s = report.stats
    assert s["selected"] + s["not_selected"] == s["total"] == 7
    assert report.collection == {"selected": 4, "collected": 2, "pending": 2, "food_ready": True}


def test_selections_for_other_days_ignored():
    roster = [_w(1, "Ama Mensah", "IT")]
    report = build_daily_report(DAY, roster, [_s(10, 1, "Banku", day="2026-03-11")])
    assert report.stats["selected"] == 0


def test_dashboard_stats():
    roster = [_w(1, "Ama Mensah", "IT"), _w(2, "Yaw Asante", "Sales"), _w(3, "Esi Owusu", "IT"), _w(4, "Kojo Antwi", "IT")]
    stats = dashboard_stats(date(2026, 3, 10), roster, [_s(10, 1, "Banku"), _s(11, 4, "Banku")])
    assert stats == {"total_workers": 4, "selections": 2, "selection_rate": 50}


def test_service_reads_store(make_user, distributor):
    selections = SelectionRepo()
    a = make_user("Ama", "Mensah", "IT")
    b = make_user("Yaw", "Asante", "Sales")
    selections.upsert_selection(a.id, date(2026, 3, 10), "m0", "Jollof Rice", datetime(2026, 3, 9, 18, 30))
    selections.upsert_selection(distributor.id, date(2026, 3, 10), "m1", "Banku", datetime(2026, 3, 9, 18, 45))
    svc = ReportService(selections=selections)

    report = svc.daily_report(date(2026, 3, 10))
    assert [r.name for r in report.rows] == ["Ama Mensah", "Yaw Asante"]
    assert report.stats["selected"] == 1
    assert report.collection["food_ready"] is False

    dash = svc.dashboard(date(2026, 3, 10))
    assert dash["stats"]["total_workers"] == 2
    assert [r["name"] for r in dash["recent"]] == ["Ama Mensah"]

    listing = svc.collection_list(date(2026, 3, 10))
    assert [r["name"] for r in listing] == ["Ama Mensah", "Esi Owusu"]
    assert b.id not in {r["user_id"] for r in listing}


def test_dashboard_recent_skips_busy_admins(make_user, admin):
    selections = SelectionRepo()
    w = make_user("Ama", "Mensah", "IT")
    selections.upsert_selection(w.id, date(2026, 3, 1), "m0", "Waakye", datetime(2026, 2, 28, 18, 0))
    for day in range(2, 12):
        selections.upsert_selection(admin.id, date(2026, 3, day), "m0", "Banku", datetime(2026, 3, day - 1, 18, 0))

    dash = ReportService(selections=selections).dashboard(date(2026, 3, 10), recent_limit=2)
    assert [(r["name"], r["meal_name"]) for r in dash["recent"]] == [("Ama Mensah", "Waakye")]
    assert len(selections.list_recent(2, role="admin")) == 2
