from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any

from .food_status_repo import FoodStatusRepo
from .roster_repo import RosterRepo, WorkerRecord
from .selection_repo import SelectionRecord, SelectionRepo


@dataclass(frozen=True)
class WorkerReport:
    id: int
    name: str
    department: str
    has_selected: bool
    meal_name: str | None = None
    selection_time: str | None = None
    collected: bool | None = None


@dataclass
class DailyReport:
    date: str
    rows: list[WorkerReport]
    stats: dict[str, Any]
    departments: dict[str, list[WorkerReport]] = field(default_factory=dict)
    department_stats: dict[str, dict[str, int]] = field(default_factory=dict)
    meal_counts: dict[str, int] = field(default_factory=dict)
    collection: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "rows": [asdict(r) for r in self.rows],
            "stats": dict(self.stats),
            "departments": {k: [asdict(r) for r in v] for k, v in self.departments.items()},
            "department_stats": {k: dict(v) for k, v in self.department_stats.items()},
            "meal_counts": dict(self.meal_counts),
            "collection": dict(self.collection),
        }


def _hhmm(ts: str) -> str:
    try:
        return datetime.fromisoformat(ts).strftime("%H:%M")
    except ValueError:
        return ts


def _rate(selected: int, total: int) -> float:
    return (selected / total) * 100 if total > 0 else 0


def _row_key(r: WorkerReport) -> tuple[str, str, int]:
    return (r.department, r.name, r.id)


def _eligible(roster: Iterable[WorkerRecord]) -> list[WorkerRecord]:
    return [w for w in roster if w.role == "worker" and w.is_active]


def _by_user(day: str, selections: Iterable[SelectionRecord]) -> dict[int, SelectionRecord]:
    out: dict[int, SelectionRecord] = {}
    for s in selections:
        if s.date != day:
            continue
        prev = out.get(s.user_id)
        # Unique per (user, date) in the store; keep the newest if a snapshot ever disagrees
        if prev is None or (s.selected_at, s.id) > (prev.selected_at, prev.id):
            out[s.user_id] = s
    return out


def build_daily_report(
    day: date | str,
    roster: Iterable[WorkerRecord],
    selections: Iterable[SelectionRecord],
    food_ready: bool = False,
) -> DailyReport:
    """Aggregate one day's selections against the active worker roster.

    Output ordering is fully determined by the input: rows by (department,
    name, id), department and meal keys sorted.
    """
    d = day.isoformat() if isinstance(day, date) else str(day)
    workers = _eligible(roster)
    picks = _by_user(d, selections)

    rows: list[WorkerReport] = []
    for w in workers:
        s = picks.get(w.id)
        if s is None:
            rows.append(WorkerReport(w.id, w.name, w.department, False))
        else:
            rows.append(
                WorkerReport(w.id, w.name, w.department, True, s.meal_name, _hhmm(s.selected_at), s.collected)
            )
    rows.sort(key=_row_key)

    total = len(rows)
    selected_rows = [r for r in rows if r.has_selected]
    selected = len(selected_rows)
    stats = {
        "total": total,
        "selected": selected,
        "not_selected": total - selected,
        "selection_rate": _rate(selected, total),
    }

    grouped: dict[str, list[WorkerReport]] = defaultdict(list)
    for r in selected_rows:
        grouped[r.department].append(r)
    departments = {k: grouped[k] for k in sorted(grouped)}

    per_dept: dict[str, dict[str, int]] = defaultdict(lambda: {"total": 0, "selected": 0, "not_selected": 0})
    for r in rows:
        bucket = per_dept[r.department]
        bucket["total"] += 1
        bucket["selected" if r.has_selected else "not_selected"] += 1
    department_stats = {k: per_dept[k] for k in sorted(per_dept)}

    counts = Counter(r.meal_name for r in selected_rows if r.meal_name)
    meal_counts = {k: counts[k] for k in sorted(counts)}

    collected = sum(1 for r in selected_rows if r.collected)
    collection = {
        "selected": selected,
        "collected": collected,
        "pending": selected - collected,
        "food_ready": bool(food_ready),
    }
    return DailyReport(d, rows, stats, departments, department_stats, meal_counts, collection)


def dashboard_stats(
    day: date | str, roster: Iterable[WorkerRecord], selections: Iterable[SelectionRecord]
) -> dict[str, Any]:
    d = day.isoformat() if isinstance(day, date) else str(day)
    workers = _eligible(roster)
    ids = {w.id for w in workers}
    picked = sum(1 for uid in _by_user(d, selections) if uid in ids)
    return {
        "total_workers": len(workers),
        "selections": picked,
        "selection_rate": _rate(picked, len(workers)),
    }


class ReportService:
    """Loads a roster + selections snapshot and hands it to the aggregators."""

    def __init__(
        self,
        roster: RosterRepo | None = None,
        selections: SelectionRepo | None = None,
        food_status: FoodStatusRepo | None = None,
    ) -> None:
        self.selections = selections or SelectionRepo()
        self.roster = roster or RosterRepo()
        self.food_status = food_status or FoodStatusRepo()

    def daily_report(self, day: date) -> DailyReport:
        roster = self.roster.list_roster(role="worker")
        picks = self.selections.list_for_date(day)
        return build_daily_report(day, roster, picks, food_ready=self.food_status.is_ready(day))

    def dashboard(self, day: date, recent_limit: int = 5) -> dict[str, Any]:
        roster = self.roster.list_roster(role="worker")
        stats = dashboard_stats(day, roster, self.selections.list_for_date(day))
        names = {w.id: w for w in self.roster.list_roster(role=None, include_inactive=True)}
        recent = []
        for s in self.selections.list_recent(recent_limit, role="worker"):
            w = names.get(s.user_id)
            if w is None:
                continue
            recent.append({**s.to_dict(), "name": w.name, "department": w.department})
        return {"date": day.isoformat(), "stats": stats, "recent": recent}

    def collection_list(self, day: date) -> list[dict[str, Any]]:
        """Selections for ``day`` with names, as the distributor works through them."""
        names = {w.id: w for w in self.roster.list_roster(role=None, include_inactive=True)}
        out = []
        for s in self.selections.list_for_date(day):
            w = names.get(s.user_id)
            out.append(
                {
                    **s.to_dict(),
                    "name": w.name if w else "Unknown",
                    "department": w.department if w else "Unknown",
                }
            )
        out.sort(key=lambda r: (r["name"], r["user_id"]))
        return out


__all__ = ["WorkerReport", "DailyReport", "build_daily_report", "dashboard_stats", "ReportService"]
