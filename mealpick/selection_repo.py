"""
Selection store.

One row per (user_id, date), guarded by the ``uq_selections_user_date``
unique constraint. Writes go through a single ``INSERT .. ON CONFLICT``
statement so two near-simultaneous picks for the same key can never produce a
second row; the last write applied by the database wins.

Schema:
- selections(id, user_id, date, meal_id, meal_name, selected_at, collected, collected_at)
- date: ISO day string, selected_at/collected_at: ISO timestamps
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date as _date, datetime
from typing import Any

from sqlalchemy import text

from .db import session_scope

_COLUMNS = "id, user_id, date, meal_id, meal_name, selected_at, collected, collected_at"


@dataclass(frozen=True)
class SelectionRecord:
    id: int
    user_id: int
    date: str
    meal_id: str
    meal_name: str
    selected_at: str
    collected: bool = False
    collected_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _day(d: _date | str) -> str:
    return d.isoformat() if isinstance(d, _date) else str(d)


def _ts(ts: datetime) -> str:
    return ts.isoformat(timespec="seconds")


def _row_to_record(row: Any) -> SelectionRecord:
    return SelectionRecord(
        id=int(row[0]),
        user_id=int(row[1]),
        date=str(row[2]),
        meal_id=str(row[3]),
        meal_name=str(row[4]),
        selected_at=str(row[5]),
        collected=bool(row[6]),
        collected_at=str(row[7]) if row[7] is not None else None,
    )


class SelectionRepo:
    """Persistence for meal selections; every method may raise StoreUnavailable."""

    def upsert_selection(
        self,
        user_id: int,
        day: _date | str,
        meal_id: str,
        meal_name: str,
        timestamp: datetime,
    ) -> SelectionRecord:
        params = {
            "uid": int(user_id),
            "d": _day(day),
            "mid": str(meal_id),
            "mname": meal_name,
            "ts": _ts(timestamp),
            "collected": False,
        }
        with session_scope() as db:
            # collected is left untouched on conflict; re-picking never resets a collection
            db.execute(
                text(
                    """
                    INSERT INTO selections (user_id, date, meal_id, meal_name, selected_at, collected)
                    VALUES (:uid, :d, :mid, :mname, :ts, :collected)
                    ON CONFLICT (user_id, date)
                    DO UPDATE SET
                        meal_id = excluded.meal_id,
                        meal_name = excluded.meal_name,
                        selected_at = excluded.selected_at
                    """
                ),
                params,
            )
            row = db.execute(
                text(f"SELECT {_COLUMNS} FROM selections WHERE user_id=:uid AND date=:d"),
                {"uid": params["uid"], "d": params["d"]},
            ).fetchone()
            db.commit()
        return _row_to_record(row)

    def delete_selection(self, user_id: int, day: _date | str) -> bool:
        with session_scope() as db:
            res = db.execute(
                text("DELETE FROM selections WHERE user_id=:uid AND date=:d"),
                {"uid": int(user_id), "d": _day(day)},
            )
            db.commit()
            return (res.rowcount or 0) > 0

    def mark_collected(
        self, user_id: int, day: _date | str, timestamp: datetime
    ) -> SelectionRecord | None:
        """Flag a selection as collected. Returns None when no selection exists."""
        params = {"uid": int(user_id), "d": _day(day), "ts": _ts(timestamp), "collected": True}
        with session_scope() as db:
            # COALESCE keeps the first collection time on repeated calls
            db.execute(
                text(
                    """
                    UPDATE selections
                    SET collected = :collected,
                        collected_at = COALESCE(collected_at, :ts)
                    WHERE user_id=:uid AND date=:d
                    """
                ),
                params,
            )
            row = db.execute(
                text(f"SELECT {_COLUMNS} FROM selections WHERE user_id=:uid AND date=:d"),
                {"uid": params["uid"], "d": params["d"]},
            ).fetchone()
            db.commit()
        return _row_to_record(row) if row else None

    def get(self, user_id: int, day: _date | str) -> SelectionRecord | None:
        with session_scope() as db:
            row = db.execute(
                text(f"SELECT {_COLUMNS} FROM selections WHERE user_id=:uid AND date=:d"),
                {"uid": int(user_id), "d": _day(day)},
            ).fetchone()
        return _row_to_record(row) if row else None

    def list_for_date(self, day: _date | str) -> list[SelectionRecord]:
        with session_scope() as db:
            rows = db.execute(
                text(f"SELECT {_COLUMNS} FROM selections WHERE date=:d ORDER BY user_id"),
                {"d": _day(day)},
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_for_user(self, user_id: int) -> list[SelectionRecord]:
        with session_scope() as db:
            rows = db.execute(
                text(f"SELECT {_COLUMNS} FROM selections WHERE user_id=:uid ORDER BY date"),
                {"uid": int(user_id)},
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_recent(self, limit: int = 5, role: str | None = None) -> list[SelectionRecord]:
        """Newest picks first, optionally only those made by accounts with ``role``."""
        params: dict[str, Any] = {"n": max(int(limit), 0)}
        where = ""
        if role:
            where = "WHERE user_id IN (SELECT id FROM users WHERE role=:role) "
            params["role"] = role
        with session_scope() as db:
            rows = db.execute(
                text(f"SELECT {_COLUMNS} FROM selections {where}ORDER BY selected_at DESC, id DESC LIMIT :n"),
                params,
            ).fetchall()
        return [_row_to_record(r) for r in rows]


__all__ = ["SelectionRecord", "SelectionRepo"]
