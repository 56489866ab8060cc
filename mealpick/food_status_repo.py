from __future__ import annotations

from datetime import date as _date, datetime

from sqlalchemy import text

from .db import session_scope


class FoodStatusRepo:
    """Per-date "food is ready for collection" flag set by distributors."""

    def mark_ready(self, day: _date | str, timestamp: datetime) -> None:
        d = day.isoformat() if isinstance(day, _date) else str(day)
        with session_scope() as db:
            db.execute(
                text(
                    """
                    INSERT INTO food_status (date, ready, updated_at)
                    VALUES (:d, :ready, :ts)
                    ON CONFLICT (date)
                    DO UPDATE SET ready = excluded.ready, updated_at = excluded.updated_at
                    """
                ),
                {"d": d, "ready": True, "ts": timestamp.isoformat(timespec="seconds")},
            )
            db.commit()

    def is_ready(self, day: _date | str) -> bool:
        d = day.isoformat() if isinstance(day, _date) else str(day)
        with session_scope() as db:
            row = db.execute(text("SELECT ready FROM food_status WHERE date=:d"), {"d": d}).fetchone()
        return bool(row[0]) if row else False
