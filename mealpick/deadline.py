"""Selection windows.

A pick for *today* (day offset 0) is accepted until ``today_cutoff_hour`` on
that same day; a pick for *tomorrow* (day offset 1) is accepted until
``tomorrow_cutoff_hour`` on the day before. Everything is evaluated in one
configured time zone. The clock holds configuration only, so a single
instance may be shared across requests and threads.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from .config import Config

TODAY = 0
TOMORROW = 1


class DeadlineClock:
    def __init__(
        self,
        today_cutoff_hour: int = 8,
        tomorrow_cutoff_hour: int = 20,
        timezone: str = "Africa/Accra",
    ) -> None:
        if not 0 <= today_cutoff_hour <= 24 or not 0 <= tomorrow_cutoff_hour <= 24:
            raise ValueError("cutoff hours must be within 0..24")
        self.today_cutoff_hour = today_cutoff_hour
        self.tomorrow_cutoff_hour = tomorrow_cutoff_hour
        self.tz = ZoneInfo(timezone)

    @classmethod
    def from_config(cls, cfg: Config) -> DeadlineClock:
        return cls(cfg.today_cutoff_hour, cfg.tomorrow_cutoff_hour, cfg.timezone)

    def local(self, now: datetime) -> datetime:
        """Express ``now`` in the operating zone; naive values are taken as local already."""
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def today(self, now: datetime) -> date:
        return self.local(now).date()

    def day_offset(self, target: date, now: datetime) -> int:
        return (target - self.today(now)).days

    def is_selection_allowed(self, role: str, day_offset: int, now: datetime) -> bool:
        if role == "admin":
            return True
        if role != "worker":
            return False
        hour = self.local(now).hour
        if day_offset == TODAY:
            return hour < self.today_cutoff_hour
        if day_offset == TOMORROW:
            return hour < self.tomorrow_cutoff_hour
        return False

    def closes_at(self, target: date, day_offset: int) -> datetime:
        """Return the instant the window for ``target`` closes."""
        if day_offset == TODAY:
            return self._at(target, self.today_cutoff_hour)
        if day_offset == TOMORROW:
            return self._at(target - timedelta(days=1), self.tomorrow_cutoff_hour)
        raise ValueError(f"no selection window for day offset {day_offset}")

    def _at(self, day: date, hour: int) -> datetime:
        if hour == 24:
            return datetime.combine(day + timedelta(days=1), time(0), tzinfo=self.tz)
        return datetime.combine(day, time(hour), tzinfo=self.tz)


__all__ = ["DeadlineClock", "TODAY", "TOMORROW"]
