"""Send the evening "select your meal" reminder.

Every active worker without a selection for the target date (tomorrow by
default, in the operating time zone) gets one ``selection_reminder`` signal.
Meant to run from cron shortly before the tomorrow cut-off.

Usage:
  python scripts/send_reminders.py [--date YYYY-MM-DD] [--backend log] [--dry-run]
"""
from __future__ import annotations

import argparse
import os
import sys
from datetime import UTC, date, datetime, timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv

from mealpick.config import Config
from mealpick.db import init_engine
from mealpick.deadline import DeadlineClock
from mealpick.notifications import configure_notifier, send_selection_reminders
from mealpick.roster_repo import RosterRepo
from mealpick.selection_repo import SelectionRepo


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Remind workers who have not selected a meal.")
    p.add_argument("--date", help="Target date (default: tomorrow in the operating time zone).")
    p.add_argument(
        "--backend",
        default=None,
        help="Notification backend (default env NOTIFICATIONS_BACKEND or noop).",
    )
    p.add_argument("--dry-run", action="store_true", help="Only list who would be reminded.")
    return p.parse_args(argv)


def _cutoff_label(hour: int) -> str:
    h = hour % 12 or 12
    return f"{h}:00 {'AM' if hour % 24 < 12 else 'PM'}"


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parse_args(argv)
    cfg = Config.from_env()
    clock = DeadlineClock.from_config(cfg)
    if args.date:
        try:
            target = date.fromisoformat(args.date)
        except ValueError:
            print(f"invalid --date {args.date!r}", file=sys.stderr)
            return 2
    else:
        target = clock.today(datetime.now(UTC)) + timedelta(days=1)
    init_engine(cfg.database_url)
    selections = SelectionRepo()
    roster = RosterRepo()
    try:
        workers = roster.list_roster(role="worker")
        picks = selections.list_for_date(target)
        if args.dry_run:
            picked = {s.user_id for s in picks}
            pending = [w for w in workers if w.id not in picked]
            print(f"[DRY-RUN] would remind {len(pending)} worker(s) for {target.isoformat()}")
            for w in pending:
                print(f"  {w.generated_id} {w.name}")
            return 0
        configure_notifier(args.backend or cfg.notifications_backend)
        sent = send_selection_reminders(target, workers, picks, _cutoff_label(cfg.tomorrow_cutoff_hour))
        print(f"sent {len(sent)} reminder(s) for {target.isoformat()}")
        return 0
    except Exception as e:  # pragma: no cover
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
