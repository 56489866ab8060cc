"""Fire-and-forget notifications.

Two signals leave the core: ``selection_confirmed`` after a successful pick
and ``selection_reminder`` for workers who have not picked yet. Delivery is
somebody else's job; a failing backend is logged and never reaches the
caller.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SELECTION_CONFIRMED = "selection_confirmed"
SELECTION_REMINDER = "selection_reminder"


class Notifier(Protocol):
    def send(self, event: str, user_id: int, message: str, data: Mapping[str, Any] | None = None) -> None: ...  # pragma: no cover - interface only


class NoopNotifier:
    def send(self, event: str, user_id: int, message: str, data: Mapping[str, Any] | None = None) -> None:  # pragma: no cover - noop
        return


class LoggingNotifier:
    def send(self, event: str, user_id: int, message: str, data: Mapping[str, Any] | None = None) -> None:
        logger.info("notify event=%s user_id=%s message=%r data=%s", event, user_id, message, dict(data or {}))


_BACKENDS: dict[str, type] = {"noop": NoopNotifier, "log": LoggingNotifier}

_notifier: Notifier = NoopNotifier()


def set_notifier(n: Notifier) -> None:
    global _notifier
    _notifier = n


def configure_notifier(backend: str | None) -> Notifier:
    name = (backend or "noop").strip().lower()
    cls = _BACKENDS.get(name)
    if cls is None:
        logger.warning("unknown notifications backend %r; using noop", backend)
        cls = NoopNotifier
    set_notifier(cls())
    return _notifier


def notify(event: str, user_id: int, message: str, data: Mapping[str, Any] | None = None) -> bool:
    """Hand a signal to the backend. Returns False when the backend raised."""
    try:
        _notifier.send(event, user_id, message, data)
        return True
    except Exception:
        logger.warning("notification %s for user %s failed", event, user_id, exc_info=True)
        return False


def send_selection_reminders(
    target: date,
    roster: Iterable[Any],
    selections: Iterable[Any],
    cutoff_label: str = "8:00 PM",
) -> list[int]:
    """Remind every active worker without a selection for ``target``.

    ``roster`` items need ``id``, ``role`` and ``is_active``; ``selections``
    items need ``user_id`` and ``date``. Returns the ids that were signalled.
    """
    day = target.isoformat()
    picked = {int(s.user_id) for s in selections if str(s.date) == day}
    sent: list[int] = []
    for w in roster:
        if w.role != "worker" or not w.is_active or int(w.id) in picked:
            continue
        msg = f"Don't forget to select your meal for {day} before {cutoff_label}!"
        if notify(SELECTION_REMINDER, int(w.id), msg, {"date": day}):
            sent.append(int(w.id))
    logger.info("selection reminders for %s: %d sent", day, len(sent))
    return sent


__all__ = [
    "SELECTION_CONFIRMED",
    "SELECTION_REMINDER",
    "Notifier",
    "NoopNotifier",
    "LoggingNotifier",
    "set_notifier",
    "configure_notifier",
    "notify",
    "send_selection_reminders",
]
