"""Request logging and the in-memory warning buffer.

WARN+ records are kept in a bounded deque together with the request id that
produced them, so recent failures (store outages, notifier errors) can be read
from ``/health`` without external log aggregation.
"""

from __future__ import annotations

import collections
import logging
import time

from flask import g, has_request_context, request

LOG_BUFFER: collections.deque[dict] = collections.deque(maxlen=500)

REQUEST_LOGGER = "mealpick.request"


class BufferLogHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        rid = getattr(g, "request_id", "-") if has_request_context() else "-"
        path = request.path if has_request_context() else "-"
        LOG_BUFFER.append(
            {
                "ts": time.time(),
                "level": record.levelname,
                "logger": record.name,
                "msg": self.format(record),
                "request_id": rid,
                "path": path,
            }
        )


def install_buffer_handler() -> None:
    root = logging.getLogger()
    # Avoid duplicate attachment when several apps are built in one process
    if any(isinstance(h, BufferLogHandler) for h in root.handlers):
        return
    h = BufferLogHandler(level=logging.WARNING)
    h.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(h)


def request_logger() -> logging.Logger:
    log = logging.getLogger(REQUEST_LOGGER)
    if not log.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("%(message)s"))
        log.addHandler(h)
    log.setLevel(logging.INFO)
    return log


__all__ = ["LOG_BUFFER", "REQUEST_LOGGER", "install_buffer_handler", "request_logger"]
