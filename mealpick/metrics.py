"""Counters for selection outcomes.

Backends: ``noop`` (default) and ``log``, which writes one line per increment
to the ``metrics`` logger.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

logger = logging.getLogger("metrics")


class Metrics(Protocol):
    def increment(self, name: str, tags: Mapping[str, str] | None = None) -> None: ...  # pragma: no cover - interface only


class NoopMetrics:
    def increment(self, name: str, tags: Mapping[str, str] | None = None) -> None:  # pragma: no cover - noop
        return


class LoggingMetrics:
    def increment(self, name: str, tags: Mapping[str, str] | None = None) -> None:
        ordered = dict(sorted((tags or {}).items()))
        logger.info("metric name=%s tags=%s", name, ordered)


_BACKENDS: dict[str, type] = {"noop": NoopMetrics, "log": LoggingMetrics}

_metrics: Metrics = NoopMetrics()


def set_metrics(m: Metrics) -> None:
    global _metrics
    _metrics = m


def configure_metrics(backend: str | None) -> Metrics:
    """Install the named backend; unknown names fall back to noop."""
    name = (backend or "noop").strip().lower()
    cls = _BACKENDS.get(name)
    if cls is None:
        logger.warning("unknown metrics backend %r; using noop", backend)
        cls = NoopMetrics
    set_metrics(cls())
    return _metrics


def increment(name: str, tags: Mapping[str, str] | None = None) -> None:
    _metrics.increment(name, tags)


__all__ = ["Metrics", "NoopMetrics", "LoggingMetrics", "set_metrics", "configure_metrics", "increment"]
