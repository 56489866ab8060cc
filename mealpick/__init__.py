"""mealpick: daily meal selection service."""
from __future__ import annotations

from .app_factory import create_app

__all__ = ["create_app"]
