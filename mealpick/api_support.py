"""Small request-parsing helpers shared by the JSON blueprints."""
from __future__ import annotations

from datetime import date
from typing import Any

from .errors import ValidationError


def parse_day(value: Any, field: str = "date") -> date:
    try:
        return date.fromisoformat(str(value or "").strip())
    except ValueError:
        raise ValidationError([{"field": field, "message": "expected YYYY-MM-DD"}], detail=f"invalid {field}") from None


def parse_int(value: Any, field: str, default: int | None = None, minimum: int | None = None, maximum: int | None = None) -> int:
    if value in (None, ""):
        if default is None:
            raise ValidationError([{"field": field, "message": "required"}], detail=f"{field} required")
        return default
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError([{"field": field, "message": "expected integer"}], detail=f"invalid {field}") from None
    if (minimum is not None and n < minimum) or (maximum is not None and n > maximum):
        raise ValidationError([{"field": field, "message": f"out of range {minimum}..{maximum}"}], detail=f"invalid {field}")
    return n


def json_body() -> dict[str, Any]:
    from flask import request

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError([{"field": "body", "message": "expected a JSON object"}], detail="invalid body")
    return data


__all__ = ["parse_day", "parse_int", "json_body"]
