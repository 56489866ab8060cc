from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from flask import Blueprint, current_app, jsonify, request
from werkzeug.wrappers.response import Response

from .api_support import json_body, parse_day, parse_int
from .auth import current_actor, require_roles
from .errors import ValidationError, rejection_response
from .geo import GeoReading
from .selection_service import Outcome, SelectionService

bp = Blueprint("selection_api", __name__, url_prefix="/api")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _engine() -> SelectionService:
    return current_app.selection_service  # type: ignore[attr-defined]


def _reading(payload: Any) -> GeoReading | None:
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise ValidationError([{"field": "location", "message": "expected an object"}], detail="invalid location")
    try:
        return GeoReading(
            lat=float(payload["lat"]),
            lon=float(payload["lon"]),
            accuracy_m=float(payload["accuracy_m"]),
            sample_age_ms=int(payload["sample_age_ms"]),
        )
    except (KeyError, TypeError, ValueError):
        raise ValidationError(
            [{"field": "location", "message": "lat, lon, accuracy_m, sample_age_ms"}], detail="invalid location"
        ) from None


def _respond(outcome: Outcome, status: int = 200) -> Response | tuple[Response, int]:
    if outcome.rejection is not None:
        return rejection_response(outcome.rejection)
    body: dict[str, Any] = {"ok": True}
    if outcome.selection is not None:
        body["selection"] = outcome.selection.to_dict()
    return jsonify(body), status


@bp.post("/selections")
@require_roles("worker", "admin", "distributor")
def post_selection():
    data = json_body()
    day = parse_day(data.get("date"))
    meal_id = str(data.get("meal_id") or "").strip()
    if not meal_id:
        raise ValidationError([{"field": "meal_id", "message": "required"}], detail="meal_id required")
    engine = _engine()
    now = _now()
    outcome = engine.select(
        current_actor(),
        day,
        engine.clock.day_offset(day, now),
        meal_id,
        now,
        geo_reading=_reading(data.get("location")),
    )
    return _respond(outcome)


@bp.delete("/selections/<day>")
@require_roles("worker", "admin", "distributor")
def delete_selection(day: str):
    d = parse_day(day)
    engine = _engine()
    now = _now()
    outcome = engine.deselect(current_actor(), d, engine.clock.day_offset(d, now), now)
    if outcome.rejection is not None:
        return rejection_response(outcome.rejection)
    return jsonify({"ok": True, "removed": outcome.removed})


@bp.get("/selections/me")
@require_roles()
def my_selections():
    actor = current_actor()
    rows = _engine().selections.list_for_user(actor.id)
    return jsonify({"user_id": actor.id, "selections": [r.to_dict() for r in rows]})


@bp.get("/selections")
@require_roles("admin", "distributor")
def list_selections():
    day = parse_day(request.args.get("date") or _engine().clock.today(_now()).isoformat())
    svc = current_app.report_service  # type: ignore[attr-defined]
    return jsonify({"date": day.isoformat(), "selections": svc.collection_list(day)})


@bp.post("/selections/<day>/<user_id>/collect")
@require_roles("admin", "distributor")
def collect(day: str, user_id: str):
    d = parse_day(day)
    uid = parse_int(user_id, "user_id", minimum=1)
    outcome = _engine().mark_collected(current_actor(), uid, d, _now())
    return _respond(outcome)


@bp.put("/food-status/<day>")
@require_roles("admin", "distributor")
def put_food_status(day: str):
    d = parse_day(day)
    outcome = _engine().mark_food_ready(current_actor(), d, _now())
    if outcome.rejection is not None:
        return rejection_response(outcome.rejection)
    return jsonify({"ok": True, "date": d.isoformat(), "ready": True})


@bp.get("/food-status/<day>")
@require_roles()
def get_food_status(day: str):
    d = parse_day(day)
    return jsonify({"date": d.isoformat(), "ready": _engine().food_status.is_ready(d)})
