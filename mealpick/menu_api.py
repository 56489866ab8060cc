from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from .api_support import json_body, parse_day, parse_int
from .auth import current_actor, require_roles
from .errors import DomainError, ValidationError
from .menu_repo import MenuRepo

bp = Blueprint("menu_api", __name__, url_prefix="/api/menus")


def _repo() -> MenuRepo:
    return current_app.menu_repo  # type: ignore[attr-defined]


@bp.put("/<day>")
@require_roles("admin")
def put_menu(day: str):
    d = parse_day(day)
    data = json_body()
    meals = data.get("meals")
    if not isinstance(meals, list):
        raise ValidationError([{"field": "meals", "message": "expected a list"}], detail="meals required")
    menu = _repo().save_menu(d, meals, created_by=current_actor().id, timestamp=datetime.now())
    current_app.logger.info("menu saved date=%s options=%d", menu.date, len(menu.meals))
    return jsonify({"ok": True, "menu": menu.to_dict()})


@bp.get("/<day>")
@require_roles()
def get_menu(day: str):
    d = parse_day(day)
    menu = _repo().get_menu(d)
    if menu is None:
        raise DomainError(404, "not_found", f"no menu for {d.isoformat()}")
    return jsonify({"menu": menu.to_dict()})


@bp.get("")
@require_roles()
def list_menus():
    start = parse_day(request.args.get("start"), field="start")
    days = parse_int(request.args.get("days"), "days", default=7, minimum=1, maximum=31)
    menus = _repo().list_range(start, days)
    return jsonify({"start": start.isoformat(), "days": days, "menus": [m.to_dict() for m in menus]})


@bp.delete("/<day>")
@require_roles("admin")
def delete_menu(day: str):
    d = parse_day(day)
    if not _repo().delete_menu(d):
        raise DomainError(404, "not_found", f"no menu for {d.isoformat()}")
    return jsonify({"ok": True})
