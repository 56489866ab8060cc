"""Roster administration: create, edit, activate/deactivate and delete accounts."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from .api_support import json_body
from .auth import require_roles
from .errors import DomainError, ValidationError
from .roles import ROLES
from .roster_repo import RosterRepo

bp = Blueprint("roster_api", __name__, url_prefix="/api/workers")


def _repo() -> RosterRepo:
    return current_app.roster_repo  # type: ignore[attr-defined]


def _flag(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@bp.get("")
@require_roles("admin")
def list_workers():
    role = request.args.get("role") or None
    if role is not None and role not in ROLES:
        raise ValidationError([{"field": "role", "message": f"one of {list(ROLES)}"}], detail="invalid role")
    include_inactive = _flag(request.args.get("include_inactive", "1"))
    rows = _repo().list_roster(role=role, include_inactive=include_inactive)
    return jsonify({"workers": [w.to_dict() for w in rows]})


@bp.post("")
@require_roles("admin")
def create_worker():
    data = json_body()
    errors = [
        {"field": f, "message": "required"}
        for f in ("first_name", "last_name")
        if not str(data.get(f) or "").strip()
    ]
    role = str(data.get("role") or "worker")
    if role not in ROLES:
        errors.append({"field": "role", "message": f"one of {list(ROLES)}"})
    if errors:
        raise ValidationError(errors)
    w = _repo().create_worker(
        str(data["first_name"]), str(data["last_name"]), str(data.get("department") or ""), role
    )
    current_app.logger.info("account created id=%s generated_id=%s role=%s", w.id, w.generated_id, w.role)
    return jsonify({"ok": True, "worker": w.to_dict()}), 201


def _opt_str(data: dict, key: str) -> str | None:
    return None if data.get(key) is None else str(data[key])


@bp.patch("/<int:user_id>")
@require_roles("admin")
def update_worker(user_id: int):
    data = json_body()
    w = _repo().update_worker(
        user_id,
        first_name=_opt_str(data, "first_name"),
        last_name=_opt_str(data, "last_name"),
        department=_opt_str(data, "department"),
        is_active=_flag(data["is_active"]) if "is_active" in data else None,
    )
    if w is None:
        raise DomainError(404, "not_found", f"worker {user_id} not found")
    return jsonify({"ok": True, "worker": w.to_dict()})


@bp.delete("/<int:user_id>")
@require_roles("admin")
def delete_worker(user_id: int):
    if not _repo().delete_worker(user_id):
        raise DomainError(404, "not_found", f"worker {user_id} not found")
    return jsonify({"ok": True})
