"""Identity collaborator for the HTTP layer.

The session carries only ``user_id``; every request resolves it against the
roster so role, department and activation are always current. The resolved
:class:`ActingUser` is handed explicitly to the core.
"""
from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from flask import Blueprint, g, jsonify, request, session

from .errors import DomainError
from .roles import ActingUser, Role
from .roster_repo import RosterRepo

P = ParamSpec("P")
R = TypeVar("R")

bp = Blueprint("auth", __name__, url_prefix="/auth")


def _load_actor() -> ActingUser:
    uid = session.get("user_id")
    if not uid:
        raise DomainError(401, "unauthorized", "authentication_required")
    w = RosterRepo().get(int(uid))
    if w is None or not w.is_active:
        session.pop("user_id", None)
        raise DomainError(401, "unauthorized", "account_inactive_or_missing")
    return ActingUser(id=w.id, role=w.role, department=w.department, name=w.name)


def current_actor() -> ActingUser:
    actor = getattr(g, "actor", None)
    if actor is None:
        actor = _load_actor()
        g.actor = actor
    return actor


def require_roles(*roles: Role) -> Callable[[Callable[P, R]], Callable[P, R]]:
    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            actor = current_actor()
            if roles and actor.role not in roles:
                raise DomainError(403, "forbidden", f"required role in {list(roles)}", required_role=list(roles))
            return fn(*args, **kwargs)

        return wrapper

    return decorator


@bp.post("/session")
def open_session():
    data = request.get_json(silent=True) or {}
    gid = str(data.get("generated_id") or "").strip()
    if not gid:
        raise DomainError(400, "bad_request", "generated_id required")
    w = RosterRepo().get_by_generated_id(gid)
    if w is None or not w.is_active:
        raise DomainError(401, "unauthorized", "unknown or inactive id")
    session.clear()
    session["user_id"] = w.id
    return jsonify({"ok": True, "user": w.to_dict()})


@bp.delete("/session")
def close_session():
    session.clear()
    return jsonify({"ok": True})


@bp.get("/me")
@require_roles()
def me():
    return jsonify({"user": current_actor().__dict__})
