"""RFC7807 problem+json responses.

Every error leaving the HTTP layer goes through :func:`problem`, so clients
always see ``type``, ``title``, ``status``, ``detail`` and the request id.
"""
from __future__ import annotations

import uuid

from flask import g, jsonify
from werkzeug.wrappers.response import Response

PROBLEM_MIMETYPE = "application/problem+json"
_TYPE_PREFIX = "https://mealpick.example/problems/"

# status -> (type slug, title)
_STANDARD: dict[int, tuple[str, str]] = {
    400: ("bad_request", "Bad Request"),
    401: ("unauthorized", "Unauthorized"),
    403: ("forbidden", "Forbidden"),
    404: ("not_found", "Not Found"),
    409: ("conflict", "Conflict"),
    422: ("validation_error", "Unprocessable Entity"),
    500: ("internal_error", "Internal Server Error"),
    503: ("store_unavailable", "Service Unavailable"),
}


def ptype(slug: str) -> str:
    return _TYPE_PREFIX + slug


def problem(status: int, type_: str, title: str, detail: str, **extra: object) -> Response:
    body: dict[str, object] = {"type": type_, "title": title, "status": status, "detail": detail}
    rid = getattr(g, "request_id", None)
    if rid:
        body["request_id"] = rid
    body.update({k: v for k, v in extra.items() if v is not None})
    resp = jsonify(body)
    resp.status_code = status
    resp.mimetype = PROBLEM_MIMETYPE
    if rid:
        resp.headers.setdefault("X-Request-Id", rid)
    return resp


def standard_problem(status: int, detail: str | None = None, **extra: object) -> Response:
    slug, title = _STANDARD.get(status, ("http_error", "Error"))
    return problem(status, ptype(slug), title, detail if detail is not None else slug, **extra)


def bad_request(detail: str | None = None, **extra: object) -> Response:
    return standard_problem(400, detail, **extra)


def unauthorized(detail: str | None = None, **extra: object) -> Response:
    return standard_problem(401, detail, **extra)


def forbidden(detail: str | None = None, **extra: object) -> Response:
    return standard_problem(403, detail, **extra)


def not_found(detail: str | None = None, **extra: object) -> Response:
    return standard_problem(404, detail, **extra)


def unprocessable_entity(errors: object, detail: str = "validation_error", **extra: object) -> Response:
    return standard_problem(422, detail, errors=errors, **extra)


def service_unavailable(detail: str = "store_unavailable", **extra: object) -> Response:
    return standard_problem(503, detail, **extra)


def internal_server_error(detail: str = "internal_error", incident_id: str | None = None, **extra: object) -> Response:
    return standard_problem(500, detail, incident_id=incident_id or str(uuid.uuid4()), **extra)


__all__ = [
    "PROBLEM_MIMETYPE",
    "problem",
    "ptype",
    "standard_problem",
    "bad_request",
    "unauthorized",
    "forbidden",
    "not_found",
    "unprocessable_entity",
    "service_unavailable",
    "internal_server_error",
]
