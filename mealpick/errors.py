"""Domain error system + RFC7807 handler registration.

The selection engine returns rejections as values; this module turns them
(and the exceptions that do escape: bad input, auth, store outages) into
problem+json responses.
"""
from __future__ import annotations

import traceback
import uuid
from typing import Any

from flask import request
from werkzeug.wrappers.response import Response

from .db import StoreUnavailable
from .http_errors import internal_server_error, problem, ptype, service_unavailable, standard_problem, unprocessable_entity
from .menu_repo import MenuValidationError
from .selection_service import Rejection


class DomainError(Exception):
    def __init__(self, status: int, code: str, detail: str | None = None, **extra: Any):
        self.status = status
        self.code = code
        self.detail = detail or code
        self.extra = extra
        super().__init__(self.detail)


class ValidationError(DomainError):
    def __init__(self, errors: Any, detail: str = "validation_error", **extra: Any):
        super().__init__(422, "validation_error", detail, errors=errors, **extra)
        self.errors = errors


REJECTION_STATUS: dict[str, int] = {
    "deadline_passed": 409,
    "out_of_range": 422,
    "stale_location": 422,
    "low_accuracy": 422,
    "location_required": 422,
    "menu_not_found": 404,
    "meal_not_on_menu": 422,
    "not_permitted": 403,
    "selection_not_found": 404,
    "store_error": 503,
}

_REJECTION_TITLES: dict[str, str] = {
    "deadline_passed": "Selection deadline has passed",
    "out_of_range": "Outside the worksite",
    "stale_location": "Location fix is too old",
    "low_accuracy": "Location fix is not accurate enough",
    "location_required": "Location required",
    "menu_not_found": "No menu for this date",
    "meal_not_on_menu": "Meal is not on the menu",
    "not_permitted": "Not permitted",
    "selection_not_found": "No selection",
    "store_error": "Store unavailable",
}


def rejection_response(rej: Rejection) -> Response:
    status = REJECTION_STATUS.get(rej.kind, 400)
    distance = round(rej.distance_m, 1) if rej.distance_m is not None else None
    return problem(
        status,
        ptype(f"selection/{rej.kind.replace('_', '-')}"),
        _REJECTION_TITLES.get(rej.kind, rej.kind),
        rej.detail,
        kind=rej.kind,
        retryable=rej.retryable,
        distance_m=distance,
    )


def register_error_handlers(app: Any) -> None:
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(DomainError)
    def _h_domain(err: DomainError) -> Response:
        if err.status == 422:
            errors = err.extra.get("errors") or getattr(err, "errors", [])
            return unprocessable_entity(errors, detail=err.detail, **{k: v for k, v in err.extra.items() if k != "errors"})
        return standard_problem(err.status, err.detail, code=err.code, **err.extra)

    @app.errorhandler(MenuValidationError)
    def _h_menu(err: MenuValidationError) -> Response:
        return unprocessable_entity([{"field": "meals", "message": str(err)}], detail=str(err))

    @app.errorhandler(StoreUnavailable)
    def _h_store(err: StoreUnavailable) -> Response:
        app.logger.warning("store unavailable path=%s: %s", request.path, err)
        return service_unavailable()

    @app.errorhandler(HTTPException)
    def _h_http(ex: HTTPException) -> Response:
        status = ex.code or 500
        if status >= 500:
            return internal_server_error()
        return problem(status, ptype(ex.name.lower().replace(" ", "_")), ex.name, str(ex.description))

    @app.errorhandler(Exception)
    def _h_exception(ex: Exception) -> Response:
        incident_id = str(uuid.uuid4())
        app.logger.error("Unhandled exception incident_id=%s path=%s\n%s", incident_id, request.path, traceback.format_exc())
        return internal_server_error(incident_id=incident_id)


__all__ = ["DomainError", "ValidationError", "REJECTION_STATUS", "rejection_response", "register_error_handlers"]
