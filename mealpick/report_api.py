from __future__ import annotations

from datetime import date, datetime, timezone

from flask import Blueprint, Response, current_app, jsonify, request

from .api_support import parse_day
from .auth import require_roles
from .report_export import build_csv, build_xlsx
from .report_service import ReportService

bp = Blueprint("report_api", __name__, url_prefix="/api")

_XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _service() -> ReportService:
    return current_app.report_service  # type: ignore[attr-defined]


def _day() -> date:
    raw = request.args.get("date")
    if raw:
        return parse_day(raw)
    engine = current_app.selection_service  # type: ignore[attr-defined]
    return engine.clock.today(datetime.now(timezone.utc))


@bp.get("/reports/daily")
@require_roles("admin")
def daily_report():
    return jsonify(_service().daily_report(_day()).to_dict())


@bp.get("/reports/daily.csv")
@require_roles("admin")
def daily_report_csv():
    d = _day()
    data = build_csv(_service().daily_report(d).to_dict())
    resp = Response(data, mimetype="text/csv; charset=utf-8")
    resp.headers["Content-Disposition"] = f"attachment; filename=meal_report_{d.isoformat()}.csv"
    return resp


@bp.get("/reports/daily.xlsx")
@require_roles("admin")
def daily_report_xlsx():
    d = _day()
    data = build_xlsx(_service().daily_report(d).to_dict())
    resp = Response(data, mimetype=_XLSX_MIME)
    resp.headers["Content-Disposition"] = f"attachment; filename=meal_report_{d.isoformat()}.xlsx"
    return resp


@bp.get("/dashboard")
@require_roles("admin")
def dashboard():
    return jsonify(_service().dashboard(_day()))
