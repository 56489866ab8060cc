"""Flask application factory.

Provides:
 - App factory with configuration override (``Config`` fields or upper-case Flask keys)
 - DB engine initialization
 - Metrics and notification backend wiring
 - Core services attached to the app (selection engine, reports, repositories)
 - Request id / duration headers and one structured log line per request
 - RFC7807 error handlers and blueprint registration
"""

from __future__ import annotations

import os
import time
import uuid
from typing import Any

from dotenv import load_dotenv
from flask import Flask, g, request, session
from werkzeug.wrappers.response import Response

from .auth import bp as auth_bp
from .config import Config
from .db import init_engine, remove_session
from .errors import register_error_handlers
from .food_status_repo import FoodStatusRepo
from .logging_setup import LOG_BUFFER, install_buffer_handler, request_logger
from .menu_api import bp as menu_api_bp
from .menu_repo import MenuRepo
from .metrics import configure_metrics
from .notifications import configure_notifier
from .report_api import bp as report_api_bp
from .report_service import ReportService
from .roster_api import bp as roster_api_bp
from .roster_repo import RosterRepo
from .selection_api import bp as selection_api_bp
from .selection_repo import SelectionRepo
from .selection_service import SelectionService


def create_app(config_override: dict[str, Any] | None = None) -> Flask:
    load_dotenv()
    app = Flask(__name__)

    # --- Configuration ---
    cfg = Config.from_env()
    if config_override:
        known = {k: v for k, v in config_override.items() if hasattr(cfg, k)}
        if known:
            cfg.override(known)
    if not os.getenv("DATABASE_URL") and cfg.database_url == "sqlite:///dev.db":
        # Stable absolute dev DB path under the instance folder
        os.makedirs(app.instance_path, exist_ok=True)
        cfg.database_url = f"sqlite:///{os.path.join(app.instance_path, 'dev.db')}"
    app.config.update(cfg.to_flask_dict())
    if config_override:
        for k, v in config_override.items():  # also allow direct Flask config keys
            if k.isupper():
                app.config[k] = v
    app.config["MEALPICK_CONFIG"] = cfg

    # --- DB setup ---
    init_engine(cfg.database_url, force=bool(app.config.get("FORCE_DB_REINIT")))
    app.logger.info("DB_URL=%s", cfg.database_url)

    # --- Side channels ---
    configure_metrics(cfg.metrics_backend)
    configure_notifier(cfg.notifications_backend)

    # --- Core services ---
    selections = SelectionRepo()
    menus = MenuRepo()
    food_status = FoodStatusRepo()
    roster = RosterRepo()
    engine = SelectionService.from_config(cfg)
    engine.selections, engine.menus, engine.food_status = selections, menus, food_status
    app.selection_service = engine  # type: ignore[attr-defined]
    app.report_service = ReportService(roster, selections, food_status)  # type: ignore[attr-defined]
    app.menu_repo = menus  # type: ignore[attr-defined]
    app.roster_repo = roster  # type: ignore[attr-defined]

    log = request_logger()

    @app.before_request
    def _before_req() -> Response | None:
        if app.config.get("TESTING"):
            # Header identity for tests; the session is still the source of truth
            uid = request.headers.get("X-User-Id")
            if uid and uid.isdigit():
                session["user_id"] = int(uid)
        g._t0 = time.perf_counter()
        g.request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        return None

    @app.after_request
    def _after_req(resp: Response) -> Response:
        dur_ms = int((time.perf_counter() - getattr(g, "_t0", time.perf_counter())) * 1000)
        rid = getattr(g, "request_id", None) or str(uuid.uuid4())
        resp.headers["X-Request-Id"] = rid
        resp.headers["X-Request-Duration-ms"] = str(dur_ms)
        if "Cache-Control" not in resp.headers:
            resp.headers["Cache-Control"] = "no-store"
        log.info(
            {
                "request_id": rid,
                "user_id": session.get("user_id"),
                "method": request.method,
                "path": request.path,
                "status": resp.status_code,
                "duration_ms": dur_ms,
            }
        )
        return resp

    app.teardown_appcontext(remove_session)

    # --- Error handling ---
    register_error_handlers(app)

    # --- Blueprints ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(selection_api_bp)
    app.register_blueprint(menu_api_bp)
    app.register_blueprint(roster_api_bp)
    app.register_blueprint(report_api_bp)

    install_buffer_handler()

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "timezone": cfg.timezone,
            "geofencing": cfg.geofencing_enabled,
            "recent_warnings": len(LOG_BUFFER),
        }

    return app


__all__ = ["create_app"]
