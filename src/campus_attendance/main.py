from __future__ import annotations

import atexit
import logging
from datetime import timedelta
from typing import Any, Mapping, Optional

import requests
from dotenv import load_dotenv
from flask import Flask, jsonify, redirect, request, url_for
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from .attendance.controller import register as register_attendance
from .binding.controller import register as register_binding
from .config import get_settings_module, load_settings
from .container import build_container
from .core.exceptions import BindingRequired, StorageFailure, Unauthenticated
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "系統錯誤，請稍後再試"


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(Unauthenticated)
    def handle_unauthenticated(e):
        return redirect(url_for("login"))

    @app.errorhandler(BindingRequired)
    def handle_binding_required(e):
        if request.method == "GET":
            return redirect(url_for("bind_student"))
        return jsonify(success=False, error=str(e), redirect=url_for("bind_student")), 403

    @app.errorhandler(StorageFailure)
    def handle_storage_failure(e):
        logger.error("Storage failure on %s %s: %s", request.method, request.path, e)
        return jsonify(success=False, error=GENERIC_ERROR_MESSAGE), 500

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(success=False, error=GENERIC_ERROR_MESSAGE), 500


def create_app(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    http_session: Optional[requests.Session] = None,
) -> Flask:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = load_settings(settings_module, overrides=overrides)
    configure_logging(settings.debug)

    app = Flask(__name__)
    # Client IP comes from X-Forwarded-For behind the reverse proxy.
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)
    app.secret_key = settings.auth_secret
    app.config.update(
        DEBUG=settings.debug,
        TESTING=settings.testing,
        PERMANENT_SESSION_LIFETIME=timedelta(days=settings.session_days),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=not (settings.debug or settings.testing),
    )

    container = build_container(settings, http_session=http_session)
    atexit.register(container.close)

    if settings.auto_init_db:
        apply_schema(container.database)
        logger.info("settings=%s db=%s tables=%d", settings_module, settings.database_path, len(list_tables(container.database)))
    if settings.auto_seed_db:
        apply_seed_sql(container.database)

    app.extensions["campus_attendance"] = container

    register_users(app, container)
    register_binding(app, container)
    register_attendance(app, container)
    register_error_handlers(app)

    return app
