from __future__ import annotations

import atexit
import logging
import threading
from typing import Any

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from app.blueprints.api.grow import grow_api
from app.config import load_config, setup_logging

API_PREFIX = "/api/v1"


def create_app(config_overrides: dict[str, Any] | None = None) -> Flask:
    """Build the GrowTrack Flask app.

    ``config_overrides`` keys are ``AppConfig`` field names (case-insensitive),
    e.g. ``{"database_path": "/tmp/test.db"}``.
    """
    config = load_config()
    for key, value in (config_overrides or {}).items():
        setattr(config, key.lower(), value)

    # Logging first so that schema creation and facility bootstrap are visible.
    setup_logging(debug=config.debug, log_dir=config.log_dir, level=config.log_level)

    flask_app = Flask(__name__)
    flask_app.config.update(config.as_flask_config())
    flask_app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=config.environment == "production",
    )

    from app.services.container import ServiceContainer

    container = ServiceContainer.build(config)
    flask_app.config["CONTAINER"] = container
    container.database.init_app(flask_app)
    flask_app.config["SHUTDOWN"] = _register_shutdown(container)

    _register_error_handlers(flask_app)
    flask_app.register_blueprint(grow_api, url_prefix=f"{API_PREFIX}/grow")

    logging.getLogger(__name__).info(
        "GrowTrack initialized (blueprints: %s)", ", ".join(sorted(flask_app.blueprints))
    )
    return flask_app


def _register_shutdown(container):
    """Return an idempotent shutdown callable, also run at interpreter exit."""
    lock = threading.Lock()
    done = False

    def _graceful_shutdown(reason: str = "unknown") -> None:
        nonlocal done
        with lock:
            if done:
                return
            done = True
        logging.info("Graceful shutdown initiated (%s)", reason)
        container.shutdown()

    atexit.register(_graceful_shutdown, "atexit")
    return _graceful_shutdown


def _register_error_handlers(flask_app: Flask) -> None:
    from app.domain.exceptions import GrowTrackError
    from app.utils.http import domain_error_response, error_response, safe_error

    @flask_app.errorhandler(Exception)
    def _handle_unhandled(exc):
        # Only /api/ paths get the JSON envelope.
        if not request.path.startswith("/api/"):
            raise exc
        if isinstance(exc, HTTPException):
            status = int(exc.code or 500)
            if status >= 500:
                return safe_error(exc, status, context="http-exception")
            return error_response(exc.description or "Request failed", status)
        if isinstance(exc, GrowTrackError):
            return domain_error_response(exc)
        return safe_error(exc, 500, context="unhandled")

    @flask_app.errorhandler(413)
    def _handle_too_large(_exc):
        return error_response("Request payload too large", 413)


__all__ = ["create_app"]
