"""
JSON Envelope Helpers
=====================

Every grow API response uses one envelope::

    {"ok": true,  "data": ..., "error": null, "meta": {...}?}
    {"ok": false, "data": null, "error": {"message", "timestamp", "code"?, "detail"?}}

Domain errors (:class:`~app.domain.exceptions.GrowTrackError`) choose their
own status and error code. Anything else is logged with its traceback and
answered with a generic message.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import Response, jsonify

from app.utils.time import iso_now

_log = logging.getLogger(__name__)

_GENERIC_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    404: "Resource not found",
    409: "Conflict",
    413: "Request payload too large",
    500: "An internal error occurred",
    503: "Service temporarily unavailable",
}


def success_response(
    data: Any = None,
    status: int = 200,
    *,
    message: str | None = None,
    meta: dict | None = None,
) -> Response:
    payload: dict[str, Any] = {"ok": True, "data": data, "error": None}
    if message is not None:
        payload["message"] = message
    if meta is not None:
        payload["meta"] = meta
    response = jsonify(payload)
    response.status_code = status
    return response


def error_response(message: str, status: int = 500, *, details: dict | None = None) -> Response:
    """Failure envelope. ``details`` is merged into ``error`` and echoed at the top level."""
    error: dict[str, Any] = {"message": message, "timestamp": iso_now()}
    body: dict[str, Any] = {"ok": False, "data": None, "error": error, "message": message}
    if details:
        error.update(details)
        body["details"] = details
    response = jsonify(body)
    response.status_code = status
    return response


def safe_error(exc: BaseException, status: int = 500, *, context: str = "") -> Response:
    """Log ``exc`` server-side and answer with a generic message only.

    SQL fragments, file paths and class names never reach the client.
    """
    _log.error("API error [%s] %s: %s", status, context, exc, exc_info=exc)
    return error_response(_GENERIC_MESSAGES.get(status, _GENERIC_MESSAGES[500]), status)


def domain_error_response(exc: BaseException, fallback_message: str = "Request failed") -> Response:
    """Map a :class:`GrowTrackError` to its response.

    4xx errors were written for the caller, so their message, ``code`` and
    ``detail`` are returned as-is. 5xx errors go through :func:`safe_error`.
    """
    status = exc.http_status
    if status >= 500:
        return safe_error(exc, status, context=type(exc).__name__)
    details: dict[str, Any] = {"code": exc.code}
    if exc.detail:
        details["detail"] = exc.detail
    return error_response(str(exc) or fallback_message, status, details=details)


def safe_route(error_message: str = "An internal error occurred", *, error_status: int = 500) -> Callable:
    """Wrap a route so that no exception escapes it un-enveloped.

    Usage::

        @grow_api.post("/plants/<int:plant_id>/move")
        @safe_route("Failed to move plant")
        def move_plant(plant_id: int):
            ...
    """
    from app.domain.exceptions import GrowTrackError

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Response:
            try:
                return fn(*args, **kwargs)
            except GrowTrackError as exc:
                return domain_error_response(exc, error_message)
            except Exception as exc:
                return safe_error(exc, error_status, context=error_message)

        return wrapper

    return decorator
