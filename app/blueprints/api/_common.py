"""
Shared helpers for the grow API blueprints: service lookup from the
container, the acting user, request parsing and the response envelope.
"""
from __future__ import annotations

import logging
from typing import Any

from flask import current_app, request, session

from app.utils.http import error_response, success_response

logger = logging.getLogger("api._common")

DEFAULT_ACTOR = "system"
MAX_ACTOR_LENGTH = 120


def get_actor() -> str:
    """Acting user recorded on events: session user, then ``X-Actor`` header, then ``system``."""
    actor = str(session.get("user") or request.headers.get("X-Actor", "")).strip()
    return actor[:MAX_ACTOR_LENGTH] if actor else DEFAULT_ACTOR


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------
def get_container():
    container = current_app.config.get("CONTAINER")
    if container is None:
        raise RuntimeError("ServiceContainer not found in app config")
    return container


def get_facility_service():
    return get_container().facility_service


def get_lifecycle_service():
    return get_container().lifecycle_service


def get_batch_service():
    return get_container().batch_service


def get_tag_service():
    return get_container().tag_service


def get_harvest_service():
    return get_container().harvest_service


def get_event_log():
    return get_container().event_log


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
def get_json() -> dict:
    """JSON object body, or ``{}`` so that the request schema reports what is missing."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def query_int(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Query parameter '{name}' must be an integer") from None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
def success(data: Any = None, status: int = 200, *, message: str | None = None, meta: dict | None = None):
    return success_response(data, status, message=message, meta=meta)


def fail(message: str, status: int = 400, *, details: dict | None = None):
    return error_response(message, status, details=details)
