"""
Audit Event Endpoints
=====================

Facility-wide, newest-first view over the append-only event log.
"""

from __future__ import annotations

import logging

from flask import request

from app.blueprints.api._common import (
    fail as _fail,
    get_event_log as _event_log,
    query_int,
    success as _success,
)
from app.utils.http import safe_route

from . import grow_api

logger = logging.getLogger("grow_api.audit")


@grow_api.get("/audit-events")
@safe_route("Failed to load audit events")
def list_audit_events():
    try:
        limit = query_int("limit")
        offset = query_int("offset")
    except ValueError as e:
        return _fail(str(e), 400)
    events, total = _event_log().list_events(
        limit=limit,
        offset=offset,
        trackable_type=request.args.get("trackable_type") or None,
    )
    return _success(events, meta={"total": total, "limit": limit, "offset": offset or 0})
