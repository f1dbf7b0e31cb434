"""
METRC Tag Endpoints
===================

Tag pool listing, statistics, bulk import and voiding. Tags are bound to
plants through the plant endpoints, never here.
"""

from __future__ import annotations

import logging

from flask import request
from pydantic import ValidationError

from app.blueprints.api._common import (
    fail as _fail,
    get_actor,
    get_json,
    get_tag_service as _tag_service,
    query_int,
    success as _success,
)
from app.schemas import ImportTagsRequest
from app.utils.http import safe_route

from . import grow_api

logger = logging.getLogger("grow_api.tags")


@grow_api.get("/metrc-tags")
@safe_route("Failed to list METRC tags")
def list_metrc_tags():
    try:
        limit = query_int("limit")
        offset = query_int("offset")
    except ValueError as e:
        return _fail(str(e), 400)
    tags, total = _tag_service().list_tags(
        status=request.args.get("status") or None,
        tag_type=request.args.get("tag_type") or None,
        limit=limit,
        offset=offset,
    )
    return _success(tags, meta={"total": total, "limit": limit, "offset": offset or 0})


@grow_api.get("/metrc-tags/stats")
@safe_route("Failed to load METRC tag statistics")
def metrc_tag_stats():
    return _success(_tag_service().tag_stats(request.args.get("tag_type") or None))


@grow_api.post("/metrc-tags/import")
@safe_route("Failed to import METRC tags")
def import_metrc_tags():
    """Import serials; rejected entries are reported inline, the rest are stored"""
    try:
        body = ImportTagsRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})

    report = _tag_service().import_tags(body.tags, body.tag_type, actor=get_actor())
    logger.info("Tag import by %s: %s created, %s rejected", get_actor(), report["created_count"], report["error_count"])
    return _success(report, 201 if report["created_count"] else 200)


@grow_api.post("/metrc-tags/<int:metrc_tag_id>/void")
@safe_route("Failed to void METRC tag")
def void_metrc_tag(metrc_tag_id: int):
    return _success(_tag_service().void_tag(metrc_tag_id, actor=get_actor()))
