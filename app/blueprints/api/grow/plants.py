"""
Plant Endpoints
===============

Placement, moves, tagging, phase changes, harvest, destruction and notes.
Every command responds with the fresh state of the plant, the event it
wrote and the zones, tags and batch it touched.
"""

from __future__ import annotations

import logging

from flask import request
from pydantic import ValidationError

from app.blueprints.api._common import (
    fail as _fail,
    get_actor,
    get_json,
    get_lifecycle_service as _lifecycle_service,
    query_int,
    success as _success,
)
from app.schemas import (
    BulkCreatePlantsRequest,
    ChangePhaseRequest,
    CreatePlantRequest,
    DestroyPlantRequest,
    HarvestPlantRequest,
    MovePlantRequest,
    PlantNoteRequest,
    TagPlantRequest,
)
from app.utils.http import safe_route

from . import grow_api

logger = logging.getLogger("grow_api.plants")

_LIST_FILTERS = ("status", "growth_phase", "room_id", "strain_id", "plant_batch_id", "harvest_id")


# ============================================================================
# QUERIES
# ============================================================================


@grow_api.get("/plants")
@safe_route("Failed to list plants")
def list_plants():
    """List plants with optional filters; ``meta.total`` counts all matches"""
    try:
        filters = {}
        for name in _LIST_FILTERS:
            if name in ("status", "growth_phase"):
                value = request.args.get(name) or None
            else:
                value = query_int(name)
            if value is not None:
                filters[name] = value
        limit = query_int("limit")
        offset = query_int("offset")
    except ValueError as e:
        return _fail(str(e), 400)

    plants, total = _lifecycle_service().list_plants(filters, limit=limit, offset=offset)
    return _success(plants, meta={"total": total, "limit": limit, "offset": offset or 0})


@grow_api.get("/plants/lookup")
@safe_route("Failed to look up plant")
def lookup_plant():
    """Find one plant by UID, METRC tag or custom label"""
    query = request.args.get("q", "")
    if not query.strip():
        return _fail("Query parameter 'q' is required", 400)
    return _success(_lifecycle_service().lookup_plant(query))


@grow_api.get("/plants/<int:plant_id>")
@safe_route("Failed to load plant")
def get_plant(plant_id: int):
    return _success(_lifecycle_service().get_plant(plant_id))


@grow_api.get("/plants/<int:plant_id>/events")
@safe_route("Failed to load plant history")
def plant_events(plant_id: int):
    """Plant history, newest first"""
    return _success(_lifecycle_service().history(plant_id))


# ============================================================================
# PLACEMENT
# ============================================================================


@grow_api.post("/plants")
@safe_route("Failed to place plant")
def create_plant():
    """Place a plant into a grid zone (room_id, floor, row, col) or a tray (tray_id)"""
    try:
        body = CreatePlantRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})

    result = _lifecycle_service().place_plant(
        strain_id=body.strain_id,
        plant_batch_id=body.plant_batch_id,
        growth_phase=body.growth_phase,
        custom_label=body.custom_label,
        metrc_tag=body.metrc_tag,
        actor=get_actor(),
        **body.slot_kwargs(),
    )
    return _success(result.to_dict(), 201)


@grow_api.post("/plants/bulk")
@safe_route("Failed to place plants")
def bulk_create_plants():
    """Place ``count`` plants into one slot; all of them or none"""
    try:
        body = BulkCreatePlantsRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})

    result = _lifecycle_service().place_plants(
        count=body.count,
        strain_id=body.strain_id,
        plant_batch_id=body.plant_batch_id,
        growth_phase=body.growth_phase,
        custom_labels=body.custom_labels,
        actor=get_actor(),
        **body.slot_kwargs(),
    )
    data = result.to_dict()
    data["plants"] = result.plants
    data["events"] = result.events
    return _success(data, 201)


# ============================================================================
# COMMANDS
# ============================================================================


@grow_api.post("/plants/<int:plant_id>/move")
@safe_route("Failed to move plant")
def move_plant(plant_id: int):
    try:
        body = MovePlantRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    result = _lifecycle_service().move_plant(plant_id, actor=get_actor(), **body.slot_kwargs())
    return _success(result.to_dict())


@grow_api.post("/plants/<int:plant_id>/tag")
@safe_route("Failed to tag plant")
def tag_plant(plant_id: int):
    try:
        body = TagPlantRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    result = _lifecycle_service().tag_plant(plant_id, body.metrc_tag, actor=get_actor())
    return _success(result.to_dict())


@grow_api.post("/plants/<int:plant_id>/phase")
@safe_route("Failed to change plant phase")
def change_phase(plant_id: int):
    try:
        body = ChangePhaseRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    result = _lifecycle_service().change_phase(plant_id, body.growth_phase, actor=get_actor())
    return _success(result.to_dict())


@grow_api.post("/plants/<int:plant_id>/harvest")
@safe_route("Failed to harvest plant")
def harvest_plant(plant_id: int):
    try:
        body = HarvestPlantRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    result = _lifecycle_service().harvest_plant(plant_id, body.harvest_id, actor=get_actor())
    return _success(result.to_dict())


@grow_api.post("/plants/<int:plant_id>/destroy")
@safe_route("Failed to destroy plant")
def destroy_plant(plant_id: int):
    try:
        body = DestroyPlantRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    result = _lifecycle_service().destroy_plant(plant_id, body.reason, actor=get_actor())
    logger.info("Plant %s destroyed by %s", plant_id, get_actor())
    return _success(result.to_dict())


@grow_api.post("/plants/<int:plant_id>/notes")
@safe_route("Failed to add note")
def add_note(plant_id: int):
    try:
        body = PlantNoteRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    result = _lifecycle_service().add_note(plant_id, body.note, actor=get_actor())
    return _success(result.to_dict(), 201)
