"""
Plant Batch Endpoints
=====================
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from app.blueprints.api._common import (
    fail as _fail,
    get_actor,
    get_batch_service as _batch_service,
    get_json,
    query_int,
    success as _success,
)
from app.schemas import CreatePlantBatchRequest
from app.utils.http import safe_route

from . import grow_api

logger = logging.getLogger("grow_api.batches")


@grow_api.get("/plant-batches")
@safe_route("Failed to list plant batches")
def list_plant_batches():
    try:
        strain_id = query_int("strain_id")
    except ValueError as e:
        return _fail(str(e), 400)
    return _success(_batch_service().list_batches(strain_id))


@grow_api.post("/plant-batches")
@safe_route("Failed to create plant batch")
def create_plant_batch():
    """Create a batch; plants join it when placed with its plant_batch_id"""
    try:
        body = CreatePlantBatchRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})

    created = _batch_service().create_batch(
        name=body.name,
        strain_id=body.strain_id,
        batch_type=body.batch_type,
        initial_count=body.initial_count,
        notes=body.notes,
        actor=get_actor(),
    )
    return _success(created, 201)


@grow_api.get("/plant-batches/<int:plant_batch_id>")
@safe_route("Failed to load plant batch")
def get_plant_batch(plant_batch_id: int):
    return _success(_batch_service().get_batch(plant_batch_id))


@grow_api.get("/plant-batches/<int:plant_batch_id>/events")
@safe_route("Failed to load plant batch history")
def plant_batch_events(plant_batch_id: int):
    return _success(_batch_service().history(plant_batch_id))
