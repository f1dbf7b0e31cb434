"""
Harvest Endpoints
=================

Open a harvest from live plants, add more plants while it is active, and
move it through drying, packaging and closing.
"""

from __future__ import annotations

import logging

from flask import request
from pydantic import ValidationError

from app.blueprints.api._common import (
    fail as _fail,
    get_actor,
    get_harvest_service as _harvest_service,
    get_json,
    success as _success,
)
from app.schemas import (
    AddHarvestPlantsRequest,
    CreateHarvestRequest,
    FinishDryingRequest,
    StartDryingRequest,
)
from app.utils.http import safe_route

from . import grow_api

logger = logging.getLogger("grow_api.harvests")


@grow_api.get("/harvests")
@safe_route("Failed to list harvests")
def list_harvests():
    return _success(_harvest_service().list_harvests(request.args.get("status") or None))


@grow_api.post("/harvests")
@safe_route("Failed to create harvest")
def create_harvest():
    try:
        body = CreateHarvestRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})

    created = _harvest_service().create_harvest(
        name=body.name,
        plant_ids=body.plant_ids,
        harvest_date=body.harvest_date,
        harvest_type=body.harvest_type,
        wet_weight_grams=body.wet_weight_grams,
        drying_room_id=body.drying_room_id,
        notes=body.notes,
        actor=get_actor(),
    )
    return _success(created, 201)


@grow_api.get("/harvests/<int:harvest_id>")
@safe_route("Failed to load harvest")
def get_harvest(harvest_id: int):
    return _success(_harvest_service().get_harvest(harvest_id))


@grow_api.get("/harvests/<int:harvest_id>/events")
@safe_route("Failed to load harvest history")
def harvest_events(harvest_id: int):
    return _success(_harvest_service().history(harvest_id))


@grow_api.post("/harvests/<int:harvest_id>/plants")
@safe_route("Failed to add plants to harvest")
def add_harvest_plants(harvest_id: int):
    try:
        body = AddHarvestPlantsRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    return _success(_harvest_service().add_plants(harvest_id, body.plant_ids, actor=get_actor()))


@grow_api.post("/harvests/<int:harvest_id>/start-drying")
@safe_route("Failed to start drying")
def start_drying(harvest_id: int):
    try:
        body = StartDryingRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    result = _harvest_service().start_drying(harvest_id, drying_room_id=body.drying_room_id, actor=get_actor())
    return _success(result)


@grow_api.post("/harvests/<int:harvest_id>/finish-drying")
@safe_route("Failed to finish drying")
def finish_drying(harvest_id: int):
    try:
        body = FinishDryingRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    result = _harvest_service().finish_drying(harvest_id, dry_weight_grams=body.dry_weight_grams, actor=get_actor())
    return _success(result)


@grow_api.post("/harvests/<int:harvest_id>/package")
@safe_route("Failed to package harvest")
def package_harvest(harvest_id: int):
    return _success(_harvest_service().package(harvest_id, actor=get_actor()))


@grow_api.post("/harvests/<int:harvest_id>/close")
@safe_route("Failed to close harvest")
def close_harvest(harvest_id: int):
    return _success(_harvest_service().close(harvest_id, actor=get_actor()))
