"""
Facility Layout Endpoints
=========================

Facility details, strains, rooms, floor views and zone capacity overrides.
"""

from __future__ import annotations

import logging

from flask import request
from pydantic import ValidationError

from app.blueprints.api._common import (
    fail as _fail,
    get_actor,
    get_event_log as _event_log,
    get_facility_service as _facility_service,
    get_json,
    success as _success,
)
from app.domain.layout import GridLayout, RackTrayLayout
from app.enums.grow import LayoutKind, TrackableType
from app.schemas import (
    CreateRoomRequest,
    CreateStrainRequest,
    UpdateFacilityRequest,
    UpdateRoomRequest,
    UpdateStrainRequest,
    ZoneCapacityRequest,
)
from app.utils.http import safe_route

from . import grow_api

logger = logging.getLogger("grow_api.rooms")


# ============================================================================
# FACILITY
# ============================================================================


@grow_api.get("/facility")
@safe_route("Failed to load facility")
def get_facility():
    """Facility with rooms, occupancy and live plant counts by phase"""
    return _success(_facility_service().get_facility())


@grow_api.put("/facility")
@safe_route("Failed to update facility")
def update_facility():
    try:
        body = UpdateFacilityRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    facility = _facility_service().update_facility(actor=get_actor(), **body.model_dump(exclude_none=True))
    return _success(facility)


# ============================================================================
# STRAINS
# ============================================================================


@grow_api.get("/strains")
@safe_route("Failed to list strains")
def list_strains():
    active_only = request.args.get("active", "").lower() in {"1", "true", "yes"}
    return _success(_facility_service().list_strains(active_only=active_only))


@grow_api.post("/strains")
@safe_route("Failed to create strain")
def create_strain():
    try:
        body = CreateStrainRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    category = body.category.value if body.category else None
    strain = _facility_service().create_strain(body.name, category, actor=get_actor())
    return _success(strain, 201)


@grow_api.put("/strains/<int:strain_id>")
@safe_route("Failed to update strain")
def update_strain(strain_id: int):
    try:
        body = UpdateStrainRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    changes = body.model_dump(exclude_none=True, mode="json")
    return _success(_facility_service().update_strain(strain_id, actor=get_actor(), **changes))


# ============================================================================
# ROOMS
# ============================================================================


@grow_api.get("/rooms")
@safe_route("Failed to list rooms")
def list_rooms():
    return _success(_facility_service().list_rooms())


@grow_api.post("/rooms")
@safe_route("Failed to create room")
def create_room():
    """Create a grid room (rows x cols) or a rack room (racks x trays per floor)"""
    try:
        body = CreateRoomRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})

    if body.layout_kind == LayoutKind.RACK:
        layout = RackTrayLayout(body.racks_per_floor, body.trays_per_rack, body.tray_capacity)
    else:
        layout = GridLayout(body.rows, body.cols, body.zone_capacity)
    room = _facility_service().create_room(
        name=body.name,
        layout=layout,
        floor_count=body.floor_count,
        room_type=body.room_type.value if body.room_type else None,
        actor=get_actor(),
    )
    logger.info("Room '%s' created by %s", room["name"], get_actor())
    return _success(room, 201)


@grow_api.get("/rooms/<int:room_id>")
@safe_route("Failed to load room")
def get_room(room_id: int):
    return _success(_facility_service().get_room_summary(room_id))


@grow_api.put("/rooms/<int:room_id>")
@safe_route("Failed to update room")
def update_room(room_id: int):
    try:
        body = UpdateRoomRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    room = _facility_service().update_room(
        room_id,
        actor=get_actor(),
        name=body.name,
        room_type=body.room_type.value if body.room_type else None,
    )
    return _success(room)


@grow_api.get("/rooms/<int:room_id>/events")
@safe_route("Failed to load room history")
def room_events(room_id: int):
    _facility_service().get_room(room_id)
    return _success(_event_log().list_for(TrackableType.ROOM, room_id))


@grow_api.get("/rooms/<int:room_id>/floors/<int:floor>")
@safe_route("Failed to load floor")
def floor_view(room_id: int, floor: int):
    """Every zone or tray on one floor with capacity and occupants"""
    return _success(_facility_service().floor_view(room_id, floor))


@grow_api.put("/rooms/<int:room_id>/floors/<int:floor>/zones/<int:row>/<int:col>")
@safe_route("Failed to update zone capacity")
def set_zone_capacity(room_id: int, floor: int, row: int, col: int):
    try:
        body = ZoneCapacityRequest(**get_json())
    except ValidationError as ve:
        return _fail("Invalid request", 400, details={"errors": ve.errors(include_context=False)})
    zone = _facility_service().set_zone_capacity(room_id, floor, row, col, body.capacity, actor=get_actor())
    return _success(zone)
