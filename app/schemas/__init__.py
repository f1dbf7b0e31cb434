"""
Schemas Module
==============

This module provides Pydantic models for request validation.
"""

from app.schemas.grow import (
    AddHarvestPlantsRequest,
    BulkCreatePlantsRequest,
    ChangePhaseRequest,
    CreateHarvestRequest,
    CreatePlantBatchRequest,
    CreatePlantRequest,
    CreateRoomRequest,
    CreateStrainRequest,
    DestroyPlantRequest,
    FinishDryingRequest,
    HarvestPlantRequest,
    ImportTagsRequest,
    MovePlantRequest,
    PlantNoteRequest,
    SlotTarget,
    StartDryingRequest,
    TagPlantRequest,
    UpdateFacilityRequest,
    UpdateRoomRequest,
    UpdateStrainRequest,
    ZoneCapacityRequest,
)

__all__ = [
    "AddHarvestPlantsRequest",
    "BulkCreatePlantsRequest",
    "ChangePhaseRequest",
    "CreateHarvestRequest",
    "CreatePlantBatchRequest",
    "CreatePlantRequest",
    "CreateRoomRequest",
    "CreateStrainRequest",
    "DestroyPlantRequest",
    "FinishDryingRequest",
    "HarvestPlantRequest",
    "ImportTagsRequest",
    "MovePlantRequest",
    "PlantNoteRequest",
    "SlotTarget",
    "StartDryingRequest",
    "TagPlantRequest",
    "UpdateFacilityRequest",
    "UpdateRoomRequest",
    "UpdateStrainRequest",
    "ZoneCapacityRequest",
]
