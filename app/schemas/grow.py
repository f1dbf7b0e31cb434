"""
Cultivation Schemas
===================

Request schemas for the grow API: rooms, plants, batches, METRC tags and
harvests. Business rules (capacity, tag availability, phase transitions)
are enforced by the services; these models only check shape and ranges.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from app.domain.layout import MAX_FLOORS, MAX_GRID_DIMENSION, MAX_RACKS_PER_FLOOR, MAX_TRAYS_PER_RACK
from app.enums.grow import (
    BatchType,
    GrowthPhase,
    HarvestType,
    LayoutKind,
    RoomType,
    StrainCategory,
    TagType,
)


# ---------------------------------------------------------------------------
# Facility, strains and rooms
# ---------------------------------------------------------------------------
class UpdateFacilityRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    license_number: str | None = Field(default=None, max_length=64)


class CreateStrainRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, description="Unique strain name")
    category: StrainCategory | None = None


class UpdateStrainRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    category: StrainCategory | None = None
    active: bool | None = Field(default=None, description="Inactive strains cannot be placed")


class CreateRoomRequest(BaseModel):
    """Request schema for creating a room with a grid or rack/tray layout."""

    name: str = Field(..., min_length=1, max_length=120)
    room_type: RoomType | None = None
    floor_count: int = Field(default=1, ge=1, le=MAX_FLOORS)
    layout_kind: LayoutKind = Field(default=LayoutKind.GRID, description="grid or rack")

    # Grid layout
    rows: int | None = Field(default=None, ge=1, le=MAX_GRID_DIMENSION)
    cols: int | None = Field(default=None, ge=1, le=MAX_GRID_DIMENSION)
    zone_capacity: int = Field(default=1, ge=1, description="Default plants per grid zone")

    # Rack layout
    racks_per_floor: int | None = Field(default=None, ge=1, le=MAX_RACKS_PER_FLOOR)
    trays_per_rack: int | None = Field(default=None, ge=1, le=MAX_TRAYS_PER_RACK)
    tray_capacity: int = Field(default=1, ge=1, description="Plants per tray")

    @model_validator(mode="after")
    def check_layout_dimensions(self):
        if self.layout_kind == LayoutKind.GRID and (self.rows is None or self.cols is None):
            raise ValueError("rows and cols are required for grid rooms")
        if self.layout_kind == LayoutKind.RACK and (self.racks_per_floor is None or self.trays_per_rack is None):
            raise ValueError("racks_per_floor and trays_per_rack are required for rack rooms")
        return self


class UpdateRoomRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    room_type: RoomType | None = None


class ZoneCapacityRequest(BaseModel):
    capacity: int = Field(..., ge=1, description="Maximum plants in the zone")


# ---------------------------------------------------------------------------
# Plant batches
# ---------------------------------------------------------------------------
class CreatePlantBatchRequest(BaseModel):
    """Request schema for creating a plant batch."""

    name: str = Field(..., min_length=1, max_length=120)
    strain_id: int = Field(..., gt=0)
    batch_type: BatchType = Field(default=BatchType.CLONE)
    initial_count: int = Field(..., ge=1, le=100_000)
    notes: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Plants
# ---------------------------------------------------------------------------
class SlotTarget(BaseModel):
    """Explicit placement target: a grid zone or a tray."""

    room_id: int | None = Field(default=None, gt=0)
    floor: int | None = Field(default=None, ge=1, le=MAX_FLOORS)
    row: int | None = Field(default=None, ge=0)
    col: int | None = Field(default=None, ge=0)
    tray_id: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_target(self):
        if self.tray_id is None and self.room_id is None:
            raise ValueError("room_id with floor/row/col, or tray_id, is required")
        return self

    def slot_kwargs(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "floor": self.floor,
            "row": self.row,
            "col": self.col,
            "tray_id": self.tray_id,
        }


class CreatePlantRequest(SlotTarget):
    """Request schema for placing one plant."""

    strain_id: int = Field(..., gt=0)
    plant_batch_id: int | None = Field(default=None, gt=0)
    growth_phase: GrowthPhase = Field(default=GrowthPhase.IMMATURE)
    custom_label: str | None = Field(default=None, max_length=120)
    metrc_tag: str | None = Field(default=None, max_length=32)


class BulkCreatePlantsRequest(SlotTarget):
    """Request schema for placing several plants into one slot."""

    count: int = Field(..., ge=1, le=500)
    strain_id: int = Field(..., gt=0)
    plant_batch_id: int | None = Field(default=None, gt=0)
    growth_phase: GrowthPhase = Field(default=GrowthPhase.IMMATURE)
    custom_labels: list[str] = Field(default_factory=list)


class MovePlantRequest(SlotTarget):
    pass


class TagPlantRequest(BaseModel):
    metrc_tag: str = Field(..., min_length=1, max_length=32)


class ChangePhaseRequest(BaseModel):
    growth_phase: GrowthPhase


class HarvestPlantRequest(BaseModel):
    harvest_id: int = Field(..., gt=0)


class DestroyPlantRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500, description="Destruction reason (required)")


class PlantNoteRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=5000)


# ---------------------------------------------------------------------------
# METRC tags
# ---------------------------------------------------------------------------
class ImportTagsRequest(BaseModel):
    """Bulk import; ``tags`` may be a list or a whitespace/comma separated string."""

    tags: list[str] | str
    tag_type: TagType = Field(default=TagType.PLANT_TAG)

    @field_validator("tags")
    @classmethod
    def require_tags(cls, v):
        if isinstance(v, str) and not v.strip():
            raise ValueError("tags must not be empty")
        if isinstance(v, list) and not v:
            raise ValueError("tags must not be empty")
        return v


# ---------------------------------------------------------------------------
# Harvests
# ---------------------------------------------------------------------------
class CreateHarvestRequest(BaseModel):
    """Request schema for opening a harvest from live plants."""

    name: str = Field(..., min_length=1, max_length=120)
    plant_ids: list[int] = Field(..., min_length=1)
    harvest_type: HarvestType = Field(default=HarvestType.HARVEST)
    harvest_date: str | None = Field(default=None, description="ISO-8601 date or datetime")
    wet_weight_grams: float | None = Field(default=None, ge=0)
    drying_room_id: int | None = Field(default=None, gt=0)
    notes: str | None = Field(default=None, max_length=2000)


class AddHarvestPlantsRequest(BaseModel):
    plant_ids: list[int] = Field(..., min_length=1)


class StartDryingRequest(BaseModel):
    drying_room_id: int | None = Field(default=None, gt=0)


class FinishDryingRequest(BaseModel):
    dry_weight_grams: float | None = Field(default=None, ge=0)
