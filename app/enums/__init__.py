"""
Enums Module
============

This module provides enumeration types for the GrowTrack application.
Enums ensure type safety and consistency across the codebase.
"""

from app.enums.grow import (
    PLANT_EVENT_TYPES,
    BatchType,
    GrowthPhase,
    HarvestStatus,
    HarvestType,
    LayoutKind,
    PlantEventType,
    PlantStatus,
    RoomType,
    StrainCategory,
    TagStatus,
    TagType,
    TrackableType,
)

__all__ = [
    "PLANT_EVENT_TYPES",
    "BatchType",
    "GrowthPhase",
    "HarvestStatus",
    "HarvestType",
    "LayoutKind",
    "PlantEventType",
    "PlantStatus",
    "RoomType",
    "StrainCategory",
    "TagStatus",
    "TagType",
    "TrackableType",
]
