"""
Cultivation Enumerations
========================

Enums for rooms, plants, batches, compliance tags and the plant event log.
"""

from enum import Enum


class GrowthPhase(str, Enum):
    """Growth phases a live plant moves through."""

    IMMATURE = "immature"
    VEGETATIVE = "vegetative"
    FLOWERING = "flowering"

    @property
    def rank(self) -> int:
        return _PHASE_ORDER.index(self)

    def __str__(self):
        return self.value


_PHASE_ORDER = [GrowthPhase.IMMATURE, GrowthPhase.VEGETATIVE, GrowthPhase.FLOWERING]


class PlantStatus(str, Enum):
    """Plant status. Anything other than ACTIVE is terminal."""

    ACTIVE = "active"
    HARVESTED = "harvested"
    DESTROYED = "destroyed"

    def __str__(self):
        return self.value


class BatchType(str, Enum):
    """How the plants of a batch were propagated."""

    SEED = "seed"
    CLONE = "clone"
    MOTHER = "mother"

    def __str__(self):
        return self.value


class StrainCategory(str, Enum):
    INDICA = "indica"
    SATIVA = "sativa"
    HYBRID = "hybrid"

    def __str__(self):
        return self.value


class RoomType(str, Enum):
    """Purpose of a cultivation room."""

    CLONE = "clone"
    MOTHER = "mother"
    VEG = "veg"
    FLOWER = "flower"
    DRY = "dry"
    CURE = "cure"

    def __str__(self):
        return self.value


class LayoutKind(str, Enum):
    """Addressing scheme of a room: row/col grid or racks holding trays."""

    GRID = "grid"
    RACK = "rack"

    def __str__(self):
        return self.value


class TagType(str, Enum):
    PLANT_TAG = "plant_tag"
    PACKAGE_TAG = "package_tag"

    def __str__(self):
        return self.value


class TagStatus(str, Enum):
    """METRC tag pool status."""

    AVAILABLE = "available"
    ASSIGNED = "assigned"
    RETIRED = "retired"

    def __str__(self):
        return self.value


class TrackableType(str, Enum):
    """Entity kinds that own an event history."""

    PLANT = "plant"
    PLANT_BATCH = "plant_batch"
    ROOM = "room"
    HARVEST = "harvest"
    METRC_TAG = "metrc_tag"
    FACILITY = "facility"

    def __str__(self):
        return self.value


class PlantEventType(str, Enum):
    """Event log entry types."""

    # Plant history
    PLACED = "placed"
    MOVED = "moved"
    PHASE_CHANGED = "phase_changed"
    TAGGED = "tagged"
    NOTED = "noted"
    HARVESTED = "harvested"
    DESTROYED = "destroyed"

    # Batches, rooms, harvests, tags, facility
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    RETIRED = "retired"

    def __str__(self):
        return self.value


PLANT_EVENT_TYPES = frozenset(
    {
        PlantEventType.PLACED,
        PlantEventType.MOVED,
        PlantEventType.PHASE_CHANGED,
        PlantEventType.TAGGED,
        PlantEventType.NOTED,
        PlantEventType.HARVESTED,
        PlantEventType.DESTROYED,
    }
)


class HarvestStatus(str, Enum):
    """Harvest aggregate status, from cut to closed."""

    ACTIVE = "active"
    DRYING = "drying"
    DRIED = "dried"
    PACKAGED = "packaged"
    CLOSED = "closed"

    def __str__(self):
        return self.value


class HarvestType(str, Enum):
    """Whole-plant harvest or a partial manicure cut."""

    HARVEST = "harvest"
    MANICURE = "manicure"

    def __str__(self):
        return self.value
