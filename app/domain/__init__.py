"""
Domain Package
==============
Immutable value objects and pure rules for the cultivation facility.

Room layouts and slots live in :mod:`app.domain.layout`, plant and harvest
transition rules in :mod:`app.domain.plant_lifecycle`, and METRC tag
normalisation in :mod:`app.domain.metrc`.
"""

from .layout import GridLayout, RackTrayLayout, Room, RoomLayout, Slot, layout_from_row, zone_key
from .metrc import normalize_tag, parse_tag_list
from .plant_lifecycle import (
    HARVEST_TRANSITIONS,
    coerce_phase,
    ensure_active,
    harvest_transition,
    phase_transition,
)

__all__ = [
    # Layout
    "GridLayout",
    "RackTrayLayout",
    "Room",
    "RoomLayout",
    "Slot",
    "layout_from_row",
    "zone_key",
    # METRC
    "normalize_tag",
    "parse_tag_list",
    # Lifecycle rules
    "HARVEST_TRANSITIONS",
    "coerce_phase",
    "ensure_active",
    "harvest_transition",
    "phase_transition",
]
