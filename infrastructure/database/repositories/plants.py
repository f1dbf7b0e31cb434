"""
Plant Repository
================

Repository for plants and plant batches.

Responsibilities:
- Plant rows (location, phase, status) joined with strain, batch and tag
- Terminal transitions that clear the plant's slot
- Plant batch rows and their materialised active-plant count
"""
from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Dict, List, Optional, Tuple

from infrastructure.database.ops.plants import PlantOperations
from infrastructure.database.repositories.base import row_to_dict, rows_to_dicts


def _location_columns(slot: Any) -> Dict[str, Any]:
    return {
        "room_id": slot.room_id,
        "floor": slot.floor,
        "grid_row": slot.row,
        "grid_col": slot.col,
        "tray_id": slot.tray_id,
    }


class PlantRepository:
    """Repository for plant and batch operations."""

    def __init__(self, backend: PlantOperations) -> None:
        self._backend = backend

    def transaction(self) -> AbstractContextManager:
        return self._backend.transaction()

    # Plants -------------------------------------------------------------------
    def create_plant(
        self,
        *,
        plant_uid: str,
        strain_id: int,
        growth_phase: str,
        slot: Any,
        plant_batch_id: Optional[int] = None,
        custom_label: Optional[str] = None,
        placed_by: Optional[str] = None,
    ) -> int:
        """
        Insert an active plant occupying ``slot``.

        Args:
            plant_uid: Generated unique identifier
            strain_id: Strain of the plant
            growth_phase: Initial growth phase value
            slot: Target grid zone or tray (``app.domain.layout.Slot``)
            plant_batch_id: Optional batch the plant belongs to
            custom_label: Optional user label
            placed_by: Acting user

        Returns:
            New plant ID
        """
        return self._backend.insert_plant(
            plant_uid=plant_uid,
            strain_id=strain_id,
            growth_phase=growth_phase,
            plant_batch_id=plant_batch_id,
            custom_label=custom_label,
            placed_by=placed_by,
            **_location_columns(slot),
        )

    def get(self, record_id: int) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_plant(record_id))

    get_plant = get

    def find_plant(self, query: str) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.find_plant(query))

    def list_plants(
        self,
        filters: Optional[Dict[str, Any]] = None,
        *,
        limit: int,
        offset: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        rows, total = self._backend.list_plants(filters, limit=limit, offset=offset)
        return rows_to_dicts(rows), total

    def move_plant(self, plant_id: int, slot: Any) -> None:
        self._backend.update_plant_location(plant_id, **_location_columns(slot))

    def set_phase(self, plant_id: int, growth_phase: str) -> None:
        self._backend.update_plant_phase(plant_id, growth_phase)

    def terminate_plant(
        self,
        plant_id: int,
        *,
        status: str,
        harvest_id: Optional[int] = None,
        destroy_reason: Optional[str] = None,
    ) -> None:
        self._backend.terminate_plant(
            plant_id,
            status=status,
            harvest_id=harvest_id,
            destroy_reason=destroy_reason,
        )

    def count_active_by_phase(self, facility_id: Optional[int] = None) -> Dict[str, int]:
        return self._backend.count_active_plants_by_phase(facility_id)

    # Plant batches ------------------------------------------------------------
    def create_batch(self, **fields: Any) -> int:
        return self._backend.insert_plant_batch(**fields)

    def get_batch(self, plant_batch_id: int) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_plant_batch(plant_batch_id))

    def list_batches(self, strain_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return rows_to_dicts(self._backend.list_plant_batches(strain_id))

    def adjust_batch_count(self, plant_batch_id: int, delta: int) -> None:
        self._backend.adjust_batch_count(plant_batch_id, delta)

    def count_live_batch_members(self, plant_batch_id: int) -> int:
        return self._backend.count_live_batch_members(plant_batch_id)
