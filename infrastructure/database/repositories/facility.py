"""
Facility Repository
===================

Repository for the facility, its strains, rooms and slots.

Responsibilities:
- Facility record and strain reference data
- Room rows (layout columns included) plus generated racks/trays
- Per-zone capacity overrides
- Occupant lookups for grid zones and trays
"""
from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Dict, List, Optional

from infrastructure.database.ops.facility import FacilityOperations
from infrastructure.database.repositories.base import row_to_dict, rows_to_dicts


class FacilityRepository:
    """Repository for facility layout operations."""

    def __init__(self, backend: FacilityOperations) -> None:
        self._backend = backend

    def transaction(self) -> AbstractContextManager:
        return self._backend.transaction()

    # Facility -----------------------------------------------------------------
    def create_facility(self, name: str, license_number: Optional[str] = None) -> int:
        return self._backend.insert_facility(name, license_number)

    def get(self, record_id: int) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_facility(record_id))

    def get_default_facility(self) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_first_facility())

    def update_facility(self, facility_id: int, **fields: Any) -> None:
        self._backend.update_facility(facility_id, **fields)

    # Strains ------------------------------------------------------------------
    def create_strain(self, name: str, category: Optional[str] = None, active: bool = True) -> int:
        return self._backend.insert_strain(name, category, active)

    def get_strain(self, strain_id: int) -> Optional[Dict[str, Any]]:
        strain = row_to_dict(self._backend.get_strain(strain_id))
        if strain is not None:
            strain["active"] = bool(strain["active"])
        return strain

    def get_strain_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_strain_by_name(name))

    def list_strains(self, *, active_only: bool = False) -> List[Dict[str, Any]]:
        strains = rows_to_dicts(self._backend.list_strains(active_only=active_only))
        for strain in strains:
            strain["active"] = bool(strain["active"])
        return strains

    def update_strain(self, strain_id: int, **fields: Any) -> None:
        self._backend.update_strain(strain_id, **fields)

    # Rooms --------------------------------------------------------------------
    def create_room(self, **fields: Any) -> int:
        return self._backend.insert_room(**fields)

    def get_room(self, room_id: int) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_room(room_id))

    def list_rooms(self, facility_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return rows_to_dicts(self._backend.list_rooms(facility_id))

    def update_room(self, room_id: int, **fields: Any) -> None:
        self._backend.update_room(room_id, **fields)

    def count_room_occupants(self, room_id: int) -> int:
        return self._backend.count_room_occupants(room_id)

    # Grid zones ---------------------------------------------------------------
    def get_zone_capacity(self, room_id: int, floor: int, row: int, col: int) -> Optional[int]:
        return self._backend.get_zone_capacity(room_id, floor, row, col)

    def list_zone_capacities(self, room_id: int, floor: int) -> Dict[tuple, int]:
        return self._backend.list_zone_capacities(room_id, floor)

    def set_zone_capacity(self, room_id: int, floor: int, row: int, col: int, capacity: int) -> None:
        self._backend.upsert_zone_capacity(room_id, floor, row, col, capacity)

    def list_grid_occupants(self, room_id: int, floor: int, row: int, col: int) -> List[Dict[str, Any]]:
        return rows_to_dicts(self._backend.list_grid_occupants(room_id, floor, row, col))

    def list_floor_occupants(self, room_id: int, floor: int) -> List[Dict[str, Any]]:
        return rows_to_dicts(self._backend.list_floor_occupants(room_id, floor))

    # Racks & trays ------------------------------------------------------------
    def create_rack(self, room_id: int, floor: int, position: int, name: str) -> int:
        return self._backend.insert_rack(room_id, floor, position, name)

    def create_tray(self, rack_id: int, position: int, name: str, capacity: int) -> int:
        return self._backend.insert_tray(rack_id, position, name, capacity)

    def list_racks(self, room_id: int, floor: int) -> List[Dict[str, Any]]:
        return rows_to_dicts(self._backend.list_racks(room_id, floor))

    def list_trays(self, room_id: int, floor: int) -> List[Dict[str, Any]]:
        return rows_to_dicts(self._backend.list_trays(room_id, floor))

    def get_tray(self, tray_id: int) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_tray(tray_id))

    def list_tray_occupants(self, tray_id: int) -> List[Dict[str, Any]]:
        return rows_to_dicts(self._backend.list_tray_occupants(tray_id))
