"""
Facility Service
================

Grid addressing for the facility: rooms, floors, zones, racks and trays.

Lookups never mutate plant state. Room and zone-capacity changes are the
only writes made here; plant placement flows through
:class:`~app.services.application.plant_lifecycle_service.PlantLifecycleService`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from app.domain.exceptions import (
    ConflictError,
    InvalidCoordinate,
    NotFoundError,
    StrainInactive,
    ValidationError,
)
from app.domain.layout import (
    MAX_FLOORS,
    GridLayout,
    RackTrayLayout,
    Room,
    RoomLayout,
    Slot,
    zone_key,
)
from app.enums.grow import GrowthPhase, PlantEventType, RoomType, StrainCategory, TrackableType

if TYPE_CHECKING:
    from app.services.application.event_log_service import EventLogService
    from infrastructure.database.repositories.facility import FacilityRepository
    from infrastructure.database.repositories.plants import PlantRepository
    from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)


def _occupant_summary(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "plant_id": row["plant_id"],
        "plant_uid": row["plant_uid"],
        "custom_label": row.get("custom_label"),
        "growth_phase": row["growth_phase"],
        "strain_id": row["strain_id"],
        "strain_name": row.get("strain_name"),
        "plant_batch_id": row.get("plant_batch_id"),
        "metrc_tag": row.get("metrc_tag"),
    }


class FacilityService:
    """Facility, strain and room management plus slot resolution."""

    def __init__(
        self,
        facility_repo: "FacilityRepository",
        plant_repo: "PlantRepository",
        event_log: "EventLogService",
        audit_logger: "AuditLogger | None" = None,
    ) -> None:
        self._repo = facility_repo
        self._plants = plant_repo
        self._events = event_log
        self._audit = audit_logger

    # ------------------------------------------------------------------
    # Facility
    # ------------------------------------------------------------------
    def ensure_default_facility(self, name: str, license_number: str | None = None) -> dict[str, Any]:
        """Return the facility, creating it on first start."""
        with self._repo.transaction():
            facility = self._repo.get_default_facility()
            if facility is None:
                facility_id = self._repo.create_facility(name, license_number or None)
                facility = self._repo.get(facility_id)
                logger.info("Created facility '%s' (id=%s)", name, facility_id)
        return facility

    def _require_facility(self) -> dict[str, Any]:
        facility = self._repo.get_default_facility()
        if facility is None:
            raise NotFoundError("Facility has not been configured")
        return facility

    def get_facility(self) -> dict[str, Any]:
        """Facility with per-room occupancy and a grow summary of live plants by phase."""
        facility = self._require_facility()
        counts = self._plants.count_active_by_phase(facility["facility_id"])
        summary = {phase.value: counts.get(phase.value, 0) for phase in GrowthPhase}
        summary["total"] = sum(summary.values())
        facility["rooms"] = self.list_rooms()
        facility["grow_summary"] = summary
        return facility

    def update_facility(self, *, actor: str, **fields: Any) -> dict[str, Any]:
        changes = {k: v for k, v in fields.items() if k in {"name", "license_number"} and v is not None}
        if "name" in changes and not str(changes["name"]).strip():
            raise ValidationError("Facility name is required")
        with self._repo.transaction():
            facility = self._require_facility()
            if changes:
                self._repo.update_facility(facility["facility_id"], **changes)
                self._events.append(
                    TrackableType.FACILITY,
                    facility["facility_id"],
                    PlantEventType.UPDATED,
                    actor,
                    {"changes": changes},
                )
        return self.get_facility()

    # ------------------------------------------------------------------
    # Strains
    # ------------------------------------------------------------------
    def create_strain(self, name: str, category: str | None = None, *, actor: str) -> dict[str, Any]:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Strain name is required")
        if category is not None:
            try:
                category = StrainCategory(category).value
            except ValueError:
                raise ValidationError(f"Unknown strain category '{category}'") from None
        with self._repo.transaction():
            if self._repo.get_strain_by_name(name.strip()):
                raise ConflictError(f"Strain '{name.strip()}' already exists")
            strain_id = self._repo.create_strain(name.strip(), category)
        if self._audit:
            self._audit.log_event(actor, "strain.create", f"strain:{strain_id}", "success", name=name.strip())
        return self._repo.get_strain(strain_id)

    def get_strain(self, strain_id: int) -> dict[str, Any]:
        strain = self._repo.get_strain(strain_id)
        if strain is None:
            raise NotFoundError(f"Strain {strain_id} not found")
        return strain

    def require_active_strain(self, strain_id: int) -> dict[str, Any]:
        strain = self.get_strain(strain_id)
        if not strain["active"]:
            raise StrainInactive(f"Strain '{strain['name']}' is inactive", detail={"strain_id": strain_id})
        return strain

    def list_strains(self, *, active_only: bool = False) -> list[dict[str, Any]]:
        return self._repo.list_strains(active_only=active_only)

    def update_strain(self, strain_id: int, *, actor: str, **fields: Any) -> dict[str, Any]:
        changes = {k: v for k, v in fields.items() if v is not None}
        if "category" in changes:
            try:
                changes["category"] = StrainCategory(changes["category"]).value
            except ValueError:
                raise ValidationError(f"Unknown strain category '{changes['category']}'") from None
        if "name" in changes:
            if not str(changes["name"]).strip():
                raise ValidationError("Strain name is required")
            changes["name"] = str(changes["name"]).strip()
        with self._repo.transaction():
            self.get_strain(strain_id)
            if "name" in changes:
                clash = self._repo.get_strain_by_name(changes["name"])
                if clash and clash["strain_id"] != strain_id:
                    raise ConflictError(f"Strain '{changes['name']}' already exists")
            self._repo.update_strain(strain_id, **changes)
        if self._audit:
            self._audit.log_event(actor, "strain.update", f"strain:{strain_id}", "success", **changes)
        return self.get_strain(strain_id)

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------
    def create_room(
        self,
        *,
        name: str,
        layout: RoomLayout,
        floor_count: int = 1,
        room_type: str | None = None,
        actor: str,
    ) -> dict[str, Any]:
        """Create a room; rack layouts get their racks and trays generated up front."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Room name is required")
        if isinstance(floor_count, bool) or not isinstance(floor_count, int) or not 1 <= floor_count <= MAX_FLOORS:
            raise ValidationError(f"floor_count must be between 1 and {MAX_FLOORS}")
        room_type_value = self._coerce_room_type(room_type)

        layout_columns: dict[str, Any]
        if isinstance(layout, GridLayout):
            layout_columns = {
                "grid_rows": layout.rows,
                "grid_cols": layout.cols,
                "default_zone_capacity": layout.default_capacity,
            }
        elif isinstance(layout, RackTrayLayout):
            layout_columns = {
                "racks_per_floor": layout.racks_per_floor,
                "trays_per_rack": layout.trays_per_rack,
                "tray_capacity": layout.tray_capacity,
            }
        else:
            raise ValidationError("Room layout must be a grid or rack/tray layout")

        with self._repo.transaction():
            facility = self._require_facility()
            if any(r["name"].lower() == name.strip().lower() for r in self._repo.list_rooms(facility["facility_id"])):
                raise ConflictError(f"Room '{name.strip()}' already exists")
            room_id = self._repo.create_room(
                facility_id=facility["facility_id"],
                name=name.strip(),
                layout_kind=layout.kind.value,
                floor_count=floor_count,
                room_type=room_type_value,
                **layout_columns,
            )
            if isinstance(layout, RackTrayLayout):
                self._generate_racks(room_id, floor_count, layout)
            self._events.append(
                TrackableType.ROOM,
                room_id,
                PlantEventType.CREATED,
                actor,
                {"name": name.strip(), "floor_count": floor_count, "layout": layout.to_dict()},
            )
        logger.info("Created %s room '%s' (id=%s)", layout.kind.value, name.strip(), room_id)
        if self._audit:
            self._audit.log_event(actor, "room.create", f"room:{room_id}", "success", layout=layout.kind.value)
        return self.get_room_summary(room_id)

    def _generate_racks(self, room_id: int, floor_count: int, layout: RackTrayLayout) -> None:
        for floor in range(1, floor_count + 1):
            for rack_position in range(1, layout.racks_per_floor + 1):
                rack_name = f"F{floor}-R{rack_position}"
                rack_id = self._repo.create_rack(room_id, floor, rack_position, rack_name)
                for tray_position in range(1, layout.trays_per_rack + 1):
                    self._repo.create_tray(rack_id, tray_position, f"{rack_name}-T{tray_position}", layout.tray_capacity)

    def update_room(
        self,
        room_id: int,
        *,
        actor: str,
        name: str | None = None,
        room_type: str | None = None,
    ) -> dict[str, Any]:
        """Rename or retype a room. Layout and floor count are fixed for the room's lifetime."""
        changes: dict[str, Any] = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Room name is required")
            changes["name"] = name.strip()
        if room_type is not None:
            changes["room_type"] = self._coerce_room_type(room_type)
        with self._repo.transaction():
            room = self.get_room(room_id)
            if "name" in changes:
                clash = [
                    r
                    for r in self._repo.list_rooms(room.facility_id)
                    if r["room_id"] != room_id and r["name"].lower() == changes["name"].lower()
                ]
                if clash:
                    raise ConflictError(f"Room '{changes['name']}' already exists")
            if changes:
                self._repo.update_room(room_id, **changes)
                self._events.append(TrackableType.ROOM, room_id, PlantEventType.UPDATED, actor, {"changes": changes})
        return self.get_room_summary(room_id)

    def get_room(self, room_id: int) -> Room:
        row = self._repo.get_room(room_id)
        if row is None:
            raise NotFoundError(f"Room {room_id} not found")
        return Room.from_row(row)

    def get_room_summary(self, room_id: int) -> dict[str, Any]:
        return self._room_summary(self.get_room(room_id))

    def list_rooms(self) -> list[dict[str, Any]]:
        facility = self._repo.get_default_facility()
        rows = self._repo.list_rooms(facility["facility_id"] if facility else None)
        return [self._room_summary(Room.from_row(row)) for row in rows]

    def _room_summary(self, room: Room) -> dict[str, Any]:
        data = room.to_dict()
        data["occupancy"] = self._repo.count_room_occupants(room.room_id)
        data["capacity"] = self._room_capacity(room)
        return data

    def _room_capacity(self, room: Room) -> int:
        total = 0
        for floor in range(1, room.floor_count + 1):
            if room.uses_racks:
                total += sum(int(t["capacity"]) for t in self._repo.list_trays(room.room_id, floor))
            else:
                overrides = self._repo.list_zone_capacities(room.room_id, floor)
                layout = room.layout
                cells = layout.rows * layout.cols
                total += layout.default_capacity * (cells - len(overrides)) + sum(overrides.values())
        return total

    @staticmethod
    def _coerce_room_type(room_type: str | None) -> str | None:
        if room_type is None:
            return None
        try:
            return RoomType(room_type).value
        except ValueError:
            raise ValidationError(f"Unknown room type '{room_type}'") from None

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------
    def floor_view(self, room_id: int, floor: int) -> dict[str, Any]:
        """All placeable slots of one floor with capacity and occupants.

        Grid rooms return ``grid`` keyed ``"row-col"``; rack rooms return
        ``racks`` each holding its ordered ``trays``.
        """
        room = self.get_room(room_id)
        room.validate_floor(floor)
        view: dict[str, Any] = {
            "room": room.to_dict(),
            "floor": floor,
            "layout_kind": room.layout.kind.value,
        }
        if room.uses_racks:
            view["racks"] = self._rack_view(room, floor)
            return view

        layout = room.layout
        overrides = self._repo.list_zone_capacities(room_id, floor)
        occupants: dict[tuple[int, int], list[dict[str, Any]]] = {}
        for row in self._repo.list_floor_occupants(room_id, floor):
            occupants.setdefault((row["grid_row"], row["grid_col"]), []).append(_occupant_summary(row))
        grid: dict[str, Any] = {}
        for r in range(layout.rows):
            for c in range(layout.cols):
                slot = Slot(
                    room_id=room.room_id,
                    room_name=room.name,
                    floor=floor,
                    row=r,
                    col=c,
                    capacity=overrides.get((r, c), layout.default_capacity),
                    occupants=occupants.get((r, c), []),
                )
                grid[zone_key(r, c)] = slot.to_dict()
        view.update({"rows": layout.rows, "cols": layout.cols, "grid": grid})
        return view

    def _rack_view(self, room: Room, floor: int) -> list[dict[str, Any]]:
        occupants: dict[int, list[dict[str, Any]]] = {}
        for row in self._repo.list_floor_occupants(room.room_id, floor):
            occupants.setdefault(row["tray_id"], []).append(_occupant_summary(row))
        racks: dict[int, dict[str, Any]] = {}
        for rack in self._repo.list_racks(room.room_id, floor):
            racks[rack["rack_id"]] = {
                "rack_id": rack["rack_id"],
                "name": rack["name"],
                "position": rack["position"],
                "total_capacity": 0,
                "occupancy": 0,
                "trays": [],
            }
        for tray in self._repo.list_trays(room.room_id, floor):
            slot = self._tray_slot(room, tray, occupants.get(tray["tray_id"], []))
            rack = racks[tray["rack_id"]]
            rack["trays"].append(slot.to_dict())
            rack["total_capacity"] += slot.capacity
            rack["occupancy"] += slot.occupancy
        return list(racks.values())

    @staticmethod
    def _tray_slot(room: Room, tray: dict[str, Any], occupants: list[dict[str, Any]]) -> Slot:
        return Slot(
            room_id=room.room_id,
            room_name=room.name,
            floor=int(tray["floor"]),
            capacity=int(tray["capacity"]),
            occupants=occupants,
            tray_id=tray["tray_id"],
            tray_name=tray["name"],
            rack_id=tray["rack_id"],
            rack_name=tray["rack_name"],
            position=tray["position"],
        )

    def zone_at(self, room_id: int, floor: int, row: int, col: int) -> Slot:
        """Grid zone with capacity and occupants.

        Raises:
            NotFoundError: unknown room
            InvalidCoordinate: outside the room's bounds or the room uses racks
        """
        room = self.get_room(room_id)
        floor, row, col = room.validate_grid_position(floor, row, col)
        capacity = self._repo.get_zone_capacity(room_id, floor, row, col)
        return Slot(
            room_id=room.room_id,
            room_name=room.name,
            floor=floor,
            row=row,
            col=col,
            capacity=capacity if capacity is not None else room.layout.default_capacity,
            occupants=[_occupant_summary(r) for r in self._repo.list_grid_occupants(room_id, floor, row, col)],
        )

    def tray_at(self, tray_id: int, room_id: int | None = None) -> Slot:
        tray = self._repo.get_tray(tray_id) if isinstance(tray_id, int) and not isinstance(tray_id, bool) else None
        if tray is None:
            raise InvalidCoordinate(f"Tray {tray_id} does not exist", detail={"tray_id": tray_id})
        if room_id is not None and tray["room_id"] != room_id:
            raise InvalidCoordinate(
                f"Tray {tray_id} is not in room {room_id}",
                detail={"tray_id": tray_id, "room_id": room_id},
            )
        room = self.get_room(tray["room_id"])
        occupants = [_occupant_summary(r) for r in self._repo.list_tray_occupants(tray_id)]
        return self._tray_slot(room, tray, occupants)

    def resolve_slot(
        self,
        room_id: int | None,
        *,
        floor: int | None = None,
        row: int | None = None,
        col: int | None = None,
        tray_id: int | None = None,
    ) -> Slot:
        """Resolve an explicit placement target to a grid zone or tray."""
        if tray_id is not None:
            if row is not None or col is not None:
                raise InvalidCoordinate("Give either a tray or a row/col, not both")
            slot = self.tray_at(tray_id, room_id)
            if floor is not None and floor != slot.floor:
                raise InvalidCoordinate(f"Tray {tray_id} is on floor {slot.floor}, not {floor}")
            return slot
        if room_id is None:
            raise ValidationError("room_id is required")
        if floor is None or row is None or col is None:
            room = self.get_room(room_id)
            if room.uses_racks:
                raise InvalidCoordinate(f"Room '{room.name}' uses racks; address plants by tray")
            raise ValidationError("floor, row and col are required for grid rooms")
        return self.zone_at(room_id, floor, row, col)

    def slot_for_plant(self, plant: dict[str, Any]) -> Slot | None:
        """Current slot of a plant, or None once it has been vacated."""
        if plant.get("room_id") is None:
            return None
        if plant.get("tray_id") is not None:
            return self.tray_at(plant["tray_id"])
        return self.zone_at(plant["room_id"], plant["floor"], plant["grid_row"], plant["grid_col"])

    def refresh_slot(self, slot: Slot) -> Slot:
        if slot.is_tray:
            return self.tray_at(slot.tray_id)
        return self.zone_at(slot.room_id, slot.floor, slot.row, slot.col)

    @staticmethod
    def has_capacity(slot: Slot, exclude_plant_id: int | None = None) -> bool:
        return slot.has_capacity(exclude_plant_id)

    def set_zone_capacity(
        self,
        room_id: int,
        floor: int,
        row: int,
        col: int,
        capacity: int,
        *,
        actor: str,
    ) -> dict[str, Any]:
        """Override one grid zone's capacity. Never drops below current occupancy."""
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValidationError("capacity must be a positive integer")
        with self._repo.transaction():
            zone = self.zone_at(room_id, floor, row, col)
            if capacity < zone.occupancy:
                raise ConflictError(
                    f"Zone {zone.key} holds {zone.occupancy} plants; capacity cannot drop to {capacity}",
                    detail={"occupancy": zone.occupancy, "capacity": capacity},
                )
            self._repo.set_zone_capacity(room_id, zone.floor, zone.row, zone.col, capacity)
            self._events.append(
                TrackableType.ROOM,
                room_id,
                PlantEventType.UPDATED,
                actor,
                {"zone": zone.location(), "capacity": {"from": zone.capacity, "to": capacity}},
            )
            zone = self.refresh_slot(zone)
        return zone.to_dict()
