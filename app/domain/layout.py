"""
Room Layout Domain
==================
Addressing model for cultivation rooms.

A room has exactly one layout for its lifetime, resolved once when the room
row is loaded:

* :class:`GridLayout` addresses slots as ``(floor, row, col)``; rows and
  columns are 0-based, floors are 1-based.
* :class:`RackTrayLayout` addresses slots by tray; racks sit on a floor and
  hold an ordered list of trays.

A :class:`Slot` is the atomic placement target (a grid zone or a tray). It
carries its capacity and the plants currently occupying it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Union

from app.domain.exceptions import InvalidCoordinate, ValidationError
from app.enums.grow import LayoutKind, RoomType

MAX_FLOORS = 20
MAX_GRID_DIMENSION = 100
MAX_RACKS_PER_FLOOR = 50
MAX_TRAYS_PER_RACK = 20


def zone_key(row: int, col: int) -> str:
    """Key used for grid zones in floor views, e.g. ``"2-5"``."""
    return f"{row}-{col}"


def _require_range(name: str, value: Any, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if value < low or value > high:
        raise ValidationError(f"{name} must be between {low} and {high}")
    return value


@dataclass(frozen=True, slots=True)
class GridLayout:
    rows: int
    cols: int
    default_capacity: int

    kind: ClassVar[LayoutKind] = LayoutKind.GRID

    def __post_init__(self) -> None:
        _require_range("rows", self.rows, 1, MAX_GRID_DIMENSION)
        _require_range("cols", self.cols, 1, MAX_GRID_DIMENSION)
        _require_range("default_zone_capacity", self.default_capacity, 1, 10_000)

    def contains(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "rows": self.rows,
            "cols": self.cols,
            "default_zone_capacity": self.default_capacity,
        }


@dataclass(frozen=True, slots=True)
class RackTrayLayout:
    racks_per_floor: int
    trays_per_rack: int
    tray_capacity: int

    kind: ClassVar[LayoutKind] = LayoutKind.RACK

    def __post_init__(self) -> None:
        _require_range("racks_per_floor", self.racks_per_floor, 1, MAX_RACKS_PER_FLOOR)
        _require_range("trays_per_rack", self.trays_per_rack, 1, MAX_TRAYS_PER_RACK)
        _require_range("tray_capacity", self.tray_capacity, 1, 10_000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "racks_per_floor": self.racks_per_floor,
            "trays_per_rack": self.trays_per_rack,
            "tray_capacity": self.tray_capacity,
        }


RoomLayout = Union[GridLayout, RackTrayLayout]


def layout_from_row(row: Mapping[str, Any]) -> RoomLayout:
    """Resolve the layout variant stored on a ``Rooms`` row."""
    kind = LayoutKind(row["layout_kind"])
    if kind is LayoutKind.GRID:
        return GridLayout(
            rows=int(row["grid_rows"]),
            cols=int(row["grid_cols"]),
            default_capacity=int(row["default_zone_capacity"]),
        )
    return RackTrayLayout(
        racks_per_floor=int(row["racks_per_floor"]),
        trays_per_rack=int(row["trays_per_rack"]),
        tray_capacity=int(row["tray_capacity"]),
    )


@dataclass(frozen=True, slots=True)
class Room:
    """A room with its resolved layout."""

    room_id: int
    facility_id: int
    name: str
    floor_count: int
    layout: RoomLayout
    room_type: RoomType | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Room":
        room_type = row.get("room_type")
        return cls(
            room_id=int(row["room_id"]),
            facility_id=int(row["facility_id"]),
            name=row["name"],
            floor_count=int(row["floor_count"]),
            layout=layout_from_row(row),
            room_type=RoomType(room_type) if room_type else None,
        )

    @property
    def uses_racks(self) -> bool:
        return isinstance(self.layout, RackTrayLayout)

    def validate_floor(self, floor: Any) -> int:
        if isinstance(floor, bool) or not isinstance(floor, int):
            raise InvalidCoordinate(f"Floor must be an integer for room '{self.name}'")
        if floor < 1 or floor > self.floor_count:
            raise InvalidCoordinate(
                f"Floor {floor} is outside room '{self.name}' (floors 1-{self.floor_count})",
                detail={"room_id": self.room_id, "floor": floor},
            )
        return floor

    def validate_grid_position(self, floor: Any, row: Any, col: Any) -> tuple[int, int, int]:
        """Return ``(floor, row, col)`` or raise :class:`InvalidCoordinate`."""
        if self.uses_racks:
            raise InvalidCoordinate(
                f"Room '{self.name}' uses racks; address plants by tray",
                detail={"room_id": self.room_id},
            )
        floor = self.validate_floor(floor)
        for label, value in (("row", row), ("col", col)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidCoordinate(f"{label} must be an integer")
        if not self.layout.contains(row, col):
            raise InvalidCoordinate(
                f"Zone {zone_key(row, col)} is outside room '{self.name}' "
                f"({self.layout.rows} rows x {self.layout.cols} cols)",
                detail={"room_id": self.room_id, "floor": floor, "row": row, "col": col},
            )
        return floor, row, col

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "facility_id": self.facility_id,
            "name": self.name,
            "room_type": self.room_type.value if self.room_type else None,
            "floor_count": self.floor_count,
            "layout": self.layout.to_dict(),
        }


@dataclass(slots=True)
class Slot:
    """A grid zone or tray together with its current occupants."""

    room_id: int
    room_name: str
    floor: int
    capacity: int
    occupants: list[dict[str, Any]] = field(default_factory=list)
    row: int | None = None
    col: int | None = None
    tray_id: int | None = None
    tray_name: str | None = None
    rack_id: int | None = None
    rack_name: str | None = None
    position: int | None = None

    @property
    def is_tray(self) -> bool:
        return self.tray_id is not None

    @property
    def key(self) -> str:
        if self.is_tray:
            return f"tray-{self.tray_id}"
        return zone_key(self.row, self.col)

    @property
    def occupancy(self) -> int:
        return len(self.occupants)

    def has_capacity(self, exclude_plant_id: int | None = None) -> bool:
        count = sum(1 for p in self.occupants if p.get("plant_id") != exclude_plant_id)
        return count < self.capacity

    def same_position(self, other: "Slot") -> bool:
        if self.is_tray or other.is_tray:
            return self.tray_id == other.tray_id
        return (self.room_id, self.floor, self.row, self.col) == (other.room_id, other.floor, other.row, other.col)

    def location(self) -> dict[str, Any]:
        """Human-readable location recorded in event metadata."""
        if self.is_tray:
            return {
                "room_id": self.room_id,
                "room_name": self.room_name,
                "floor": self.floor,
                "rack_id": self.rack_id,
                "rack_name": self.rack_name,
                "tray_id": self.tray_id,
                "tray_name": self.tray_name,
            }
        return {
            "room_id": self.room_id,
            "room_name": self.room_name,
            "floor": self.floor,
            "row": self.row,
            "col": self.col,
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.location()
        data.update(
            {
                "key": self.key,
                "capacity": self.capacity,
                "occupancy": self.occupancy,
                "available": max(self.capacity - self.occupancy, 0),
                "plants": list(self.occupants),
            }
        )
        if self.is_tray:
            data["position"] = self.position
        return data
