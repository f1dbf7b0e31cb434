from __future__ import annotations

import logging
import sqlite3
from typing import Any

from app.utils.time import iso_now

logger = logging.getLogger(__name__)

_ACTIVE_PLANT_COLUMNS = """
    p.plant_id, p.plant_uid, p.custom_label, p.growth_phase, p.strain_id,
    s.name AS strain_name, p.plant_batch_id, p.grid_row, p.grid_col, p.tray_id,
    t.tag AS metrc_tag
"""


class FacilityOperations:
    """Facility, strain, room and slot helpers shared across database handlers."""

    # --- Facility -------------------------------------------------------------
    def insert_facility(self, name: str, license_number: str | None = None) -> int:
        now = iso_now()
        cur = self.get_db().execute(
            "INSERT INTO Facilities (name, license_number, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (name, license_number, now, now),
        )
        return cur.lastrowid

    def get_facility(self, facility_id: int) -> sqlite3.Row | None:
        return self.get_db().execute("SELECT * FROM Facilities WHERE facility_id = ?", (facility_id,)).fetchone()

    def get_first_facility(self) -> sqlite3.Row | None:
        return self.get_db().execute("SELECT * FROM Facilities ORDER BY facility_id ASC LIMIT 1").fetchone()

    def update_facility(self, facility_id: int, **fields: Any) -> None:
        self._update_row("Facilities", "facility_id", facility_id, {"name", "license_number"}, fields)

    # --- Strains --------------------------------------------------------------
    def insert_strain(self, name: str, category: str | None = None, active: bool = True) -> int:
        cur = self.get_db().execute(
            "INSERT INTO Strains (name, category, active, created_at) VALUES (?, ?, ?, ?)",
            (name, category, 1 if active else 0, iso_now()),
        )
        return cur.lastrowid

    def get_strain(self, strain_id: int) -> sqlite3.Row | None:
        return self.get_db().execute("SELECT * FROM Strains WHERE strain_id = ?", (strain_id,)).fetchone()

    def get_strain_by_name(self, name: str) -> sqlite3.Row | None:
        return self.get_db().execute("SELECT * FROM Strains WHERE name = ?", (name,)).fetchone()

    def list_strains(self, *, active_only: bool = False) -> list[sqlite3.Row]:
        query = "SELECT * FROM Strains"
        if active_only:
            query += " WHERE active = 1"
        return self.get_db().execute(query + " ORDER BY name ASC").fetchall()

    def update_strain(self, strain_id: int, **fields: Any) -> None:
        if "active" in fields:
            fields["active"] = 1 if fields["active"] else 0
        allowed = {"name", "category", "active"}
        updates = {k: v for k, v in fields.items() if k in allowed}
        if not updates:
            return
        assignments = ", ".join(f"{column} = ?" for column in updates)
        self.get_db().execute(
            f"UPDATE Strains SET {assignments} WHERE strain_id = ?",
            (*updates.values(), strain_id),
        )

    # --- Rooms ----------------------------------------------------------------
    def insert_room(
        self,
        *,
        facility_id: int,
        name: str,
        layout_kind: str,
        floor_count: int = 1,
        room_type: str | None = None,
        grid_rows: int | None = None,
        grid_cols: int | None = None,
        default_zone_capacity: int | None = None,
        racks_per_floor: int | None = None,
        trays_per_rack: int | None = None,
        tray_capacity: int | None = None,
    ) -> int:
        now = iso_now()
        cur = self.get_db().execute(
            """
            INSERT INTO Rooms (
                facility_id, name, room_type, layout_kind, floor_count,
                grid_rows, grid_cols, default_zone_capacity,
                racks_per_floor, trays_per_rack, tray_capacity,
                created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                facility_id,
                name,
                room_type,
                layout_kind,
                floor_count,
                grid_rows,
                grid_cols,
                default_zone_capacity,
                racks_per_floor,
                trays_per_rack,
                tray_capacity,
                now,
                now,
            ),
        )
        return cur.lastrowid

    def get_room(self, room_id: int) -> sqlite3.Row | None:
        return self.get_db().execute("SELECT * FROM Rooms WHERE room_id = ?", (room_id,)).fetchone()

    def list_rooms(self, facility_id: int | None = None) -> list[sqlite3.Row]:
        db = self.get_db()
        if facility_id is None:
            return db.execute("SELECT * FROM Rooms ORDER BY room_id ASC").fetchall()
        return db.execute(
            "SELECT * FROM Rooms WHERE facility_id = ? ORDER BY room_id ASC", (facility_id,)
        ).fetchall()

    def update_room(self, room_id: int, **fields: Any) -> None:
        self._update_row("Rooms", "room_id", room_id, {"name", "room_type"}, fields)

    def count_room_occupants(self, room_id: int) -> int:
        row = self.get_db().execute(
            "SELECT COUNT(*) FROM Plants WHERE room_id = ? AND status = 'active'", (room_id,)
        ).fetchone()
        return int(row[0])

    # --- Grid zones -----------------------------------------------------------
    def get_zone_capacity(self, room_id: int, floor: int, row: int, col: int) -> int | None:
        """Return the per-zone capacity override, or None when the room default applies."""
        found = self.get_db().execute(
            """
            SELECT capacity FROM GridZones
            WHERE room_id = ? AND floor = ? AND row_index = ? AND col_index = ?
            """,
            (room_id, floor, row, col),
        ).fetchone()
        return int(found["capacity"]) if found else None

    def list_zone_capacities(self, room_id: int, floor: int) -> dict[tuple[int, int], int]:
        rows = self.get_db().execute(
            "SELECT row_index, col_index, capacity FROM GridZones WHERE room_id = ? AND floor = ?",
            (room_id, floor),
        ).fetchall()
        return {(r["row_index"], r["col_index"]): int(r["capacity"]) for r in rows}

    def upsert_zone_capacity(self, room_id: int, floor: int, row: int, col: int, capacity: int) -> None:
        self.get_db().execute(
            """
            INSERT INTO GridZones (room_id, floor, row_index, col_index, capacity)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (room_id, floor, row_index, col_index) DO UPDATE SET capacity = excluded.capacity
            """,
            (room_id, floor, row, col, capacity),
        )

    def list_grid_occupants(self, room_id: int, floor: int, row: int, col: int) -> list[sqlite3.Row]:
        return self.get_db().execute(
            f"""
            SELECT {_ACTIVE_PLANT_COLUMNS}
            FROM Plants p
            JOIN Strains s ON s.strain_id = p.strain_id
            LEFT JOIN MetrcTags t ON t.plant_id = p.plant_id
            WHERE p.status = 'active' AND p.room_id = ? AND p.floor = ?
              AND p.grid_row = ? AND p.grid_col = ?
            ORDER BY p.plant_id ASC
            """,
            (room_id, floor, row, col),
        ).fetchall()

    def list_floor_occupants(self, room_id: int, floor: int) -> list[sqlite3.Row]:
        return self.get_db().execute(
            f"""
            SELECT {_ACTIVE_PLANT_COLUMNS}
            FROM Plants p
            JOIN Strains s ON s.strain_id = p.strain_id
            LEFT JOIN MetrcTags t ON t.plant_id = p.plant_id
            WHERE p.status = 'active' AND p.room_id = ? AND p.floor = ?
            ORDER BY p.plant_id ASC
            """,
            (room_id, floor),
        ).fetchall()

    # --- Racks & trays --------------------------------------------------------
    def insert_rack(self, room_id: int, floor: int, position: int, name: str) -> int:
        cur = self.get_db().execute(
            "INSERT INTO Racks (room_id, floor, position, name) VALUES (?, ?, ?, ?)",
            (room_id, floor, position, name),
        )
        return cur.lastrowid

    def insert_tray(self, rack_id: int, position: int, name: str, capacity: int) -> int:
        cur = self.get_db().execute(
            "INSERT INTO Trays (rack_id, position, name, capacity) VALUES (?, ?, ?, ?)",
            (rack_id, position, name, capacity),
        )
        return cur.lastrowid

    def list_racks(self, room_id: int, floor: int) -> list[sqlite3.Row]:
        return self.get_db().execute(
            "SELECT * FROM Racks WHERE room_id = ? AND floor = ? ORDER BY position ASC",
            (room_id, floor),
        ).fetchall()

    def list_trays(self, room_id: int, floor: int) -> list[sqlite3.Row]:
        return self.get_db().execute(
            """
            SELECT t.*, r.room_id, r.floor, r.name AS rack_name, r.position AS rack_position
            FROM Trays t
            JOIN Racks r ON r.rack_id = t.rack_id
            WHERE r.room_id = ? AND r.floor = ?
            ORDER BY r.position ASC, t.position ASC
            """,
            (room_id, floor),
        ).fetchall()

    def get_tray(self, tray_id: int) -> sqlite3.Row | None:
        return self.get_db().execute(
            """
            SELECT t.*, r.room_id, r.floor, r.name AS rack_name, r.position AS rack_position
            FROM Trays t
            JOIN Racks r ON r.rack_id = t.rack_id
            WHERE t.tray_id = ?
            """,
            (tray_id,),
        ).fetchone()

    def list_tray_occupants(self, tray_id: int) -> list[sqlite3.Row]:
        return self.get_db().execute(
            f"""
            SELECT {_ACTIVE_PLANT_COLUMNS}
            FROM Plants p
            JOIN Strains s ON s.strain_id = p.strain_id
            LEFT JOIN MetrcTags t ON t.plant_id = p.plant_id
            WHERE p.status = 'active' AND p.tray_id = ?
            ORDER BY p.plant_id ASC
            """,
            (tray_id,),
        ).fetchall()

    # --- Helpers --------------------------------------------------------------
    def _update_row(
        self,
        table: str,
        key_column: str,
        key: int,
        allowed_fields: set[str],
        fields: dict[str, Any],
    ) -> None:
        updates = {k: v for k, v in fields.items() if k in allowed_fields}
        if not updates:
            return
        updates["updated_at"] = iso_now()
        assignments = ", ".join(f"{column} = ?" for column in updates)
        self.get_db().execute(
            f"UPDATE {table} SET {assignments} WHERE {key_column} = ?",
            (*updates.values(), key),
        )
