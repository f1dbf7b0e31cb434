from __future__ import annotations

import logging
import sqlite3
from typing import Any

from app.utils.time import iso_now

logger = logging.getLogger(__name__)

_PLANT_SELECT = """
    SELECT p.*, s.name AS strain_name, b.batch_uid, b.name AS batch_name,
           r.name AS room_name, t.tag AS metrc_tag
    FROM Plants p
    JOIN Strains s ON s.strain_id = p.strain_id
    LEFT JOIN PlantBatches b ON b.plant_batch_id = p.plant_batch_id
    LEFT JOIN Rooms r ON r.room_id = p.room_id
    LEFT JOIN MetrcTags t ON t.plant_id = p.plant_id
"""

_PLANT_FILTERS = {
    "status": "p.status = ?",
    "growth_phase": "p.growth_phase = ?",
    "room_id": "p.room_id = ?",
    "strain_id": "p.strain_id = ?",
    "plant_batch_id": "p.plant_batch_id = ?",
    "harvest_id": "p.harvest_id = ?",
}


class PlantOperations:
    """Plant and plant batch helpers shared across database handlers."""

    # --- Plants ---------------------------------------------------------------
    def insert_plant(
        self,
        *,
        plant_uid: str,
        strain_id: int,
        growth_phase: str,
        room_id: int,
        floor: int,
        grid_row: int | None = None,
        grid_col: int | None = None,
        tray_id: int | None = None,
        plant_batch_id: int | None = None,
        custom_label: str | None = None,
        placed_by: str | None = None,
    ) -> int:
        now = iso_now()
        cur = self.get_db().execute(
            """
            INSERT INTO Plants (
                plant_uid, strain_id, plant_batch_id, custom_label, growth_phase,
                status, room_id, floor, grid_row, grid_col, tray_id,
                placed_by, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, 'active', ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                plant_uid,
                strain_id,
                plant_batch_id,
                custom_label,
                growth_phase,
                room_id,
                floor,
                grid_row,
                grid_col,
                tray_id,
                placed_by,
                now,
                now,
            ),
        )
        return cur.lastrowid

    def get_plant(self, plant_id: int) -> sqlite3.Row | None:
        return self.get_db().execute(_PLANT_SELECT + " WHERE p.plant_id = ?", (plant_id,)).fetchone()

    def find_plant(self, query: str) -> sqlite3.Row | None:
        """Look a plant up by UID, METRC tag or custom label (first match wins)."""
        return self.get_db().execute(
            _PLANT_SELECT
            + """
            WHERE p.plant_uid = ? COLLATE NOCASE
               OR t.tag = ? COLLATE NOCASE
               OR p.custom_label = ? COLLATE NOCASE
            ORDER BY (p.status = 'active') DESC, p.plant_id DESC
            LIMIT 1
            """,
            (query, query, query),
        ).fetchone()

    def list_plants(
        self,
        filters: dict[str, Any] | None = None,
        *,
        limit: int,
        offset: int,
    ) -> tuple[list[sqlite3.Row], int]:
        clauses, params = self._plant_filter_clause(filters)
        db = self.get_db()
        total = db.execute(
            "SELECT COUNT(*) FROM Plants p" + clauses,
            params,
        ).fetchone()[0]
        rows = db.execute(
            _PLANT_SELECT + clauses + " ORDER BY p.plant_id ASC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return rows, int(total)

    def _plant_filter_clause(self, filters: dict[str, Any] | None) -> tuple[str, list[Any]]:
        where: list[str] = []
        params: list[Any] = []
        for key, value in (filters or {}).items():
            if value is None or key not in _PLANT_FILTERS:
                continue
            where.append(_PLANT_FILTERS[key])
            params.append(value)
        if not where:
            return "", params
        return " WHERE " + " AND ".join(where), params

    def update_plant_location(
        self,
        plant_id: int,
        *,
        room_id: int,
        floor: int,
        grid_row: int | None,
        grid_col: int | None,
        tray_id: int | None,
    ) -> None:
        self.get_db().execute(
            """
            UPDATE Plants
            SET room_id = ?, floor = ?, grid_row = ?, grid_col = ?, tray_id = ?, updated_at = ?
            WHERE plant_id = ?
            """,
            (room_id, floor, grid_row, grid_col, tray_id, iso_now(), plant_id),
        )

    def update_plant_phase(self, plant_id: int, growth_phase: str) -> None:
        self.get_db().execute(
            "UPDATE Plants SET growth_phase = ?, updated_at = ? WHERE plant_id = ?",
            (growth_phase, iso_now(), plant_id),
        )

    def terminate_plant(
        self,
        plant_id: int,
        *,
        status: str,
        harvest_id: int | None = None,
        destroy_reason: str | None = None,
    ) -> None:
        """Move a plant to a terminal status and clear its slot."""
        now = iso_now()
        self.get_db().execute(
            """
            UPDATE Plants
            SET status = ?, harvest_id = ?, destroy_reason = ?,
                room_id = NULL, floor = NULL, grid_row = NULL, grid_col = NULL, tray_id = NULL,
                updated_at = ?, terminated_at = ?
            WHERE plant_id = ? AND status = 'active'
            """,
            (status, harvest_id, destroy_reason, now, now, plant_id),
        )

    def count_active_plants_by_phase(self, facility_id: int | None = None) -> dict[str, int]:
        query = """
            SELECT p.growth_phase, COUNT(*) AS total
            FROM Plants p
            LEFT JOIN Rooms r ON r.room_id = p.room_id
            WHERE p.status = 'active'
        """
        params: tuple[Any, ...] = ()
        if facility_id is not None:
            query += " AND r.facility_id = ?"
            params = (facility_id,)
        rows = self.get_db().execute(query + " GROUP BY p.growth_phase", params).fetchall()
        return {row["growth_phase"]: int(row["total"]) for row in rows}

    # --- Plant batches --------------------------------------------------------
    def insert_plant_batch(
        self,
        *,
        batch_uid: str,
        name: str,
        strain_id: int,
        batch_type: str,
        initial_count: int,
        notes: str | None = None,
        created_by: str | None = None,
    ) -> int:
        now = iso_now()
        cur = self.get_db().execute(
            """
            INSERT INTO PlantBatches (
                batch_uid, name, strain_id, batch_type, initial_count,
                active_plant_count, notes, created_by, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?, ?)
            """,
            (batch_uid, name, strain_id, batch_type, initial_count, notes, created_by, now, now),
        )
        return cur.lastrowid

    def get_plant_batch(self, plant_batch_id: int) -> sqlite3.Row | None:
        return self.get_db().execute(
            """
            SELECT b.*, s.name AS strain_name
            FROM PlantBatches b
            JOIN Strains s ON s.strain_id = b.strain_id
            WHERE b.plant_batch_id = ?
            """,
            (plant_batch_id,),
        ).fetchone()

    def list_plant_batches(self, strain_id: int | None = None) -> list[sqlite3.Row]:
        query = """
            SELECT b.*, s.name AS strain_name
            FROM PlantBatches b
            JOIN Strains s ON s.strain_id = b.strain_id
        """
        params: tuple[Any, ...] = ()
        if strain_id is not None:
            query += " WHERE b.strain_id = ?"
            params = (strain_id,)
        return self.get_db().execute(query + " ORDER BY b.plant_batch_id DESC", params).fetchall()

    def adjust_batch_count(self, plant_batch_id: int, delta: int) -> None:
        self.get_db().execute(
            """
            UPDATE PlantBatches
            SET active_plant_count = active_plant_count + ?, updated_at = ?
            WHERE plant_batch_id = ?
            """,
            (delta, iso_now(), plant_batch_id),
        )

    def count_live_batch_members(self, plant_batch_id: int) -> int:
        row = self.get_db().execute(
            "SELECT COUNT(*) FROM Plants WHERE plant_batch_id = ? AND status = 'active'",
            (plant_batch_id,),
        ).fetchone()
        return int(row[0])
