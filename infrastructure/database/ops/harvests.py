from __future__ import annotations

import logging
import sqlite3
from typing import Any

from app.utils.time import iso_now

logger = logging.getLogger(__name__)

_HARVEST_SELECT = """
    SELECT h.*, r.name AS drying_room_name,
           (SELECT COUNT(*) FROM Plants p WHERE p.harvest_id = h.harvest_id) AS plant_count
    FROM Harvests h
    LEFT JOIN Rooms r ON r.room_id = h.drying_room_id
"""


class HarvestOperations:
    """Harvest aggregate helpers. Plant membership lives on ``Plants.harvest_id``."""

    def insert_harvest(
        self,
        *,
        name: str,
        harvest_type: str = "harvest",
        harvest_date: str | None = None,
        wet_weight_grams: float | None = None,
        drying_room_id: int | None = None,
        notes: str | None = None,
        created_by: str | None = None,
    ) -> int:
        now = iso_now()
        cur = self.get_db().execute(
            """
            INSERT INTO Harvests (
                name, harvest_type, status, harvest_date, wet_weight_grams,
                drying_room_id, notes, created_by, created_at, updated_at
            )
            VALUES (?, ?, 'active', ?, ?, ?, ?, ?, ?, ?)
            """,
            (name, harvest_type, harvest_date, wet_weight_grams, drying_room_id, notes, created_by, now, now),
        )
        return cur.lastrowid

    def get_harvest(self, harvest_id: int) -> sqlite3.Row | None:
        return self.get_db().execute(_HARVEST_SELECT + " WHERE h.harvest_id = ?", (harvest_id,)).fetchone()

    def list_harvests(self, status: str | None = None) -> list[sqlite3.Row]:
        if status:
            return self.get_db().execute(
                _HARVEST_SELECT + " WHERE h.status = ? ORDER BY h.harvest_id DESC", (status,)
            ).fetchall()
        return self.get_db().execute(_HARVEST_SELECT + " ORDER BY h.harvest_id DESC").fetchall()

    def update_harvest(self, harvest_id: int, **fields: Any) -> None:
        allowed = {
            "status",
            "wet_weight_grams",
            "dry_weight_grams",
            "drying_room_id",
            "notes",
            "closed_at",
        }
        self._update_row("Harvests", "harvest_id", harvest_id, allowed, fields)

    def list_harvest_strain_ids(self, harvest_id: int) -> list[int]:
        rows = self.get_db().execute(
            "SELECT DISTINCT strain_id FROM Plants WHERE harvest_id = ? ORDER BY strain_id",
            (harvest_id,),
        ).fetchall()
        return [int(row["strain_id"]) for row in rows]

    def list_harvest_plant_ids(self, harvest_id: int) -> list[int]:
        rows = self.get_db().execute(
            "SELECT plant_id FROM Plants WHERE harvest_id = ? ORDER BY plant_id", (harvest_id,)
        ).fetchall()
        return [int(row["plant_id"]) for row in rows]
