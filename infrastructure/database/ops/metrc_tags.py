from __future__ import annotations

import logging
import sqlite3
from typing import Any

from app.utils.time import iso_now

logger = logging.getLogger(__name__)

_TAG_SELECT = """
    SELECT t.*, p.plant_uid
    FROM MetrcTags t
    LEFT JOIN Plants p ON p.plant_id = t.plant_id
"""


class MetrcTagOperations:
    """Database operations for the MetrcTags pool."""

    def insert_metrc_tag(self, tag: str, tag_type: str) -> int:
        now = iso_now()
        cur = self.get_db().execute(
            """
            INSERT INTO MetrcTags (tag, tag_type, status, created_at, updated_at)
            VALUES (?, ?, 'available', ?, ?)
            """,
            (tag, tag_type, now, now),
        )
        return cur.lastrowid

    def get_metrc_tag(self, metrc_tag_id: int) -> sqlite3.Row | None:
        return self.get_db().execute(_TAG_SELECT + " WHERE t.metrc_tag_id = ?", (metrc_tag_id,)).fetchone()

    def get_metrc_tag_by_value(self, tag: str) -> sqlite3.Row | None:
        return self.get_db().execute(_TAG_SELECT + " WHERE t.tag = ?", (tag,)).fetchone()

    def get_metrc_tag_for_plant(self, plant_id: int) -> sqlite3.Row | None:
        return self.get_db().execute(_TAG_SELECT + " WHERE t.plant_id = ?", (plant_id,)).fetchone()

    def list_metrc_tags(
        self,
        *,
        status: str | None = None,
        tag_type: str | None = None,
        limit: int,
        offset: int,
    ) -> tuple[list[sqlite3.Row], int]:
        where: list[str] = []
        params: list[Any] = []
        if status:
            where.append("t.status = ?")
            params.append(status)
        if tag_type:
            where.append("t.tag_type = ?")
            params.append(tag_type)
        clause = (" WHERE " + " AND ".join(where)) if where else ""
        db = self.get_db()
        total = db.execute("SELECT COUNT(*) FROM MetrcTags t" + clause, params).fetchone()[0]
        rows = db.execute(
            _TAG_SELECT + clause + " ORDER BY t.tag ASC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return rows, int(total)

    def assign_metrc_tag(self, metrc_tag_id: int, plant_id: int) -> int:
        """Bind an available tag to a plant. Returns the number of rows changed."""
        now = iso_now()
        cur = self.get_db().execute(
            """
            UPDATE MetrcTags
            SET status = 'assigned', plant_id = ?, assigned_at = ?, updated_at = ?
            WHERE metrc_tag_id = ? AND status = 'available'
            """,
            (plant_id, now, now, metrc_tag_id),
        )
        return cur.rowcount

    def release_metrc_tag(self, metrc_tag_id: int) -> int:
        cur = self.get_db().execute(
            """
            UPDATE MetrcTags
            SET status = 'available', plant_id = NULL, assigned_at = NULL, updated_at = ?
            WHERE metrc_tag_id = ? AND status = 'assigned'
            """,
            (iso_now(), metrc_tag_id),
        )
        return cur.rowcount

    def retire_metrc_tag(self, metrc_tag_id: int) -> int:
        cur = self.get_db().execute(
            """
            UPDATE MetrcTags SET status = 'retired', updated_at = ?
            WHERE metrc_tag_id = ? AND status = 'available'
            """,
            (iso_now(), metrc_tag_id),
        )
        return cur.rowcount

    def count_metrc_tags_by_status(self, tag_type: str | None = None) -> dict[str, int]:
        query = "SELECT status, COUNT(*) AS total FROM MetrcTags"
        params: tuple[Any, ...] = ()
        if tag_type:
            query += " WHERE tag_type = ?"
            params = (tag_type,)
        rows = self.get_db().execute(query + " GROUP BY status", params).fetchall()
        return {row["status"]: int(row["total"]) for row in rows}
