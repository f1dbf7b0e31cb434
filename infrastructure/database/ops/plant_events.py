from __future__ import annotations

import logging
import sqlite3
from typing import Any

logger = logging.getLogger(__name__)


class PlantEventOperations:
    """Append-only access to the PlantEvents table."""

    def insert_plant_event(
        self,
        *,
        trackable_type: str,
        trackable_id: int,
        event_type: str,
        actor: str,
        metadata: str,
        note: str | None,
        created_at: str,
    ) -> int:
        cur = self.get_db().execute(
            """
            INSERT INTO PlantEvents (
                trackable_type, trackable_id, event_type, actor, metadata, note, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (trackable_type, trackable_id, event_type, actor, metadata, note, created_at),
        )
        return cur.lastrowid

    def get_plant_event(self, event_id: int) -> sqlite3.Row | None:
        return self.get_db().execute("SELECT * FROM PlantEvents WHERE event_id = ?", (event_id,)).fetchone()

    def list_plant_events_for(self, trackable_type: str, trackable_id: int) -> list[sqlite3.Row]:
        return self.get_db().execute(
            """
            SELECT * FROM PlantEvents
            WHERE trackable_type = ? AND trackable_id = ?
            ORDER BY event_id DESC
            """,
            (trackable_type, trackable_id),
        ).fetchall()

    def list_plant_events(
        self,
        *,
        limit: int,
        offset: int,
        trackable_type: str | None = None,
    ) -> tuple[list[sqlite3.Row], int]:
        """Newest first; the autoincrement id keeps pages stable when timestamps tie."""
        clause = ""
        params: list[Any] = []
        if trackable_type:
            clause = " WHERE trackable_type = ?"
            params.append(trackable_type)
        db = self.get_db()
        total = db.execute("SELECT COUNT(*) FROM PlantEvents" + clause, params).fetchone()[0]
        rows = db.execute(
            "SELECT * FROM PlantEvents" + clause + " ORDER BY event_id DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return rows, int(total)

    def list_plant_events_before(
        self,
        before_id: int | None,
        *,
        page_size: int,
        trackable_type: str | None = None,
    ) -> list[sqlite3.Row]:
        """Keyset page of events with ``event_id < before_id``, newest first."""
        where: list[str] = []
        params: list[Any] = []
        if before_id is not None:
            where.append("event_id < ?")
            params.append(before_id)
        if trackable_type:
            where.append("trackable_type = ?")
            params.append(trackable_type)
        clause = (" WHERE " + " AND ".join(where)) if where else ""
        return self.get_db().execute(
            "SELECT * FROM PlantEvents" + clause + " ORDER BY event_id DESC LIMIT ?",
            (*params, page_size),
        ).fetchall()
