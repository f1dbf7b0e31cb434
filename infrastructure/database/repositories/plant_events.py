"""
Plant Event Repository
======================

Append-only repository for the per-entity event log. Metadata is stored
as JSON text and decoded on the way out.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from infrastructure.database.ops.plant_events import PlantEventOperations
from infrastructure.database.repositories.base import row_to_dict


def _decode(row: Any) -> Optional[Dict[str, Any]]:
    event = row_to_dict(row)
    if event is not None:
        event["metadata"] = json.loads(event.get("metadata") or "{}")
    return event


class PlantEventRepository:
    """Repository for event log records (insert and read only)."""

    def __init__(self, backend: PlantEventOperations) -> None:
        self._backend = backend

    def append(
        self,
        *,
        trackable_type: str,
        trackable_id: int,
        event_type: str,
        actor: str,
        metadata: Dict[str, Any],
        note: Optional[str],
        created_at: str,
    ) -> int:
        return self._backend.insert_plant_event(
            trackable_type=trackable_type,
            trackable_id=trackable_id,
            event_type=event_type,
            actor=actor,
            metadata=json.dumps(metadata, sort_keys=True),
            note=note,
            created_at=created_at,
        )

    def get(self, record_id: int) -> Optional[Dict[str, Any]]:
        return _decode(self._backend.get_plant_event(record_id))

    def list_for(self, trackable_type: str, trackable_id: int) -> List[Dict[str, Any]]:
        return [_decode(r) for r in self._backend.list_plant_events_for(trackable_type, trackable_id)]

    def list_events(
        self,
        *,
        limit: int,
        offset: int,
        trackable_type: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        rows, total = self._backend.list_plant_events(limit=limit, offset=offset, trackable_type=trackable_type)
        return [_decode(r) for r in rows], total

    def list_before(
        self,
        before_id: Optional[int],
        *,
        page_size: int,
        trackable_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        rows = self._backend.list_plant_events_before(before_id, page_size=page_size, trackable_type=trackable_type)
        return [_decode(r) for r in rows]
