"""
METRC Tag Repository
====================

Repository for the compliance tag pool.
"""
from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Dict, List, Optional, Tuple

from infrastructure.database.ops.metrc_tags import MetrcTagOperations
from infrastructure.database.repositories.base import row_to_dict, rows_to_dicts


class MetrcTagRepository:
    """Repository for METRC tag pool operations."""

    def __init__(self, backend: MetrcTagOperations) -> None:
        self._backend = backend

    def transaction(self) -> AbstractContextManager:
        return self._backend.transaction()

    def create_tag(self, tag: str, tag_type: str) -> int:
        return self._backend.insert_metrc_tag(tag, tag_type)

    def get(self, record_id: int) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_metrc_tag(record_id))

    def get_by_value(self, tag: str) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_metrc_tag_by_value(tag))

    def get_for_plant(self, plant_id: int) -> Optional[Dict[str, Any]]:
        return row_to_dict(self._backend.get_metrc_tag_for_plant(plant_id))

    def list_tags(
        self,
        *,
        status: Optional[str] = None,
        tag_type: Optional[str] = None,
        limit: int,
        offset: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        rows, total = self._backend.list_metrc_tags(status=status, tag_type=tag_type, limit=limit, offset=offset)
        return rows_to_dicts(rows), total

    def assign(self, metrc_tag_id: int, plant_id: int) -> bool:
        return self._backend.assign_metrc_tag(metrc_tag_id, plant_id) == 1

    def release(self, metrc_tag_id: int) -> bool:
        return self._backend.release_metrc_tag(metrc_tag_id) == 1

    def retire(self, metrc_tag_id: int) -> bool:
        return self._backend.retire_metrc_tag(metrc_tag_id) == 1

    def count_by_status(self, tag_type: Optional[str] = None) -> Dict[str, int]:
        return self._backend.count_metrc_tags_by_status(tag_type)
