"""
Harvest Repository
==================

Repository for harvest aggregates. The common strain of a harvest is
derived from its member plants rather than stored.
"""
from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Dict, List, Optional

from infrastructure.database.ops.harvests import HarvestOperations
from infrastructure.database.repositories.base import row_to_dict


class HarvestRepository:
    """Repository for harvest operations."""

    def __init__(self, backend: HarvestOperations) -> None:
        self._backend = backend

    def transaction(self) -> AbstractContextManager:
        return self._backend.transaction()

    def create_harvest(self, **fields: Any) -> int:
        return self._backend.insert_harvest(**fields)

    def get(self, record_id: int) -> Optional[Dict[str, Any]]:
        return self._with_membership(row_to_dict(self._backend.get_harvest(record_id)))

    get_harvest = get

    def list_harvests(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return [self._with_membership(row_to_dict(r)) for r in self._backend.list_harvests(status)]

    def update_harvest(self, harvest_id: int, **fields: Any) -> None:
        self._backend.update_harvest(harvest_id, **fields)

    def _with_membership(self, harvest: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if harvest is None:
            return None
        strain_ids = self._backend.list_harvest_strain_ids(harvest["harvest_id"])
        harvest["strain_id"] = strain_ids[0] if len(strain_ids) == 1 else None
        harvest["mixed_strains"] = len(strain_ids) > 1
        harvest["plant_ids"] = self._backend.list_harvest_plant_ids(harvest["harvest_id"])
        return harvest
