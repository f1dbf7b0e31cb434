"""
Plant Batch Service
===================

Batches group plants of one strain propagated together. The batch's
``active_plant_count`` is maintained by plant commands in the same
transaction as the membership change and is never edited directly.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from app.domain.exceptions import BatchNotFound, ValidationError
from app.enums.grow import BatchType, PlantEventType, TrackableType

if TYPE_CHECKING:
    from app.services.application.event_log_service import EventLogService
    from app.services.application.facility_service import FacilityService
    from infrastructure.database.repositories.plants import PlantRepository
    from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)

MAX_INITIAL_COUNT = 100_000


def generate_batch_uid() -> str:
    return f"PB-{uuid.uuid4().hex[:10].upper()}"


class PlantBatchService:
    """Create and read plant batches; keep their live counts."""

    def __init__(
        self,
        plant_repo: "PlantRepository",
        facility_service: "FacilityService",
        event_log: "EventLogService",
        audit_logger: "AuditLogger | None" = None,
    ) -> None:
        self._repo = plant_repo
        self._facility = facility_service
        self._events = event_log
        self._audit = audit_logger

    def create_batch(
        self,
        *,
        name: str,
        strain_id: int,
        batch_type: BatchType | str,
        initial_count: int,
        notes: str | None = None,
        actor: str,
    ) -> dict[str, Any]:
        """Create an empty batch. Plants join it as they are placed.

        Returns:
            ``{"batch": ..., "event": ...}``
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Batch name is required")
        try:
            kind = BatchType(batch_type)
        except ValueError:
            raise ValidationError(f"Unknown batch type '{batch_type}'") from None
        if isinstance(initial_count, bool) or not isinstance(initial_count, int):
            raise ValidationError("initial_count must be an integer")
        if not 1 <= initial_count <= MAX_INITIAL_COUNT:
            raise ValidationError(f"initial_count must be between 1 and {MAX_INITIAL_COUNT}")

        with self._repo.transaction():
            strain = self._facility.require_active_strain(strain_id)
            batch_id = self._repo.create_batch(
                batch_uid=generate_batch_uid(),
                name=name.strip(),
                strain_id=strain["strain_id"],
                batch_type=kind.value,
                initial_count=initial_count,
                notes=notes,
                created_by=actor,
            )
            event = self._events.append(
                TrackableType.PLANT_BATCH,
                batch_id,
                PlantEventType.CREATED,
                actor,
                {
                    "name": name.strip(),
                    "strain_id": strain["strain_id"],
                    "batch_type": kind.value,
                    "initial_count": initial_count,
                },
            )
            batch = self.get_batch(batch_id)

        logger.info("Created plant batch %s (%s x %s)", batch["batch_uid"], initial_count, strain["name"])
        if self._audit:
            self._audit.log_event(actor, "plant_batch.create", f"plant_batch:{batch_id}", "success")
        return {"batch": batch, "event": event}

    def get_batch(self, plant_batch_id: int) -> dict[str, Any]:
        batch = self._repo.get_batch(plant_batch_id)
        if batch is None:
            raise BatchNotFound(f"Plant batch {plant_batch_id} not found", detail={"plant_batch_id": plant_batch_id})
        return batch

    def list_batches(self, strain_id: int | None = None) -> list[dict[str, Any]]:
        return self._repo.list_batches(strain_id)

    def history(self, plant_batch_id: int) -> list[dict[str, Any]]:
        self.get_batch(plant_batch_id)
        return self._events.list_for(TrackableType.PLANT_BATCH, plant_batch_id)

    # Used inside plant commands; the caller owns the transaction.
    def require_for_strain(self, plant_batch_id: int, strain_id: int) -> dict[str, Any]:
        batch = self.get_batch(plant_batch_id)
        if batch["strain_id"] != strain_id:
            raise ValidationError(
                f"Batch {batch['batch_uid']} holds strain {batch['strain_name']}, not strain {strain_id}",
                detail={"plant_batch_id": plant_batch_id, "strain_id": strain_id},
            )
        return batch

    def record_member_added(self, plant_batch_id: int) -> dict[str, Any]:
        self._repo.adjust_batch_count(plant_batch_id, 1)
        return self.get_batch(plant_batch_id)

    def record_member_removed(self, plant_batch_id: int) -> dict[str, Any]:
        self._repo.adjust_batch_count(plant_batch_id, -1)
        return self.get_batch(plant_batch_id)
