"""
Harvest Service

Groups harvested plants into a harvest aggregate and walks it through
drying, packaging and closing. Plants enter a harvest through
:meth:`PlantLifecycleService.cut_into_harvest`, so every member gets its own
``harvested`` event, releases its tag and vacates its slot. Per-plant audit
lines are written once the whole harvest has committed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from app.domain.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.plant_lifecycle import harvest_transition
from app.enums.grow import HarvestStatus, HarvestType, PlantEventType, RoomType, TrackableType
from app.utils.time import coerce_datetime, iso_now

if TYPE_CHECKING:
    from app.services.application.event_log_service import EventLogService
    from app.services.application.facility_service import FacilityService
    from app.services.application.plant_lifecycle_service import PlantLifecycleService
    from infrastructure.database.repositories.harvests import HarvestRepository
    from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)

DRYING_ROOM_TYPES = frozenset({RoomType.DRY, RoomType.CURE})


def _weight(value: Any, field_name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative number")
    return float(value)


class HarvestService:
    """
    Harvest aggregates.

    Status flow: active -> drying -> dried -> packaged, with ``close``
    allowed from any open status.
    """

    def __init__(
        self,
        harvest_repo: "HarvestRepository",
        lifecycle_service: "PlantLifecycleService",
        facility_service: "FacilityService",
        event_log: "EventLogService",
        audit_logger: "AuditLogger | None" = None,
    ):
        self._repo = harvest_repo
        self._lifecycle = lifecycle_service
        self._facility = facility_service
        self._events = event_log
        self._audit = audit_logger

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_harvest(self, harvest_id: int) -> dict[str, Any]:
        harvest = self._repo.get(harvest_id)
        if harvest is None:
            raise NotFoundError(f"Harvest {harvest_id} not found", detail={"harvest_id": harvest_id})
        return harvest

    def list_harvests(self, status: HarvestStatus | str | None = None) -> list[dict[str, Any]]:
        status_value = None
        if status:
            try:
                status_value = HarvestStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown harvest status '{status}'") from None
        return self._repo.list_harvests(status_value)

    def history(self, harvest_id: int) -> list[dict[str, Any]]:
        self.get_harvest(harvest_id)
        return self._events.list_for(TrackableType.HARVEST, harvest_id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def create_harvest(
        self,
        *,
        name: str,
        plant_ids: Iterable[int],
        harvest_date: Any = None,
        harvest_type: HarvestType | str = HarvestType.HARVEST,
        wet_weight_grams: float | None = None,
        drying_room_id: int | None = None,
        notes: str | None = None,
        actor: str,
    ) -> dict[str, Any]:
        """Open a harvest and cut every listed plant into it, all or nothing.

        Returns:
            ``{"harvest": ..., "plants": [...], "events": [...]}``
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Harvest name is required")
        try:
            kind = HarvestType(harvest_type)
        except ValueError:
            raise ValidationError(f"Unknown harvest type '{harvest_type}'") from None
        ids = self._plant_id_list(plant_ids)
        wet_weight = _weight(wet_weight_grams, "wet_weight_grams")
        cut_at = coerce_datetime(harvest_date) if harvest_date is not None else None
        if harvest_date is not None and cut_at is None:
            raise ValidationError(f"Invalid harvest_date '{harvest_date}'")

        with self._repo.transaction():
            if drying_room_id is not None:
                self._require_drying_room(drying_room_id)
            harvest_id = self._repo.create_harvest(
                name=name.strip(),
                harvest_type=kind.value,
                harvest_date=(cut_at.isoformat() if cut_at else iso_now()),
                wet_weight_grams=wet_weight,
                drying_room_id=drying_room_id,
                notes=notes,
                created_by=actor,
            )
            harvest_event = self._events.append(
                TrackableType.HARVEST,
                harvest_id,
                PlantEventType.CREATED,
                actor,
                {"name": name.strip(), "harvest_type": kind.value, "plant_ids": ids},
            )
            plants, events = self._cut_plants(harvest_id, ids, actor)
            harvest = self.get_harvest(harvest_id)

        logger.info("Opened harvest '%s' with %s plant(s)", harvest["name"], len(ids))
        self._lifecycle.audit_harvested(actor, ids, harvest_id)
        if self._audit:
            self._audit.log_event(actor, "harvest.create", f"harvest:{harvest_id}", "success", plants=len(ids))
        return {"harvest": harvest, "plants": plants, "events": [harvest_event] + events}

    def add_plants(self, harvest_id: int, plant_ids: Iterable[int], *, actor: str) -> dict[str, Any]:
        """Cut more plants into an active harvest, all or nothing."""
        ids = self._plant_id_list(plant_ids)
        with self._repo.transaction():
            harvest = self.get_harvest(harvest_id)
            if harvest["status"] != HarvestStatus.ACTIVE.value:
                raise ConflictError(
                    f"Harvest '{harvest['name']}' is {harvest['status']} and no longer accepts plants",
                    detail={"harvest_id": harvest_id, "status": harvest["status"]},
                )
            plants, events = self._cut_plants(harvest_id, ids, actor)
            harvest = self.get_harvest(harvest_id)
        self._lifecycle.audit_harvested(actor, ids, harvest_id)
        if self._audit:
            self._audit.log_event(actor, "harvest.add_plants", f"harvest:{harvest_id}", "success", plants=len(ids))
        return {"harvest": harvest, "plants": plants, "events": events}

    def _cut_plants(
        self, harvest_id: int, plant_ids: list[int], actor: str
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        plants: list[dict[str, Any]] = []
        events: list[dict[str, Any]] = []
        for plant_id in plant_ids:
            result = self._lifecycle.cut_into_harvest(plant_id, harvest_id, actor=actor)
            plants.append(result.plant)
            events.append(result.event)
        return plants, events

    def start_drying(self, harvest_id: int, *, drying_room_id: int | None = None, actor: str) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if drying_room_id is not None:
            self._require_drying_room(drying_room_id)
            changes["drying_room_id"] = drying_room_id
        return self._transition(harvest_id, HarvestStatus.DRYING, actor, changes)

    def finish_drying(self, harvest_id: int, *, dry_weight_grams: float | None = None, actor: str) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        dry_weight = _weight(dry_weight_grams, "dry_weight_grams")
        if dry_weight is not None:
            changes["dry_weight_grams"] = dry_weight
        return self._transition(harvest_id, HarvestStatus.DRIED, actor, changes)

    def package(self, harvest_id: int, *, actor: str) -> dict[str, Any]:
        return self._transition(harvest_id, HarvestStatus.PACKAGED, actor, {})

    def close(self, harvest_id: int, *, actor: str) -> dict[str, Any]:
        return self._transition(harvest_id, HarvestStatus.CLOSED, actor, {"closed_at": iso_now()})

    def _transition(
        self,
        harvest_id: int,
        target: HarvestStatus,
        actor: str,
        changes: dict[str, Any],
    ) -> dict[str, Any]:
        with self._repo.transaction():
            harvest = self.get_harvest(harvest_id)
            metadata: dict[str, Any] = harvest_transition(harvest["status"], target)
            self._repo.update_harvest(harvest_id, status=target.value, **changes)
            metadata.update({k: v for k, v in changes.items() if k != "closed_at"})
            event = self._events.append(
                TrackableType.HARVEST,
                harvest_id,
                PlantEventType.STATUS_CHANGED,
                actor,
                metadata,
            )
            harvest = self.get_harvest(harvest_id)

        logger.info("Harvest %s moved %s -> %s", harvest_id, metadata["from"], metadata["to"])
        if self._audit:
            self._audit.log_event(actor, f"harvest.{target.value}", f"harvest:{harvest_id}", "success")
        return {"harvest": harvest, "event": event}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_drying_room(self, room_id: int) -> None:
        room = self._facility.get_room(room_id)
        if room.room_type not in DRYING_ROOM_TYPES:
            raise ValidationError(
                f"Room '{room.name}' is not a dry or cure room",
                detail={"room_id": room_id, "room_type": room.room_type.value if room.room_type else None},
            )

    @staticmethod
    def _plant_id_list(plant_ids: Iterable[int]) -> list[int]:
        if plant_ids is None or isinstance(plant_ids, (str, bytes)):
            raise ValidationError("plant_ids must be a list of plant ids")
        ids = list(plant_ids)
        if not ids:
            raise ValidationError("At least one plant is required")
        if any(isinstance(i, bool) or not isinstance(i, int) for i in ids):
            raise ValidationError("plant_ids must be integers")
        if len(set(ids)) != len(ids):
            raise ValidationError("plant_ids contains duplicates")
        return ids
