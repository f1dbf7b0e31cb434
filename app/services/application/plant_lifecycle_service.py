"""
Plant Lifecycle Service
=======================

Orchestrates every plant command: place, bulk place, move, tag, change
phase, harvest, destroy and note.

Each command is one unit of work::

    BEGIN IMMEDIATE
      validate  (slot capacity, tag availability, plant status, batch/strain)
      mutate    (plant row, tag pool, batch count)
      append    (exactly one event per plant)
    COMMIT

and returns a :class:`CommandResult` snapshot of every entity it touched,
read inside the same transaction. A failure at any step rolls everything
back.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.domain.exceptions import ConflictError, NotFoundError, SlotFull, ValidationError
from app.domain.layout import Slot
from app.domain.plant_lifecycle import coerce_phase, ensure_active, phase_transition, require_text
from app.enums.grow import GrowthPhase, HarvestStatus, PlantEventType, PlantStatus, TrackableType
from infrastructure.database.pagination import validate_pagination

if TYPE_CHECKING:
    from app.services.application.event_log_service import EventLogService
    from app.services.application.facility_service import FacilityService
    from app.services.application.metrc_tag_service import MetrcTagService
    from app.services.application.plant_batch_service import PlantBatchService
    from infrastructure.database.repositories.harvests import HarvestRepository
    from infrastructure.database.repositories.plants import PlantRepository
    from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)

MAX_BULK_PLACEMENT = 500


def generate_plant_uid() -> str:
    return f"PL-{uuid.uuid4().hex[:12].upper()}"


@dataclass(slots=True)
class CommandResult:
    """Fresh state of everything a command touched."""

    plants: list[dict[str, Any]] = field(default_factory=list)
    events: list[dict[str, Any]] = field(default_factory=list)
    zones: list[dict[str, Any]] = field(default_factory=list)
    tags: list[dict[str, Any]] = field(default_factory=list)
    batch: dict[str, Any] | None = None
    harvest: dict[str, Any] | None = None
    changed: bool = True

    @property
    def plant(self) -> dict[str, Any] | None:
        return self.plants[0] if self.plants else None

    @property
    def event(self) -> dict[str, Any] | None:
        return self.events[0] if self.events else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "plant": self.plant,
            "event": self.event,
            "zones": self.zones,
            "tags": self.tags,
            "batch": self.batch,
            "changed": self.changed,
        }
        if len(self.plants) > 1:
            data["plants"] = self.plants
            data["events"] = self.events
        if self.harvest is not None:
            data["harvest"] = self.harvest
        return data


class PlantLifecycleService:
    """Command side of the plant state machine."""

    def __init__(
        self,
        plant_repo: "PlantRepository",
        harvest_repo: "HarvestRepository",
        facility_service: "FacilityService",
        tag_service: "MetrcTagService",
        batch_service: "PlantBatchService",
        event_log: "EventLogService",
        audit_logger: "AuditLogger | None" = None,
    ) -> None:
        self._plants = plant_repo
        self._harvests = harvest_repo
        self._facility = facility_service
        self._tags = tag_service
        self._batches = batch_service
        self._events = event_log
        self._audit = audit_logger

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_plant(self, plant_id: int) -> dict[str, Any]:
        plant = self._plants.get(plant_id)
        if plant is None:
            raise NotFoundError(f"Plant {plant_id} not found", detail={"plant_id": plant_id})
        return plant

    def lookup_plant(self, query: str) -> dict[str, Any]:
        """Find a plant by UID, METRC tag or custom label."""
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Lookup query is required")
        plant = self._plants.find_plant(query.strip())
        if plant is None:
            raise NotFoundError(f"No plant matches '{query.strip()}'")
        return plant

    def list_plants(
        self,
        filters: dict[str, Any] | None = None,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        try:
            validated_limit, validated_offset = validate_pagination(limit, offset)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        filters = dict(filters or {})
        if filters.get("status"):
            try:
                filters["status"] = PlantStatus(filters["status"]).value
            except ValueError:
                raise ValidationError(f"Unknown plant status '{filters['status']}'") from None
        if filters.get("growth_phase"):
            filters["growth_phase"] = coerce_phase(filters["growth_phase"]).value
        return self._plants.list_plants(filters, limit=validated_limit, offset=validated_offset)

    def history(self, plant_id: int) -> list[dict[str, Any]]:
        self.get_plant(plant_id)
        return self._events.list_for(TrackableType.PLANT, plant_id)

    # ------------------------------------------------------------------
    # Place
    # ------------------------------------------------------------------
    def place_plant(
        self,
        *,
        strain_id: int,
        room_id: int | None = None,
        floor: int | None = None,
        row: int | None = None,
        col: int | None = None,
        tray_id: int | None = None,
        plant_batch_id: int | None = None,
        growth_phase: GrowthPhase | str = GrowthPhase.IMMATURE,
        custom_label: str | None = None,
        metrc_tag: str | None = None,
        actor: str,
    ) -> CommandResult:
        """Create an active plant in an explicit slot."""
        result = self.place_plants(
            count=1,
            strain_id=strain_id,
            room_id=room_id,
            floor=floor,
            row=row,
            col=col,
            tray_id=tray_id,
            plant_batch_id=plant_batch_id,
            growth_phase=growth_phase,
            custom_labels=[custom_label] if custom_label else None,
            metrc_tag=metrc_tag,
            actor=actor,
        )
        return result

    def place_plants(
        self,
        *,
        count: int,
        strain_id: int,
        room_id: int | None = None,
        floor: int | None = None,
        row: int | None = None,
        col: int | None = None,
        tray_id: int | None = None,
        plant_batch_id: int | None = None,
        growth_phase: GrowthPhase | str = GrowthPhase.IMMATURE,
        custom_labels: list[str] | None = None,
        metrc_tag: str | None = None,
        actor: str,
    ) -> CommandResult:
        """Place ``count`` plants into one slot; all of them land or none do."""
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= MAX_BULK_PLACEMENT:
            raise ValidationError(f"count must be between 1 and {MAX_BULK_PLACEMENT}")
        if metrc_tag is not None and count != 1:
            raise ValidationError("A METRC tag can only be given when placing a single plant")
        labels = list(custom_labels or [])
        if len(labels) > count:
            raise ValidationError("More custom labels than plants")
        phase = coerce_phase(growth_phase)

        with self._plants.transaction():
            strain = self._facility.require_active_strain(strain_id)
            batch = self._batches.require_for_strain(plant_batch_id, strain["strain_id"]) if plant_batch_id else None
            slot = self._facility.resolve_slot(room_id, floor=floor, row=row, col=col, tray_id=tray_id)
            if slot.occupancy + count > slot.capacity:
                raise SlotFull(
                    f"Slot {slot.key} in '{slot.room_name}' has room for "
                    f"{max(slot.capacity - slot.occupancy, 0)} more plant(s), not {count}",
                    detail={"slot": slot.location(), "capacity": slot.capacity, "occupancy": slot.occupancy},
                )
            tag = self._tags.require_assignable(metrc_tag) if metrc_tag is not None else None

            plant_ids: list[int] = []
            events: list[dict[str, Any]] = []
            tags: list[dict[str, Any]] = []
            for index in range(count):
                plant_id = self._plants.create_plant(
                    plant_uid=generate_plant_uid(),
                    strain_id=strain["strain_id"],
                    growth_phase=phase.value,
                    slot=slot,
                    plant_batch_id=batch["plant_batch_id"] if batch else None,
                    custom_label=labels[index] if index < len(labels) else None,
                    placed_by=actor,
                )
                metadata: dict[str, Any] = {
                    "to": slot.location(),
                    "growth_phase": phase.value,
                    "plant_batch_id": batch["plant_batch_id"] if batch else None,
                }
                if tag is not None:
                    tags.append(self._tags.assign(tag, plant_id))
                    metadata["metrc_tag"] = tag["tag"]
                if batch is not None:
                    batch = self._batches.record_member_added(batch["plant_batch_id"])
                events.append(self._events.append(TrackableType.PLANT, plant_id, PlantEventType.PLACED, actor, metadata))
                plant_ids.append(plant_id)

            result = CommandResult(
                plants=[self.get_plant(pid) for pid in plant_ids],
                events=events,
                zones=[self._facility.refresh_slot(slot).to_dict()],
                tags=tags,
                batch=batch,
            )

        logger.info("Placed %s plant(s) into %s of room %s", count, slot.key, slot.room_id)
        self._audit_command(actor, "plant.place", plant_ids, count=count, slot=slot.key)
        return result

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------
    def move_plant(
        self,
        plant_id: int,
        *,
        room_id: int | None = None,
        floor: int | None = None,
        row: int | None = None,
        col: int | None = None,
        tray_id: int | None = None,
        actor: str,
    ) -> CommandResult:
        """Relocate a live plant. Moving onto its current slot is a no-op."""
        with self._plants.transaction():
            plant = self.get_plant(plant_id)
            ensure_active(plant)
            source = self._facility.slot_for_plant(plant)
            target = self._facility.resolve_slot(room_id, floor=floor, row=row, col=col, tray_id=tray_id)
            if source is not None and source.same_position(target):
                return CommandResult(plants=[plant], zones=[source.to_dict()], changed=False)
            if not target.has_capacity(exclude_plant_id=plant_id):
                raise SlotFull(
                    f"Slot {target.key} in '{target.room_name}' is full",
                    detail={"slot": target.location(), "capacity": target.capacity},
                )
            self._plants.move_plant(plant_id, target)
            event = self._events.append(
                TrackableType.PLANT,
                plant_id,
                PlantEventType.MOVED,
                actor,
                {"from": source.location() if source else None, "to": target.location()},
            )
            zones = [self._facility.refresh_slot(target).to_dict()]
            if source is not None:
                zones.insert(0, self._facility.refresh_slot(source).to_dict())
            result = CommandResult(plants=[self.get_plant(plant_id)], events=[event], zones=zones)

        self._audit_command(actor, "plant.move", [plant_id], to=target.key)
        return result

    # ------------------------------------------------------------------
    # Tag
    # ------------------------------------------------------------------
    def tag_plant(self, plant_id: int, metrc_tag: str, *, actor: str) -> CommandResult:
        """Bind an available plant tag; any tag the plant held goes back to the pool."""
        with self._plants.transaction():
            plant = self.get_plant(plant_id)
            ensure_active(plant)
            tag = self._tags.require_assignable(metrc_tag)
            previous = self._tags.release_for_plant(plant_id)
            assigned = self._tags.assign(tag, plant_id)
            event = self._events.append(
                TrackableType.PLANT,
                plant_id,
                PlantEventType.TAGGED,
                actor,
                {"metrc_tag": assigned["tag"], "previous_tag": previous["tag"] if previous else None},
            )
            tags = [assigned] + ([previous] if previous else [])
            result = CommandResult(plants=[self.get_plant(plant_id)], events=[event], tags=tags)

        self._audit_command(actor, "plant.tag", [plant_id], tag=assigned["tag"])
        return result

    # ------------------------------------------------------------------
    # Phase
    # ------------------------------------------------------------------
    def change_phase(self, plant_id: int, growth_phase: GrowthPhase | str, *, actor: str) -> CommandResult:
        with self._plants.transaction():
            plant = self.get_plant(plant_id)
            ensure_active(plant)
            metadata = phase_transition(plant["growth_phase"], growth_phase)
            self._plants.set_phase(plant_id, metadata["to"])
            event = self._events.append(TrackableType.PLANT, plant_id, PlantEventType.PHASE_CHANGED, actor, metadata)
            result = CommandResult(plants=[self.get_plant(plant_id)], events=[event])

        self._audit_command(actor, "plant.phase", [plant_id], **metadata)
        return result

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------
    def harvest_plant(self, plant_id: int, harvest_id: int, *, actor: str) -> CommandResult:
        """Cut a live plant into an active harvest aggregate."""
        with self._plants.transaction():
            result = self.cut_into_harvest(plant_id, harvest_id, actor=actor)
        self.audit_harvested(actor, [plant_id], harvest_id)
        return result

    def cut_into_harvest(self, plant_id: int, harvest_id: int, *, actor: str) -> CommandResult:
        """Harvest one plant inside the caller's transaction. Writes no audit line."""
        plant = self.get_plant(plant_id)
        ensure_active(plant)
        harvest = self._harvests.get(harvest_id)
        if harvest is None:
            raise NotFoundError(f"Harvest {harvest_id} not found", detail={"harvest_id": harvest_id})
        if harvest["status"] != HarvestStatus.ACTIVE.value:
            raise ConflictError(
                f"Harvest '{harvest['name']}' is {harvest['status']} and no longer accepts plants",
                detail={"harvest_id": harvest_id, "status": harvest["status"]},
            )
        result = self._terminate(
            plant,
            status=PlantStatus.HARVESTED,
            event_type=PlantEventType.HARVESTED,
            actor=actor,
            metadata={"harvest_id": harvest_id, "harvest_name": harvest["name"]},
            harvest_id=harvest_id,
        )
        result.harvest = self._harvests.get(harvest_id)
        return result

    def audit_harvested(self, actor: str, plant_ids: list[int], harvest_id: int) -> None:
        """One ``plant.harvest`` audit line per plant; call only after commit."""
        for plant_id in plant_ids:
            self._audit_command(actor, "plant.harvest", [plant_id], harvest_id=harvest_id)

    def destroy_plant(self, plant_id: int, reason: str, *, actor: str) -> CommandResult:
        reason = require_text(reason, "Destroy reason")
        with self._plants.transaction():
            plant = self.get_plant(plant_id)
            ensure_active(plant)
            result = self._terminate(
                plant,
                status=PlantStatus.DESTROYED,
                event_type=PlantEventType.DESTROYED,
                actor=actor,
                metadata={"reason": reason},
                destroy_reason=reason,
            )

        self._audit_command(actor, "plant.destroy", [plant_id], reason=reason)
        return result

    def _terminate(
        self,
        plant: dict[str, Any],
        *,
        status: PlantStatus,
        event_type: PlantEventType,
        actor: str,
        metadata: dict[str, Any],
        harvest_id: int | None = None,
        destroy_reason: str | None = None,
    ) -> CommandResult:
        """Vacate the slot, release the tag and decrement the batch."""
        plant_id = plant["plant_id"]
        slot: Slot | None = self._facility.slot_for_plant(plant)
        released = self._tags.release_for_plant(plant_id)
        self._plants.terminate_plant(plant_id, status=status.value, harvest_id=harvest_id, destroy_reason=destroy_reason)
        batch = None
        if plant.get("plant_batch_id"):
            batch = self._batches.record_member_removed(plant["plant_batch_id"])
        metadata = dict(metadata)
        metadata["from"] = slot.location() if slot else None
        metadata["released_tag"] = released["tag"] if released else None
        event = self._events.append(TrackableType.PLANT, plant_id, event_type, actor, metadata)
        return CommandResult(
            plants=[self.get_plant(plant_id)],
            events=[event],
            zones=[self._facility.refresh_slot(slot).to_dict()] if slot else [],
            tags=[released] if released else [],
            batch=batch,
        )

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------
    def add_note(self, plant_id: int, text: str, *, actor: str) -> CommandResult:
        """Attach a free-text note. Allowed for terminated plants too."""
        text = require_text(text, "Note text")
        with self._plants.transaction():
            plant = self.get_plant(plant_id)
            event = self._events.append(TrackableType.PLANT, plant_id, PlantEventType.NOTED, actor, {}, note=text)
            result = CommandResult(plants=[plant], events=[event])
        return result

    def _audit_command(self, actor: str, action: str, plant_ids: list[int], **metadata: Any) -> None:
        if self._audit is None:
            return
        resource = f"plant:{plant_ids[0]}" if len(plant_ids) == 1 else f"plants:{len(plant_ids)}"
        self._audit.log_event(actor, action, resource, "success", **metadata)
