"""Event log service: append-only history for plants and related entities.

Every state-changing command appends exactly one record here inside the
same transaction as the change, so history can be replayed per entity.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator

from app.domain.exceptions import ValidationError
from app.enums.grow import PLANT_EVENT_TYPES, PlantEventType, TrackableType
from app.utils.time import iso_now
from infrastructure.database.pagination import validate_pagination
from infrastructure.database.repositories.plant_events import PlantEventRepository

logger = logging.getLogger(__name__)


class EventLogService:
    """Append and query event records."""

    def __init__(self, event_repo: PlantEventRepository) -> None:
        self._repo = event_repo

    def append(
        self,
        trackable_type: TrackableType | str,
        trackable_id: int,
        event_type: PlantEventType | str,
        actor: str,
        metadata: dict[str, Any] | None = None,
        note: str | None = None,
    ) -> dict[str, Any]:
        """Append one event and return the stored record.

        Raises:
            ValidationError: malformed trackable reference, event type, actor
                or metadata. Nothing else about the entity is checked here.
        """
        trackable = self._coerce(TrackableType, trackable_type, "trackable_type")
        kind = self._coerce(PlantEventType, event_type, "event_type")
        if trackable is TrackableType.PLANT and kind not in PLANT_EVENT_TYPES:
            raise ValidationError(f"Event type '{kind.value}' is not valid for plants")
        if isinstance(trackable_id, bool) or not isinstance(trackable_id, int) or trackable_id < 1:
            raise ValidationError("trackable_id must be a positive integer")
        if not isinstance(actor, str) or not actor.strip():
            raise ValidationError("actor is required")
        metadata = dict(metadata or {})
        try:
            json.dumps(metadata)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Event metadata is not JSON serialisable: {exc}") from exc
        if note is not None and not isinstance(note, str):
            raise ValidationError("note must be a string")

        event_id = self._repo.append(
            trackable_type=trackable.value,
            trackable_id=trackable_id,
            event_type=kind.value,
            actor=actor.strip(),
            metadata=metadata,
            note=note,
            created_at=iso_now(),
        )
        logger.debug("Appended %s event %s for %s %s", kind.value, event_id, trackable.value, trackable_id)
        return self._repo.get(event_id)

    def list_for(self, trackable_type: TrackableType | str, trackable_id: int) -> list[dict[str, Any]]:
        """Full history of one entity, newest first."""
        trackable = self._coerce(TrackableType, trackable_type, "trackable_type")
        return self._repo.list_for(trackable.value, trackable_id)

    def list_events(
        self,
        limit: int | None = None,
        offset: int | None = None,
        trackable_type: TrackableType | str | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """Facility-wide audit page, newest first. Returns ``(events, total)``."""
        try:
            validated_limit, validated_offset = validate_pagination(limit, offset)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        kind = self._coerce(TrackableType, trackable_type, "trackable_type") if trackable_type else None
        return self._repo.list_events(
            limit=validated_limit,
            offset=validated_offset,
            trackable_type=kind.value if kind else None,
        )

    def iter_events(
        self,
        trackable_type: TrackableType | str | None = None,
        *,
        page_size: int = 100,
    ) -> Iterator[dict[str, Any]]:
        """Lazily walk every event, newest first, one keyset page at a time.

        Events appended while iterating are not yielded (ids only grow).
        """
        validated_size, _ = validate_pagination(page_size, 0)
        kind = self._coerce(TrackableType, trackable_type, "trackable_type") if trackable_type else None
        before_id = None
        while True:
            page = self._repo.list_before(
                before_id,
                page_size=validated_size,
                trackable_type=kind.value if kind else None,
            )
            if not page:
                return
            yield from page
            if len(page) < validated_size:
                return
            before_id = page[-1]["event_id"]

    @staticmethod
    def _coerce(enum_cls, value, field_name: str):
        try:
            return enum_cls(value)
        except ValueError:
            raise ValidationError(f"Unknown {field_name} '{value}'") from None
