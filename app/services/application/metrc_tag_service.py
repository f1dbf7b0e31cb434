"""
METRC Tag Service
=================

Manages the pool of compliance tags: bulk import, listing, statistics,
voiding, and the assign/release primitives used by plant commands.

A tag is ``available`` until it is bound to a plant (``assigned``).
Releasing returns it to ``available``; a voided tag is ``retired`` and is
never handed out again.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING, Any, Iterable

from app.domain.exceptions import ConflictError, NotFoundError, TagDuplicate, TagUnavailable, ValidationError
from app.domain.metrc import normalize_tag, parse_tag_list
from app.enums.grow import PlantEventType, TagStatus, TagType, TrackableType
from infrastructure.database.pagination import validate_pagination

if TYPE_CHECKING:
    from app.services.application.event_log_service import EventLogService
    from infrastructure.database.repositories.metrc_tags import MetrcTagRepository
    from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)


class MetrcTagService:
    """Compliance tag pool."""

    def __init__(
        self,
        tag_repo: "MetrcTagRepository",
        event_log: "EventLogService",
        audit_logger: "AuditLogger | None" = None,
    ) -> None:
        self._repo = tag_repo
        self._events = event_log
        self._audit = audit_logger

    # ------------------------------------------------------------------
    # Pool management
    # ------------------------------------------------------------------
    def import_tags(
        self,
        tags: str | Iterable[str],
        tag_type: TagType | str = TagType.PLANT_TAG,
        *,
        actor: str = "system",
    ) -> dict[str, Any]:
        """Add serials to the pool. Each entry succeeds or fails on its own.

        Returns:
            ``{"created_count", "error_count", "created": [...], "errors": [{"tag", "error", "code"}]}``
        """
        kind = self._coerce_type(tag_type)
        entries = parse_tag_list(tags)
        created: list[dict[str, Any]] = []
        errors: list[dict[str, Any]] = []

        with self._repo.transaction():
            for raw in entries:
                try:
                    with self._repo.transaction():
                        created.append(self._import_one(raw, kind))
                except (ValidationError, TagDuplicate) as exc:
                    errors.append({"tag": raw, "error": str(exc), "code": exc.code})

        logger.info("Imported %s METRC tags (%s rejected)", len(created), len(errors))
        if self._audit:
            self._audit.log_event(
                actor,
                "metrc_tags.import",
                "metrc_tags",
                "success" if not errors else "partial",
                created=len(created),
                rejected=len(errors),
            )
        return {
            "created_count": len(created),
            "error_count": len(errors),
            "created": created,
            "errors": errors,
        }

    def _import_one(self, raw: Any, kind: TagType) -> dict[str, Any]:
        tag = normalize_tag(raw)
        if self._repo.get_by_value(tag) is not None:
            raise TagDuplicate(f"Tag {tag} already exists", detail={"tag": tag})
        try:
            tag_id = self._repo.create_tag(tag, kind.value)
        except sqlite3.IntegrityError as exc:
            raise TagDuplicate(f"Tag {tag} already exists", detail={"tag": tag}) from exc
        return self._repo.get(tag_id)

    def get_tag(self, metrc_tag_id: int) -> dict[str, Any]:
        tag = self._repo.get(metrc_tag_id)
        if tag is None:
            raise NotFoundError(f"METRC tag {metrc_tag_id} not found")
        return tag

    def available_tags(
        self,
        tag_type: TagType | str = TagType.PLANT_TAG,
        *,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        tags, _ = self.list_tags(status=TagStatus.AVAILABLE, tag_type=tag_type, limit=limit)
        return tags

    def list_tags(
        self,
        *,
        status: TagStatus | str | None = None,
        tag_type: TagType | str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        try:
            validated_limit, validated_offset = validate_pagination(limit, offset)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        status_value = None
        if status:
            try:
                status_value = TagStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown tag status '{status}'") from None
        type_value = self._coerce_type(tag_type).value if tag_type else None
        return self._repo.list_tags(status=status_value, tag_type=type_value, limit=validated_limit, offset=validated_offset)

    def tag_stats(self, tag_type: TagType | str | None = None) -> dict[str, int]:
        type_value = self._coerce_type(tag_type).value if tag_type else None
        counts = self._repo.count_by_status(type_value)
        stats = {status.value: counts.get(status.value, 0) for status in TagStatus}
        stats["total"] = sum(stats.values())
        return stats

    def void_tag(self, metrc_tag_id: int, *, actor: str) -> dict[str, Any]:
        """Retire an unused tag so it is never assigned."""
        with self._repo.transaction():
            tag = self.get_tag(metrc_tag_id)
            if tag["status"] == TagStatus.ASSIGNED.value:
                raise ConflictError(
                    f"Tag {tag['tag']} is assigned to plant {tag['plant_uid']}; release it first",
                    detail={"tag": tag["tag"], "plant_id": tag["plant_id"]},
                )
            if tag["status"] == TagStatus.RETIRED.value:
                raise ConflictError(f"Tag {tag['tag']} is already retired")
            self._repo.retire(metrc_tag_id)
            self._events.append(TrackableType.METRC_TAG, metrc_tag_id, PlantEventType.RETIRED, actor, {"tag": tag["tag"]})
            tag = self.get_tag(metrc_tag_id)
        if self._audit:
            self._audit.log_event(actor, "metrc_tag.void", f"metrc_tag:{metrc_tag_id}", "success", tag=tag["tag"])
        return tag

    # ------------------------------------------------------------------
    # Primitives used inside plant commands (caller owns the transaction)
    # ------------------------------------------------------------------
    def require_assignable(self, raw_tag: Any) -> dict[str, Any]:
        """Return the pool row for ``raw_tag`` if it can be bound to a plant."""
        tag = normalize_tag(raw_tag)
        row = self._repo.get_by_value(tag)
        if row is None:
            raise TagUnavailable(f"Tag {tag} is not in the pool", detail={"tag": tag})
        if row["tag_type"] != TagType.PLANT_TAG.value:
            raise TagUnavailable(f"Tag {tag} is a {row['tag_type']}, not a plant tag", detail={"tag": tag})
        if row["status"] != TagStatus.AVAILABLE.value:
            raise TagUnavailable(f"Tag {tag} is {row['status']}", detail={"tag": tag, "status": row["status"]})
        return row

    def assign(self, tag: dict[str, Any], plant_id: int) -> dict[str, Any]:
        if not self._repo.assign(tag["metrc_tag_id"], plant_id):
            raise TagUnavailable(f"Tag {tag['tag']} is no longer available", detail={"tag": tag["tag"]})
        return self._repo.get(tag["metrc_tag_id"])

    def release_for_plant(self, plant_id: int) -> dict[str, Any] | None:
        """Return the plant's tag to the pool. Returns the released tag, if any."""
        current = self._repo.get_for_plant(plant_id)
        if current is None:
            return None
        self._repo.release(current["metrc_tag_id"])
        return self._repo.get(current["metrc_tag_id"])

    @staticmethod
    def _coerce_type(tag_type: TagType | str) -> TagType:
        try:
            return TagType(tag_type)
        except ValueError:
            raise ValidationError(f"Unknown tag type '{tag_type}'") from None
