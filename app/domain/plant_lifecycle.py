"""
Plant Lifecycle Rules
=====================
Pure transition rules for plants and harvests. Nothing here touches the
database; the orchestrating services call these before writing anything.

Plant state machine::

    immature <-> vegetative <-> flowering      (corrections allowed)
         \\            |            /
          +----> harvested | destroyed        (terminal)

Harvest state machine::

    active -> drying -> dried -> packaged
       \\________\\________\\________\\-> closed
"""

from __future__ import annotations

from typing import Any, Mapping

from app.domain.exceptions import ConflictError, PlantNotActive, ValidationError
from app.enums.grow import GrowthPhase, HarvestStatus, PlantStatus

HARVEST_TRANSITIONS: dict[HarvestStatus, frozenset[HarvestStatus]] = {
    HarvestStatus.ACTIVE: frozenset({HarvestStatus.DRYING, HarvestStatus.CLOSED}),
    HarvestStatus.DRYING: frozenset({HarvestStatus.DRIED, HarvestStatus.CLOSED}),
    HarvestStatus.DRIED: frozenset({HarvestStatus.PACKAGED, HarvestStatus.CLOSED}),
    HarvestStatus.PACKAGED: frozenset({HarvestStatus.CLOSED}),
    HarvestStatus.CLOSED: frozenset(),
}


def coerce_phase(value: Any) -> GrowthPhase:
    if isinstance(value, GrowthPhase):
        return value
    try:
        return GrowthPhase(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in GrowthPhase)
        raise ValidationError(f"Unknown growth phase '{value}' (expected one of: {allowed})") from None


def ensure_active(plant: Mapping[str, Any]) -> None:
    """Raise :class:`PlantNotActive` unless the plant can still be mutated."""
    status = PlantStatus(plant["status"])
    if status is not PlantStatus.ACTIVE:
        raise PlantNotActive(
            f"Plant {plant['plant_uid']} is {status.value}",
            detail={"plant_id": plant["plant_id"], "status": status.value},
        )


def phase_transition(current: Any, target: Any) -> dict[str, str]:
    """Validate a phase change and return its event metadata.

    Moving backwards is accepted as a correction; the direction is recorded
    so that history readers can tell the two apart.
    """
    current_phase = coerce_phase(current)
    target_phase = coerce_phase(target)
    if current_phase is target_phase:
        raise ValidationError(f"Plant is already in phase '{target_phase.value}'")
    direction = "forward" if target_phase.rank > current_phase.rank else "backward"
    return {"from": current_phase.value, "to": target_phase.value, "direction": direction}


def require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def harvest_transition(current: Any, target: HarvestStatus) -> dict[str, str]:
    current_status = HarvestStatus(current)
    if target not in HARVEST_TRANSITIONS[current_status]:
        raise ConflictError(
            f"Harvest cannot move from '{current_status.value}' to '{target.value}'",
            detail={"from": current_status.value, "to": target.value},
        )
    return {"from": current_status.value, "to": target.value}
