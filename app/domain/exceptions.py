"""Centralized exception hierarchy for GrowTrack.

All domain and service exceptions inherit from :class:`GrowTrackError` so that
callers can catch a single base class when they need a broad safety net, yet
still match on specific subclasses where narrower handling is appropriate.

Blueprint-level error handling (see ``app/utils/http.safe_route``) maps these
to the correct HTTP status codes automatically.

Hierarchy
---------
::

    GrowTrackError (base, maps to 500)
    ├── ValidationError          (400, bad input from caller)
    │   └── InvalidCoordinate    (400, slot outside the room's layout)
    ├── NotFoundError            (404, entity does not exist)
    │   └── BatchNotFound        (404)
    ├── ConflictError            (409, duplicate / state conflict)
    │   ├── SlotFull
    │   ├── PlantNotActive
    │   ├── TagUnavailable
    │   ├── TagDuplicate
    │   └── StrainInactive
    ├── ServiceError             (500, business-logic failure)
    │   └── RepositoryError      (500, database / persistence)
    └── ConfigurationError       (500, missing / invalid config)
"""

from __future__ import annotations


class GrowTrackError(Exception):
    """Base exception for all GrowTrack application errors.

    Parameters
    ----------
    message:
        Human-readable description (logged server-side, **not** leaked to
        the HTTP client unless the exception class opts in).
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging and API error payloads.
    """

    http_status: int = 500

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}

    @property
    def code(self) -> str:
        """Stable error code for API clients, e.g. ``slot_full``."""
        name = type(self).__name__
        return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")


# ── Client errors (4xx) ──────────────────────────────────────────────


class ValidationError(GrowTrackError):
    """Caller supplied invalid or incomplete input (HTTP 400)."""

    http_status: int = 400


class InvalidCoordinate(ValidationError):
    """Coordinate is outside the room's declared layout or uses the wrong scheme."""


class NotFoundError(GrowTrackError):
    """Requested entity does not exist (HTTP 404)."""

    http_status: int = 404


class BatchNotFound(NotFoundError):
    """Referenced plant batch does not exist."""


class ConflictError(GrowTrackError):
    """Operation conflicts with existing state (HTTP 409)."""

    http_status: int = 409


class SlotFull(ConflictError):
    """Target zone or tray has no spare capacity."""


class PlantNotActive(ConflictError):
    """Plant is harvested or destroyed and can no longer be mutated."""


class TagUnavailable(ConflictError):
    """METRC tag is unknown, already assigned, retired or of the wrong type."""


class TagDuplicate(ConflictError):
    """METRC tag serial already exists in the pool."""


class StrainInactive(ConflictError):
    """Strain is deactivated and cannot receive new plants or batches."""


# ── Server errors (5xx) ──────────────────────────────────────────────


class ServiceError(GrowTrackError):
    """Business-logic failure in a service method (HTTP 500)."""

    http_status: int = 500


class RepositoryError(ServiceError):
    """Database / persistence layer failure (HTTP 500)."""

    http_status: int = 500


class ConfigurationError(GrowTrackError):
    """Missing or invalid application configuration (HTTP 500)."""

    http_status: int = 500
