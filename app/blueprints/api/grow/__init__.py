"""
Grow API Module
===============

Cultivation API organized by concern:
- rooms.py: Facility, strains, rooms, floor views and zone capacity
- plants.py: Plant placement, moves, tagging, phases, terminal transitions
- batches.py: Plant batches
- tags.py: METRC tag pool
- harvests.py: Harvest aggregates
- audit.py: Facility-wide event log
"""

from flask import Blueprint

from app.utils.http import error_response

# Create blueprint here to avoid circular imports
grow_api = Blueprint("grow_api", __name__)


@grow_api.errorhandler(404)
def not_found(error):
    """Handle 404 errors"""
    return error_response("Resource not found", 404)


@grow_api.errorhandler(405)
def method_not_allowed(error):
    """Handle 405 errors"""
    return error_response("Method not allowed", 405)


@grow_api.errorhandler(500)
def internal_error(error):
    """Handle 500 errors"""
    return error_response("Internal server error", 500)


# Import submodules to register routes (must be after blueprint creation)
from . import audit, batches, harvests, plants, rooms, tags  # noqa: E402

__all__ = ["grow_api"]
