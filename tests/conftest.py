"""
Shared test fixtures for the GrowTrack backend test suite.

Provides:
- In-memory SQLite database with all tables created
- Repository instances wired to the test database
- Mock audit logger
- Service factories for the application services
- Helper utilities for seeding strains, rooms, batches and tags

Usage:
    def test_example(lifecycle_service, seed):
        room = seed.create_grid_room(rows=2, cols=2)
        result = lifecycle_service.place_plant(strain_id=seed.strain_id(), room_id=room["room_id"], ...)
"""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock

import pytest

from app.domain.layout import GridLayout, RackTrayLayout
from infrastructure.database.repositories.facility import FacilityRepository
from infrastructure.database.repositories.harvests import HarvestRepository
from infrastructure.database.repositories.metrc_tags import MetrcTagRepository
from infrastructure.database.repositories.plant_events import PlantEventRepository
from infrastructure.database.repositories.plants import PlantRepository

# ---------------------------------------------------------------------------
# Database & Repositories
# ---------------------------------------------------------------------------
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler

# ---------------------------------------------------------------------------
# Logging — keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("infrastructure").setLevel(logging.WARNING)
logging.getLogger("app").setLevel(logging.WARNING)

ACTOR = "tester"


# ========================== Database Fixtures ==============================


@pytest.fixture()
def db_handler():
    """In-memory SQLite database with all tables created.

    Each test gets a fresh database — no cross-test contamination.
    """
    handler = SQLiteDatabaseHandler(":memory:")
    handler.create_tables()
    yield handler
    handler.close_db()


@pytest.fixture()
def db_connection(db_handler):
    """Raw sqlite3 connection for direct SQL in tests."""
    with db_handler.connection() as conn:
        yield conn


# ========================== Repository Fixtures ============================


@pytest.fixture()
def facility_repo(db_handler):
    return FacilityRepository(db_handler)


@pytest.fixture()
def plant_repo(db_handler):
    """PlantRepository backed by the in-memory DB."""
    return PlantRepository(db_handler)


@pytest.fixture()
def tag_repo(db_handler):
    return MetrcTagRepository(db_handler)


@pytest.fixture()
def event_repo(db_handler):
    return PlantEventRepository(db_handler)


@pytest.fixture()
def harvest_repo(db_handler):
    return HarvestRepository(db_handler)


# ========================== Mock Service Fixtures ==========================


@pytest.fixture()
def mock_audit_logger():
    """Mock AuditLogger."""
    logger = MagicMock()
    logger.log_event = MagicMock()
    return logger


# ========================== Service Factory Fixtures =======================


@pytest.fixture()
def event_log(event_repo):
    from app.services.application.event_log_service import EventLogService

    return EventLogService(event_repo)


@pytest.fixture()
def facility_service(facility_repo, plant_repo, event_log, mock_audit_logger):
    """FacilityService with the default facility already created."""
    from app.services.application.facility_service import FacilityService

    service = FacilityService(facility_repo, plant_repo, event_log, mock_audit_logger)
    service.ensure_default_facility("Test Facility", "LIC-0001")
    return service


@pytest.fixture()
def tag_service(tag_repo, event_log, mock_audit_logger):
    from app.services.application.metrc_tag_service import MetrcTagService

    return MetrcTagService(tag_repo, event_log, mock_audit_logger)


@pytest.fixture()
def batch_service(plant_repo, facility_service, event_log, mock_audit_logger):
    from app.services.application.plant_batch_service import PlantBatchService

    return PlantBatchService(plant_repo, facility_service, event_log, mock_audit_logger)


@pytest.fixture()
def lifecycle_service(
    plant_repo,
    harvest_repo,
    facility_service,
    tag_service,
    batch_service,
    event_log,
    mock_audit_logger,
):
    from app.services.application.plant_lifecycle_service import PlantLifecycleService

    return PlantLifecycleService(
        plant_repo,
        harvest_repo,
        facility_service,
        tag_service,
        batch_service,
        event_log,
        mock_audit_logger,
    )


@pytest.fixture()
def harvest_service(harvest_repo, lifecycle_service, facility_service, event_log, mock_audit_logger):
    from app.services.application.harvest_service import HarvestService

    return HarvestService(harvest_repo, lifecycle_service, facility_service, event_log, mock_audit_logger)


# ========================== Seed Data Helpers ==============================


class SeedData:
    """Helper to create commonly needed test data.

    Usage in tests::

        def test_something(seed, lifecycle_service):
            strain_id = seed.strain_id("Blue Dream")
            room = seed.create_grid_room("Veg A", rows=2, cols=3, capacity=1)
            seed.import_tags("1A4000000000000000000001")
            plant = seed.place(room, row=0, col=0)
    """

    def __init__(self, facility_service, tag_service, batch_service, lifecycle_service):
        self._facility = facility_service
        self._tags = tag_service
        self._batches = batch_service
        self._lifecycle = lifecycle_service
        self._strains: dict[str, int] = {}

    def strain_id(self, name: str = "Blue Dream", category: str | None = "hybrid") -> int:
        """Return the id of ``name``, creating the strain on first use."""
        if name not in self._strains:
            strain = self._facility.create_strain(name, category, actor=ACTOR)
            self._strains[name] = strain["strain_id"]
        return self._strains[name]

    def create_grid_room(
        self,
        name: str = "Veg Room",
        *,
        rows: int = 2,
        cols: int = 2,
        capacity: int = 1,
        floors: int = 1,
        room_type: str | None = "veg",
    ) -> dict[str, Any]:
        return self._facility.create_room(
            name=name,
            layout=GridLayout(rows, cols, capacity),
            floor_count=floors,
            room_type=room_type,
            actor=ACTOR,
        )

    def create_rack_room(
        self,
        name: str = "Clone Room",
        *,
        racks: int = 2,
        trays: int = 2,
        tray_capacity: int = 4,
        floors: int = 1,
        room_type: str | None = "clone",
    ) -> dict[str, Any]:
        return self._facility.create_room(
            name=name,
            layout=RackTrayLayout(racks, trays, tray_capacity),
            floor_count=floors,
            room_type=room_type,
            actor=ACTOR,
        )

    def first_tray_id(self, room: dict[str, Any], floor: int = 1) -> int:
        view = self._facility.floor_view(room["room_id"], floor)
        return view["racks"][0]["trays"][0]["tray_id"]

    def create_batch(self, strain_id: int | None = None, *, initial_count: int = 10, name: str = "Batch A") -> dict:
        created = self._batches.create_batch(
            name=name,
            strain_id=strain_id or self.strain_id(),
            batch_type="clone",
            initial_count=initial_count,
            actor=ACTOR,
        )
        return created["batch"]

    def import_tags(self, *tags: str) -> dict[str, Any]:
        return self._tags.import_tags(list(tags), actor=ACTOR)

    def place(
        self,
        room: dict[str, Any],
        *,
        row: int = 0,
        col: int = 0,
        floor: int = 1,
        strain_id: int | None = None,
        plant_batch_id: int | None = None,
        metrc_tag: str | None = None,
    ) -> dict[str, Any]:
        """Place one plant into a grid zone and return the plant snapshot."""
        result = self._lifecycle.place_plant(
            strain_id=strain_id or self.strain_id(),
            room_id=room["room_id"],
            floor=floor,
            row=row,
            col=col,
            plant_batch_id=plant_batch_id,
            metrc_tag=metrc_tag,
            actor=ACTOR,
        )
        return result.plant


@pytest.fixture()
def seed(facility_service, tag_service, batch_service, lifecycle_service):
    """SeedData helper for quickly populating the test database."""
    return SeedData(facility_service, tag_service, batch_service, lifecycle_service)
