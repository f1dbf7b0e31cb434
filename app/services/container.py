from __future__ import annotations

import logging
from dataclasses import dataclass

from app.config import AppConfig
from app.services.application.event_log_service import EventLogService
from app.services.application.facility_service import FacilityService
from app.services.application.harvest_service import HarvestService
from app.services.application.metrc_tag_service import MetrcTagService
from app.services.application.plant_batch_service import PlantBatchService
from app.services.application.plant_lifecycle_service import PlantLifecycleService
from infrastructure.database.repositories.facility import FacilityRepository
from infrastructure.database.repositories.harvests import HarvestRepository
from infrastructure.database.repositories.metrc_tags import MetrcTagRepository
from infrastructure.database.repositories.plant_events import PlantEventRepository
from infrastructure.database.repositories.plants import PlantRepository
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Aggregate and manage core backend services."""

    config: AppConfig
    database: SQLiteDatabaseHandler
    facility_repo: FacilityRepository
    plant_repo: PlantRepository
    tag_repo: MetrcTagRepository
    event_repo: PlantEventRepository
    harvest_repo: HarvestRepository
    audit_logger: AuditLogger
    event_log: EventLogService
    facility_service: FacilityService
    tag_service: MetrcTagService
    batch_service: PlantBatchService
    lifecycle_service: PlantLifecycleService
    harvest_service: HarvestService

    @classmethod
    def build(cls, config: AppConfig) -> "ServiceContainer":
        """Construct the service container with all dependencies.

        Creates the schema and the default facility when the database is new.
        """
        logger.info("Building ServiceContainer for %s", config.database_path)
        audit_logger = AuditLogger(config.audit_log_path, config.log_level)
        database = SQLiteDatabaseHandler(config.database_path, busy_timeout_ms=config.db_busy_timeout_ms)
        database.create_tables()

        facility_repo = FacilityRepository(database)
        plant_repo = PlantRepository(database)
        tag_repo = MetrcTagRepository(database)
        event_repo = PlantEventRepository(database)
        harvest_repo = HarvestRepository(database)

        event_log = EventLogService(event_repo)
        facility_service = FacilityService(facility_repo, plant_repo, event_log, audit_logger)
        tag_service = MetrcTagService(tag_repo, event_log, audit_logger)
        batch_service = PlantBatchService(plant_repo, facility_service, event_log, audit_logger)
        lifecycle_service = PlantLifecycleService(
            plant_repo,
            harvest_repo,
            facility_service,
            tag_service,
            batch_service,
            event_log,
            audit_logger,
        )
        harvest_service = HarvestService(harvest_repo, lifecycle_service, facility_service, event_log, audit_logger)

        facility_service.ensure_default_facility(config.facility_name, config.facility_license)

        logger.info("ServiceContainer built successfully.")
        return cls(
            config=config,
            database=database,
            facility_repo=facility_repo,
            plant_repo=plant_repo,
            tag_repo=tag_repo,
            event_repo=event_repo,
            harvest_repo=harvest_repo,
            audit_logger=audit_logger,
            event_log=event_log,
            facility_service=facility_service,
            tag_service=tag_service,
            batch_service=batch_service,
            lifecycle_service=lifecycle_service,
            harvest_service=harvest_service,
        )

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        self.database.close_db()
        self.audit_logger.close()
        logger.info("ServiceContainer shutdown complete.")
