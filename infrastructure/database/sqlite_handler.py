import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from flask import Flask

from app.domain.exceptions import RepositoryError
from infrastructure.database.ops.facility import FacilityOperations
from infrastructure.database.ops.harvests import HarvestOperations
from infrastructure.database.ops.metrc_tags import MetrcTagOperations
from infrastructure.database.ops.plant_events import PlantEventOperations
from infrastructure.database.ops.plants import PlantOperations

logger = logging.getLogger(__name__)


class SQLiteDatabaseHandler(
    FacilityOperations,
    PlantOperations,
    MetrcTagOperations,
    PlantEventOperations,
    HarvestOperations,
):
    """Thread-safe SQLite handler decoupled from Flask globals.

    Each thread holds its own connection, opened in autocommit mode. Writes
    that must be atomic go through :meth:`transaction`, which takes the
    database write lock up front (``BEGIN IMMEDIATE``) so that capacity and
    tag-availability checks read state no other writer can change before
    the commit.
    """

    def __init__(self, database_path: str, *, busy_timeout_ms: int = 5000) -> None:
        self._database_path = database_path
        self._busy_timeout_ms = busy_timeout_ms
        self._local = threading.local()

        if database_path != ":memory:":
            db_path = Path(database_path)
            if not db_path.parent.exists():
                db_path.parent.mkdir(parents=True, exist_ok=True)
                logger.info("Created database directory: %s", db_path.parent)

    # --- Lifecycle ------------------------------------------------------------
    def init_app(self, app: Flask) -> None:
        """Close the request thread's connection when the app context ends."""
        app.teardown_appcontext(self.close_db)

    def get_db(self) -> sqlite3.Connection:
        """Return this thread's connection, opening it on first use.

        An unreadable database file is reported, never replaced.
        """
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is None:
            try:
                connection = self._open_connection()
            except sqlite3.Error as exc:
                logger.error("Could not open database %s: %s", self._database_path, exc)
                raise RepositoryError(
                    "Could not open database",
                    detail={"database": self._database_path, "error": str(exc)},
                ) from exc
            self._local.connection = connection
            self._local.depth = 0
        return connection

    def _open_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._database_path,
            check_same_thread=False,
            isolation_level=None,
            timeout=self._busy_timeout_ms / 1000,
        )
        try:
            connection.row_factory = sqlite3.Row
            self._configure_connection(connection)
            return connection
        except Exception:
            connection.close()
            raise

    def _configure_connection(self, connection: sqlite3.Connection) -> None:
        """Configure SQLite connection.

        - WAL mode: readers do not block the single writer
        - NORMAL synchronous: safe with WAL
        - foreign keys enforced
        """
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        connection.execute("PRAGMA foreign_keys=ON")
        connection.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)}")

    def close_db(self, _e: Optional[BaseException] = None) -> None:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            delattr(self._local, "connection")
            self._local.depth = 0

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield this thread's connection (statements auto-commit)."""
        yield self.get_db()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a unit of work atomically.

        The outermost call issues ``BEGIN IMMEDIATE``; nested calls open a
        savepoint so that an inner failure can be rolled back on its own
        while the outer unit of work continues. Database errors escaping the
        outermost unit of work are raised as :class:`RepositoryError`.
        """
        conn = self.get_db()
        depth = self._local.depth
        savepoint = f"sp_{depth}"
        if depth == 0:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise RepositoryError("Could not start transaction", detail={"error": str(exc)}) from exc
        else:
            conn.execute(f"SAVEPOINT {savepoint}")
        self._local.depth = depth + 1
        try:
            yield conn
        except BaseException as exc:
            self._local.depth = depth
            if depth == 0:
                conn.execute("ROLLBACK")
                if isinstance(exc, sqlite3.Error):
                    logger.error("Transaction rolled back: %s", exc)
                    raise RepositoryError("Database operation failed", detail={"error": str(exc)}) from exc
            else:
                conn.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
                conn.execute(f"RELEASE SAVEPOINT {savepoint}")
            raise
        else:
            self._local.depth = depth
            if depth == 0:
                conn.execute("COMMIT")
            else:
                conn.execute(f"RELEASE SAVEPOINT {savepoint}")

    # --- Schema ----------------------------------------------------------------
    def create_tables(self) -> None:
        """Creates the necessary tables in the database if they do not already exist."""
        with self.connection() as db:
            db.executescript(_SCHEMA)
        logger.debug("Database schema ready at %s", self._database_path)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS Facilities (
    facility_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    license_number TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS Strains (
    strain_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    category TEXT,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS Rooms (
    room_id INTEGER PRIMARY KEY AUTOINCREMENT,
    facility_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    room_type TEXT,
    layout_kind TEXT NOT NULL CHECK (layout_kind IN ('grid', 'rack')),
    floor_count INTEGER NOT NULL DEFAULT 1 CHECK (floor_count >= 1),
    grid_rows INTEGER,
    grid_cols INTEGER,
    default_zone_capacity INTEGER,
    racks_per_floor INTEGER,
    trays_per_rack INTEGER,
    tray_capacity INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (facility_id, name),
    FOREIGN KEY (facility_id) REFERENCES Facilities(facility_id)
);

CREATE TABLE IF NOT EXISTS GridZones (
    zone_id INTEGER PRIMARY KEY AUTOINCREMENT,
    room_id INTEGER NOT NULL,
    floor INTEGER NOT NULL,
    row_index INTEGER NOT NULL,
    col_index INTEGER NOT NULL,
    capacity INTEGER NOT NULL CHECK (capacity >= 1),
    UNIQUE (room_id, floor, row_index, col_index),
    FOREIGN KEY (room_id) REFERENCES Rooms(room_id)
);

CREATE TABLE IF NOT EXISTS Racks (
    rack_id INTEGER PRIMARY KEY AUTOINCREMENT,
    room_id INTEGER NOT NULL,
    floor INTEGER NOT NULL,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    UNIQUE (room_id, floor, position),
    FOREIGN KEY (room_id) REFERENCES Rooms(room_id)
);

CREATE TABLE IF NOT EXISTS Trays (
    tray_id INTEGER PRIMARY KEY AUTOINCREMENT,
    rack_id INTEGER NOT NULL,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    capacity INTEGER NOT NULL CHECK (capacity >= 1),
    UNIQUE (rack_id, position),
    FOREIGN KEY (rack_id) REFERENCES Racks(rack_id)
);

CREATE TABLE IF NOT EXISTS PlantBatches (
    plant_batch_id INTEGER PRIMARY KEY AUTOINCREMENT,
    batch_uid TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    strain_id INTEGER NOT NULL,
    batch_type TEXT NOT NULL,
    initial_count INTEGER NOT NULL CHECK (initial_count >= 1),
    active_plant_count INTEGER NOT NULL DEFAULT 0 CHECK (active_plant_count >= 0),
    notes TEXT,
    created_by TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (strain_id) REFERENCES Strains(strain_id)
);

CREATE TABLE IF NOT EXISTS Harvests (
    harvest_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    harvest_type TEXT NOT NULL DEFAULT 'harvest',
    status TEXT NOT NULL DEFAULT 'active',
    harvest_date TEXT,
    wet_weight_grams REAL,
    dry_weight_grams REAL,
    drying_room_id INTEGER,
    notes TEXT,
    created_by TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    closed_at TEXT,
    FOREIGN KEY (drying_room_id) REFERENCES Rooms(room_id)
);

CREATE TABLE IF NOT EXISTS Plants (
    plant_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_uid TEXT NOT NULL UNIQUE,
    strain_id INTEGER NOT NULL,
    plant_batch_id INTEGER,
    custom_label TEXT,
    growth_phase TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    room_id INTEGER,
    floor INTEGER,
    grid_row INTEGER,
    grid_col INTEGER,
    tray_id INTEGER,
    harvest_id INTEGER,
    destroy_reason TEXT,
    placed_by TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    terminated_at TEXT,
    CHECK (status = 'active' OR room_id IS NULL),
    FOREIGN KEY (strain_id) REFERENCES Strains(strain_id),
    FOREIGN KEY (plant_batch_id) REFERENCES PlantBatches(plant_batch_id),
    FOREIGN KEY (room_id) REFERENCES Rooms(room_id),
    FOREIGN KEY (tray_id) REFERENCES Trays(tray_id),
    FOREIGN KEY (harvest_id) REFERENCES Harvests(harvest_id)
);

CREATE TABLE IF NOT EXISTS MetrcTags (
    metrc_tag_id INTEGER PRIMARY KEY AUTOINCREMENT,
    tag TEXT NOT NULL UNIQUE,
    tag_type TEXT NOT NULL DEFAULT 'plant_tag',
    status TEXT NOT NULL DEFAULT 'available',
    plant_id INTEGER,
    assigned_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK ((status = 'assigned') = (plant_id IS NOT NULL)),
    FOREIGN KEY (plant_id) REFERENCES Plants(plant_id)
);

CREATE TABLE IF NOT EXISTS PlantEvents (
    event_id INTEGER PRIMARY KEY AUTOINCREMENT,
    trackable_type TEXT NOT NULL,
    trackable_id INTEGER NOT NULL,
    event_type TEXT NOT NULL,
    actor TEXT NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    note TEXT,
    created_at TEXT NOT NULL
);

CREATE TRIGGER IF NOT EXISTS trg_plant_events_no_update
BEFORE UPDATE ON PlantEvents
BEGIN
    SELECT RAISE(ABORT, 'PlantEvents is append-only');
END;

CREATE TRIGGER IF NOT EXISTS trg_plant_events_no_delete
BEFORE DELETE ON PlantEvents
BEGIN
    SELECT RAISE(ABORT, 'PlantEvents is append-only');
END;

CREATE INDEX IF NOT EXISTS idx_rooms_facility ON Rooms(facility_id);
CREATE INDEX IF NOT EXISTS idx_racks_room_floor ON Racks(room_id, floor);
CREATE INDEX IF NOT EXISTS idx_trays_rack ON Trays(rack_id);
CREATE INDEX IF NOT EXISTS idx_plants_grid_slot ON Plants(room_id, floor, grid_row, grid_col) WHERE status = 'active';
CREATE INDEX IF NOT EXISTS idx_plants_tray_slot ON Plants(tray_id) WHERE status = 'active';
CREATE INDEX IF NOT EXISTS idx_plants_batch ON Plants(plant_batch_id);
CREATE INDEX IF NOT EXISTS idx_plants_harvest ON Plants(harvest_id);
CREATE INDEX IF NOT EXISTS idx_plants_status_phase ON Plants(status, growth_phase);
CREATE UNIQUE INDEX IF NOT EXISTS idx_metrc_tags_plant ON MetrcTags(plant_id) WHERE plant_id IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_metrc_tags_status ON MetrcTags(status, tag_type);
CREATE INDEX IF NOT EXISTS idx_plant_events_trackable ON PlantEvents(trackable_type, trackable_id, event_id);
"""
