"""
Configuration for GrowTrack
===========================
Main application runtime settings loaded from ``GROWTRACK_*`` environment
variables. Sets up the logging configuration as well.
"""

import logging
import os
import sys
from contextlib import suppress
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from typing import Any

from app.domain.exceptions import ConfigurationError


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be an integer.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("GROWTRACK_ENV", "development"))
    secret_key: str = field(default_factory=lambda: os.getenv("GROWTRACK_SECRET_KEY", "GrowTrackDevSecretKey"))
    database_path: str = field(default_factory=lambda: os.getenv("GROWTRACK_DATABASE_PATH", "database/growtrack.db"))

    # Writers wait this long for the database lock before failing.
    db_busy_timeout_ms: int = field(default_factory=lambda: _env_int("GROWTRACK_DB_BUSY_TIMEOUT_MS", 5000))

    debug: bool = field(default_factory=lambda: _env_bool("GROWTRACK_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("GROWTRACK_LOG_LEVEL", "INFO"))
    log_dir: str = field(default_factory=lambda: os.getenv("GROWTRACK_LOG_DIR", "logs"))
    audit_log_path: str = field(default_factory=lambda: os.getenv("GROWTRACK_AUDIT_LOG_PATH", "logs/audit.log"))

    # Facility created on first start when the database is empty.
    facility_name: str = field(default_factory=lambda: os.getenv("GROWTRACK_FACILITY_NAME", "GrowTrack Facility"))
    facility_license: str = field(default_factory=lambda: os.getenv("GROWTRACK_FACILITY_LICENSE", ""))

    max_upload_mb: int = field(default_factory=lambda: _env_int("GROWTRACK_MAX_UPLOAD_MB", 2))

    _DEFAULT_SECRET_KEY = "GrowTrackDevSecretKey"

    def __post_init__(self) -> None:
        if self.environment == "production" and self.secret_key == self._DEFAULT_SECRET_KEY:
            raise ConfigurationError(
                "Cannot use the default secret key in production. Set GROWTRACK_SECRET_KEY to a random value."
            )
        if self.db_busy_timeout_ms < 0:
            raise ConfigurationError("GROWTRACK_DB_BUSY_TIMEOUT_MS must not be negative.")

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for Flask application."""
        return {
            "ENV": self.environment,
            "SECRET_KEY": self.secret_key,
            "DATABASE_PATH": self.database_path,
            "AUDIT_LOG_PATH": self.audit_log_path,
            "DEBUG": self.debug,
            "MAX_CONTENT_LENGTH": self.max_upload_mb * 1024 * 1024,
            "JSON_SORT_KEYS": False,
        }


_CONSOLE_HANDLER = "growtrack_console"
_FILE_HANDLER = "growtrack_file"
_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _console_handler() -> logging.Handler:
    stream = sys.stdout
    # Windows terminals otherwise raise UnicodeEncodeError on non-ASCII strain names.
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    return logging.StreamHandler(stream=stream)


def _file_handler(log_dir: str) -> logging.Handler:
    os.makedirs(log_dir, exist_ok=True)
    return RotatingFileHandler(
        os.path.join(log_dir, "growtrack.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )


def setup_logging(debug: bool = False, *, log_dir: str = "logs", level: str | None = None) -> None:
    """Attach the console and rotating file handlers to the root logger.

    Safe to call once per ``create_app``: handlers are identified by name and
    only their level is refreshed on later calls.
    """
    log_level = logging.DEBUG if debug else getattr(logging, (level or "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)

    existing = {getattr(h, "name", ""): h for h in root.handlers}
    added = False
    for name, factory in ((_CONSOLE_HANDLER, _console_handler), (_FILE_HANDLER, lambda: _file_handler(log_dir))):
        handler = existing.get(name)
        if handler is None:
            handler = factory()
            handler.name = name
            handler.setFormatter(logging.Formatter(_LOG_FORMAT))
            root.addHandler(handler)
            added = True
        handler.setLevel(log_level)

    if added:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    if _env_bool("GROWTRACK_SILENCE_WERKZEUG", True):
        logging.getLogger("werkzeug").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()
