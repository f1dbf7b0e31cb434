"""
Audit Trail
===========
One JSON line per committed command::

    2026-10-18T13:21:38Z | INFO | {"actor": "jo", "action": "plant.move", "resource": "plant:12", ...}

Services call :meth:`AuditLogger.log_event` only after their transaction has
committed, so a rolled-back command never appears here. The plant event log
in the database remains the record of state; this file answers who did what.
"""

import json
import logging
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict

MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 30


class AuditLogger:
    """Writes audit records to a rotating file, one logger per file path."""

    def __init__(self, log_path: str, level: str = "INFO") -> None:
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger(f"growtrack.audit.{self.log_path}")
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self.logger.propagate = False
        if not self.logger.handlers:
            self.logger.addHandler(self._file_handler())

    def _file_handler(self) -> RotatingFileHandler:
        handler = RotatingFileHandler(
            filename=str(self.log_path),
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
            delay=True,
        )
        formatter = logging.Formatter("%(asctime)sZ | %(levelname)s | %(message)s", "%Y-%m-%dT%H:%M:%S")
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)
        return handler

    def log_event(self, actor: str, action: str, resource: str, outcome: str, **metadata: Any) -> None:
        record: Dict[str, Any] = {"actor": actor, "action": action, "resource": resource, "outcome": outcome}
        if metadata:
            record["meta"] = metadata
        self.logger.info(json.dumps(record, default=str))

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
