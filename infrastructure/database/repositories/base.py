"""
Row conversion shared by the repository facades.

Every repository wraps the same :class:`SQLiteDatabaseHandler`, so a
``transaction()`` opened through any of them covers writes made through
all of them on the current thread.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Mapping


def row_to_dict(row: sqlite3.Row | Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Convert a ``sqlite3.Row`` into a plain dict (``None`` passes through)."""
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}


def rows_to_dicts(rows: list[sqlite3.Row]) -> list[dict[str, Any]]:
    return [row_to_dict(row) for row in rows]


__all__ = ["row_to_dict", "rows_to_dicts"]
