"""Repository facades exposing dict-returning accessors over the ops mixins."""

from infrastructure.database.repositories.base import row_to_dict, rows_to_dicts

__all__ = ["row_to_dict", "rows_to_dicts"]
