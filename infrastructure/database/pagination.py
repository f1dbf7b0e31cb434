"""
Pagination
==========
Limit/offset bounds shared by the plant, tag and event listings.

- ``limit`` defaults to 100 and must lie in 1..500
- ``offset`` defaults to 0 and must not be negative
"""

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def validate_pagination(limit: int | None = None, offset: int | None = None) -> tuple[int, int]:
    """
    Apply defaults and bounds to a page request.

    Returns:
        ``(limit, offset)`` ready for a ``LIMIT ? OFFSET ?`` clause

    Raises:
        ValueError: limit or offset out of range. Services re-raise this as
            their own ``ValidationError``.
    """
    if limit is None:
        limit = DEFAULT_LIMIT
    elif isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_LIMIT:
        raise ValueError(f"Limit must be between 1 and {MAX_LIMIT}")

    if offset is None:
        offset = 0
    elif isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValueError("Offset must be at least 0")

    return limit, offset
