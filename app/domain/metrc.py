"""
METRC Tag Serials
=================
Normalisation and parsing of compliance tag serials.
"""

from __future__ import annotations

import re
from typing import Iterable

from app.domain.exceptions import ValidationError

MAX_TAG_LENGTH = 32
_TAG_PATTERN = re.compile(r"^[A-Z0-9]+$")
_SPLIT_PATTERN = re.compile(r"[\s,;]+")


def normalize_tag(raw: object) -> str:
    """Trim and upper-case a serial, rejecting anything but 1-32 alphanumerics."""
    if not isinstance(raw, str):
        raise ValidationError("Tag must be a string")
    tag = raw.strip().upper()
    if not tag:
        raise ValidationError("Tag is empty")
    if len(tag) > MAX_TAG_LENGTH:
        raise ValidationError(f"Tag exceeds {MAX_TAG_LENGTH} characters")
    if not _TAG_PATTERN.match(tag):
        raise ValidationError("Tag may only contain letters and digits")
    return tag


def parse_tag_list(value: str | Iterable[str]) -> list[str]:
    """Split pasted input (newline, comma or semicolon separated) into raw serials.

    Entries are returned un-normalised so that per-entry errors can echo what
    the user typed. Runs of separators in pasted text are not entries, but a
    blank item in a list is, and fails validation like any other bad serial.
    """
    if isinstance(value, str):
        return [part for part in _SPLIT_PATTERN.split(value) if part]
    return list(value)
