"""Timestamp normalisation shared by the store and the evaluators."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


def as_aware(value: datetime) -> datetime:
    """Aware copy of ``value``; naive values are read as local wall-clock time."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def as_aware_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return None if value is None else as_aware(value)


def local_wall_clock(value: datetime) -> datetime:
    """``value`` on the local clock; naive values already are."""
    if value.tzinfo is None:
        return value
    return value.astimezone()
