"""Exceptions raised by the consolidation engine."""

from __future__ import annotations


class ParcelNotFoundError(LookupError):
    """Raised when a parcel id is unknown to the parcel store."""

    def __init__(self, parcel_id: str) -> None:
        super().__init__(f"Parcel {parcel_id} not found")
        self.parcel_id = parcel_id


class ValidationError(ValueError):
    """Raised when engine input violates a precondition."""


class InvalidCoordinateError(ValidationError):
    """Raised for NaN, infinite or out-of-range coordinates."""


class InvalidStatusTransitionError(ValidationError):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Invalid status transition from {current} to {requested}")
        self.current = current
        self.requested = requested


class DirectionsUnavailableError(RuntimeError):
    """Raised by a directions provider that cannot produce a route."""
