"""Parcel status state machine.

The engine only checks transitions; the persistence layer performs them.
"""

from __future__ import annotations

from ...errors import InvalidStatusTransitionError, ValidationError
from ...models.domain import ParcelStatus

VALID_TRANSITIONS: dict[ParcelStatus, frozenset[ParcelStatus]] = {
    ParcelStatus.PENDING: frozenset({ParcelStatus.ASSIGNED, ParcelStatus.FAILED}),
    ParcelStatus.ASSIGNED: frozenset({ParcelStatus.IN_TRANSIT, ParcelStatus.PENDING, ParcelStatus.FAILED}),
    ParcelStatus.IN_TRANSIT: frozenset({ParcelStatus.DELIVERED, ParcelStatus.FAILED}),
    ParcelStatus.DELIVERED: frozenset(),
    ParcelStatus.FAILED: frozenset({ParcelStatus.PENDING}),
}

ACTIVE_STATUSES = (ParcelStatus.PENDING, ParcelStatus.ASSIGNED, ParcelStatus.IN_TRANSIT)


def parse_status(value: ParcelStatus | str) -> ParcelStatus:
    if isinstance(value, ParcelStatus):
        return value
    try:
        return ParcelStatus(str(value).strip().upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown parcel status {value!r}") from exc


def can_transition(current: ParcelStatus | str, requested: ParcelStatus | str) -> bool:
    return parse_status(requested) in VALID_TRANSITIONS[parse_status(current)]


def validate_status_transition(current: ParcelStatus | str, requested: ParcelStatus | str) -> None:
    current_status = parse_status(current)
    requested_status = parse_status(requested)
    if requested_status not in VALID_TRANSITIONS[current_status]:
        raise InvalidStatusTransitionError(current_status.value, requested_status.value)


def is_terminal(status: ParcelStatus | str) -> bool:
    return not VALID_TRANSITIONS[parse_status(status)]
