"""SLA deadline derivation from pickup time and service level."""

from __future__ import annotations

from datetime import datetime, timedelta

from ...errors import ValidationError
from ...models.domain import ServiceLevel

EXPRESS_WINDOW = timedelta(hours=4)
STANDARD_CUTOFF_HOUR = 18


def parse_service_level(value: ServiceLevel | str | None) -> ServiceLevel:
    if value is None:
        return ServiceLevel.STANDARD
    if isinstance(value, ServiceLevel):
        return value
    try:
        return ServiceLevel(str(value).strip().upper())
    except ValueError as exc:
        allowed = ", ".join(level.value for level in ServiceLevel)
        raise ValidationError(f"Unknown service level {value!r}; expected one of {allowed}") from exc


def calculate_sla_deadline(
    pickup_time: datetime,
    service_level: ServiceLevel | str | None = ServiceLevel.STANDARD,
) -> datetime:
    """Latest acceptable delivery instant, on the same clock as ``pickup_time``.

    STANDARD is 18:00 on the next calendar day, EXPRESS is four hours after
    pickup and SAME_DAY is the last millisecond of the pickup day.
    """

    level = parse_service_level(service_level)
    if level is ServiceLevel.SAME_DAY:
        return pickup_time.replace(hour=23, minute=59, second=59, microsecond=999000)
    if level is ServiceLevel.EXPRESS:
        return pickup_time + EXPRESS_WINDOW
    next_day = pickup_time + timedelta(days=1)
    return next_day.replace(hour=STANDARD_CUTOFF_HOUR, minute=0, second=0, microsecond=0)
