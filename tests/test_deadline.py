from datetime import datetime, timedelta, timezone

import pytest

from sla_engine.errors import ValidationError
from sla_engine.models.domain import ServiceLevel
from sla_engine.services.sla.deadline import calculate_sla_deadline, parse_service_level

PICKUP = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def test_standard_is_next_day_at_six_pm():
    assert calculate_sla_deadline(PICKUP, ServiceLevel.STANDARD) == datetime(2024, 1, 16, 18, 0, tzinfo=timezone.utc)


def test_standard_is_the_default():
    assert calculate_sla_deadline(PICKUP) == calculate_sla_deadline(PICKUP, ServiceLevel.STANDARD)
    assert calculate_sla_deadline(PICKUP, None) == calculate_sla_deadline(PICKUP, ServiceLevel.STANDARD)


def test_express_is_four_hours_after_pickup():
    assert calculate_sla_deadline(PICKUP, ServiceLevel.EXPRESS) == datetime(2024, 1, 15, 14, 0, tzinfo=timezone.utc)


def test_same_day_is_end_of_pickup_day():
    deadline = calculate_sla_deadline(PICKUP, ServiceLevel.SAME_DAY)
    assert deadline == datetime(2024, 1, 15, 23, 59, 59, 999000, tzinfo=timezone.utc)


def test_standard_rolls_over_month_end():
    pickup = datetime(2024, 1, 31, 22, 30, tzinfo=timezone.utc)
    assert calculate_sla_deadline(pickup) == datetime(2024, 2, 1, 18, 0, tzinfo=timezone.utc)


def test_deadline_keeps_pickup_timezone():
    tz = timezone(timedelta(hours=5, minutes=30))
    pickup = datetime(2024, 1, 15, 10, 0, tzinfo=tz)
    deadline = calculate_sla_deadline(pickup, "EXPRESS")
    assert deadline.tzinfo is tz
    assert deadline.hour == 14


def test_service_level_strings_are_accepted():
    assert parse_service_level("same_day") is ServiceLevel.SAME_DAY
    assert parse_service_level(" express ") is ServiceLevel.EXPRESS


def test_unknown_service_level_is_rejected():
    with pytest.raises(ValidationError):
        calculate_sla_deadline(PICKUP, "OVERNIGHT")
