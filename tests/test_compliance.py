from datetime import datetime, timedelta, timezone

import pytest

from sla_engine.errors import ValidationError
from sla_engine.models.domain import Dimensions, GeoCoordinate, Parcel, ParcelStatus, Priority
from sla_engine.persistence.parcels import InMemoryParcelStore
from sla_engine.services.sla.compliance import generate_sla_compliance_report, margin_bucket

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 1, 31, 23, 59, tzinfo=timezone.utc)


def _delivered(
    pid: str,
    created: datetime,
    delivery_minutes: float,
    spare_minutes: float,
    status: ParcelStatus = ParcelStatus.DELIVERED,
) -> Parcel:
    delivered_at = created + timedelta(minutes=delivery_minutes)
    return Parcel(
        id=pid,
        tracking_number=f"TRK-{pid}",
        pickup_location=GeoCoordinate(21.5, 39.2),
        delivery_location=GeoCoordinate(21.55, 39.25),
        weight_kg=1.0,
        dimensions=Dimensions(10, 10, 10),
        priority=Priority.MEDIUM,
        sla_deadline=delivered_at + timedelta(minutes=spare_minutes),
        status=status,
        created_at=created,
        updated_at=delivered_at,
    )


def test_two_on_time_one_late():
    created = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)
    store = InMemoryParcelStore(
        [
            _delivered("a", created, 120, 90),
            _delivered("b", created, 60, 10),
            _delivered("c", created, 180, -30),
        ]
    )

    report = generate_sla_compliance_report(store, START, END)

    assert report.total_parcels == 3
    assert report.on_time_deliveries == 2
    assert report.late_deliveries == 1
    assert report.compliance_rate == pytest.approx(66.67, abs=0.01)
    assert report.average_delivery_time == pytest.approx(120.0)
    assert report.risk_breakdown == {"LOW": 1, "MEDIUM": 0, "HIGH": 1, "CRITICAL": 1}


def test_empty_period_reports_zero():
    report = generate_sla_compliance_report(InMemoryParcelStore(), START, END)
    assert report.total_parcels == 0
    assert report.compliance_rate == 0.0
    assert report.average_delivery_time == 0.0
    assert report.risk_breakdown == {"LOW": 0, "MEDIUM": 0, "HIGH": 0, "CRITICAL": 0}


def test_only_delivered_parcels_created_in_range_count():
    store = InMemoryParcelStore(
        [
            _delivered("in-range", datetime(2024, 1, 5, tzinfo=timezone.utc), 60, 60),
            _delivered("on-start", START, 60, 60),
            _delivered("before", datetime(2023, 12, 31, tzinfo=timezone.utc), 60, 60),
            _delivered("after", datetime(2024, 2, 1, tzinfo=timezone.utc), 60, 60),
            _delivered("in-transit", datetime(2024, 1, 5, tzinfo=timezone.utc), 60, 60, ParcelStatus.IN_TRANSIT),
        ]
    )

    report = generate_sla_compliance_report(store, START, END)

    assert report.total_parcels == 2
    assert report.compliance_rate == 100.0


def test_delivery_exactly_at_deadline_is_on_time():
    store = InMemoryParcelStore([_delivered("edge", datetime(2024, 1, 5, tzinfo=timezone.utc), 60, 0)])
    report = generate_sla_compliance_report(store, START, END)
    assert report.on_time_deliveries == 1
    assert report.risk_breakdown["HIGH"] == 1


@pytest.mark.parametrize("spare, expected", [(-1, "CRITICAL"), (0, "HIGH"), (29.9, "HIGH"), (30, "MEDIUM"), (60, "LOW")])
def test_margin_buckets(spare: float, expected: str):
    assert margin_bucket(spare).value == expected


def test_reversed_range_is_rejected():
    with pytest.raises(ValidationError):
        generate_sla_compliance_report(InMemoryParcelStore(), END, START)


def test_naive_range_against_aware_parcels():
    store = InMemoryParcelStore([_delivered("a", datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc), 60, 30)])

    report = generate_sla_compliance_report(store, datetime(2024, 1, 1), datetime(2024, 1, 31))

    assert report.total_parcels == 1
    assert report.on_time_deliveries == 1
    assert report.start_date.tzinfo is not None


def test_naive_parcels_against_aware_range():
    store = InMemoryParcelStore([_delivered("a", datetime(2024, 1, 10, 9, 0), 60, -15)])

    report = generate_sla_compliance_report(store, START, END)

    assert report.total_parcels == 1
    assert report.late_deliveries == 1
    assert report.risk_breakdown["CRITICAL"] == 1
