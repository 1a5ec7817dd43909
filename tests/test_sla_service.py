import gc
import threading
from datetime import datetime, timedelta, timezone

import pytest

from sla_engine.errors import InvalidStatusTransitionError, ParcelNotFoundError
from sla_engine.models.domain import (
    Dimensions,
    DistanceEstimate,
    GeoCoordinate,
    Parcel,
    ParcelStatus,
    Priority,
    RiskLevel,
    RoutePoint,
    RoutePointType,
)
from sla_engine.persistence.parcels import InMemoryParcelStore
from sla_engine.services.sla.service import SLAService

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
PICKUP = GeoCoordinate(19.0760, 72.8777)
DELIVERY = GeoCoordinate(19.0896, 72.8656)


class RecordingEstimator:
    def __init__(self) -> None:
        self.calls = []
        self.closed = False

    def estimate(self, points):
        self.calls.append(list(points))
        return DistanceEstimate(distance_km=12.0, duration_min=30, source="directions")

    def close(self) -> None:
        self.closed = True


def _parcel(pid: str, minutes_left: float, status: ParcelStatus = ParcelStatus.ASSIGNED) -> Parcel:
    return Parcel(
        id=pid,
        tracking_number=f"TRK-{pid}",
        pickup_location=PICKUP,
        delivery_location=DELIVERY,
        weight_kg=1.0,
        dimensions=Dimensions(10, 10, 10),
        priority=Priority.MEDIUM,
        sla_deadline=NOW + timedelta(minutes=minutes_left),
        status=status,
        created_at=NOW - timedelta(hours=2),
        updated_at=NOW - timedelta(hours=1),
    )


def _route_point(pid: str, lon: float, kind: RoutePointType, sequence: int, completed: bool = False) -> RoutePoint:
    return RoutePoint(
        id=pid,
        parcel_id=f"parcel-{pid}",
        location=GeoCoordinate(19.0, lon),
        type=kind,
        sequence=sequence,
        completed=completed,
    )


@pytest.fixture
def estimator() -> RecordingEstimator:
    return RecordingEstimator()


@pytest.fixture
def service(estimator: RecordingEstimator) -> SLAService:
    store = InMemoryParcelStore([_parcel("P-1", 300), _parcel("P-2", 30, ParcelStatus.IN_TRANSIT)])
    return SLAService(store, distance_estimator=estimator)


def test_validate_sla_looks_up_parcel(service: SLAService):
    assessment = service.validate_sla("P-1", PICKUP, 10.0, now=NOW)
    assert assessment.risk_level is RiskLevel.LOW
    assert assessment.estimated_delivery_time == 64


def test_unknown_parcel_raises(service: SLAService):
    with pytest.raises(ParcelNotFoundError):
        service.validate_sla("missing", PICKUP, 10.0, now=NOW)


def test_assess_parcel_risk_estimates_distance(service: SLAService, estimator: RecordingEstimator):
    assessment = service.assess_parcel_risk("P-1", now=NOW)

    assert estimator.calls == [[PICKUP, PICKUP, DELIVERY]]
    # (12 km / 25 km/h * 60 + 25) * 1.3
    assert assessment.estimated_delivery_time == 70


def test_assess_parcel_risk_with_known_distance(service: SLAService, estimator: RecordingEstimator):
    vehicle = GeoCoordinate(19.1, 72.9)
    assessment = service.assess_parcel_risk("P-2", vehicle, 10.0, now=NOW)
    assert estimator.calls == []
    assert assessment.risk_level is RiskLevel.CRITICAL


def test_check_status_transition(service: SLAService):
    assert service.check_status_transition("P-2", "DELIVERED") is ParcelStatus.IN_TRANSIT
    with pytest.raises(InvalidStatusTransitionError):
        service.check_status_transition("P-2", ParcelStatus.PENDING)


def test_run_risk_scan_records_alerts(service: SLAService):
    result = service.run_risk_scan(now=NOW)
    assert [alert.parcel_id for alert in result.alerts] == ["P-2"]
    assert service.alert_registry.latest is result


def test_optimize_vehicle_route(service: SLAService, estimator: RecordingEstimator):
    start = GeoCoordinate(19.0, 72.0)
    points = [
        _route_point("done", 72.5, RoutePointType.PICKUP, 0, completed=True),
        _route_point("far", 72.3, RoutePointType.DELIVERY, 1),
        _route_point("near", 72.1, RoutePointType.PICKUP, 2),
    ]

    result = service.optimize_vehicle_route("V-1", start, points)

    assert [point.id for point in result.route_points] == ["done", "near", "far"]
    assert estimator.calls == [[start, GeoCoordinate(19.0, 72.1), GeoCoordinate(19.0, 72.3)]]
    assert result.total_distance_km == 12.0
    # 30 min driving plus (15 + 10) * 1.3 dwell
    assert result.estimated_duration_min == 63
    assert result.distance_source == "directions"


def test_vehicle_locks_are_per_vehicle(service: SLAService):
    held = service._vehicle_lock("V-1")
    assert service._vehicle_lock("V-1") is held
    assert service._vehicle_lock("V-2") is not held


def test_vehicle_locks_are_released_after_use(service: SLAService):
    start = GeoCoordinate(19.0, 72.0)
    points = [_route_point("a", 72.3, RoutePointType.PICKUP, 0)]
    for index in range(50):
        service.optimize_vehicle_route(f"V-{index}", start, points)

    gc.collect()
    assert len(service._vehicle_locks) == 0


def test_concurrent_optimizations_complete(service: SLAService):
    start = GeoCoordinate(19.0, 72.0)
    points = [
        _route_point("a", 72.3, RoutePointType.PICKUP, 0),
        _route_point("b", 72.1, RoutePointType.DELIVERY, 1),
    ]
    results = []

    def run(vehicle_id: str) -> None:
        results.append(service.optimize_vehicle_route(vehicle_id, start, points))

    threads = [threading.Thread(target=run, args=(f"V-{index % 2}",)) for index in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5)

    assert len(results) == 6
    assert all([point.id for point in result.route_points] == ["b", "a"] for result in results)


def test_insert_parcel_into_route(service: SLAService):
    route = [_route_point("x", 72.87, RoutePointType.DELIVERY, 0)]
    result = service.insert_parcel_into_route(route, "P-1")
    assert len(result) == 3
    assert {point.parcel_id for point in result} == {"parcel-x", "P-1"}


def test_close_releases_estimator(service: SLAService, estimator: RecordingEstimator):
    service.close()
    assert estimator.closed
