"""SLA engine orchestration service."""

from __future__ import annotations

import logging
import threading
import weakref
from datetime import datetime
from typing import Sequence

from ...config import Settings, settings
from ...models.domain import (
    ComplianceReport,
    DeliveryTimeImpact,
    GeoCoordinate,
    ParcelStatus,
    RiskAssessment,
    RouteOptimizationResult,
    RoutePoint,
    RoutePointType,
    ScanResult,
    ServiceLevel,
    SLARiskAlert,
)
from ...persistence.alerts import AlertRegistry
from ...persistence.parcels import ParcelStore
from ..routing.directions import RouteDistanceEstimator
from ..routing.insertion import insert_parcel_stops
from ..routing.sequencing import nearest_neighbor_order
from ..timing import DeliveryTimeEstimator, round_minutes
from .compliance import generate_sla_compliance_report
from .deadline import calculate_sla_deadline
from .impact import calculate_delivery_time_impact
from .risk import validate_sla
from .scanner import AtRiskScanner
from .status import validate_status_transition

logger = logging.getLogger(__name__)


class SLAService:
    """Entry point for the exposed SLA operations.

    Collaborators are passed in so tests can substitute them. Route
    re-optimisation is serialised per vehicle; different vehicles run in
    parallel.
    """

    def __init__(
        self,
        store: ParcelStore,
        *,
        distance_estimator: RouteDistanceEstimator | None = None,
        alert_registry: AlertRegistry | None = None,
        config: Settings = settings,
    ) -> None:
        self.store = store
        self.config = config
        self.time_estimator = DeliveryTimeEstimator.from_settings(config)
        self.distance_estimator = distance_estimator or RouteDistanceEstimator(
            time_estimator=self.time_estimator,
            timeout_seconds=config.directions_timeout_seconds,
        )
        self.alert_registry = alert_registry or AlertRegistry()
        self.scanner = AtRiskScanner(store, config)
        # entries vanish once no caller holds the vehicle's lock
        self._vehicle_locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._vehicle_locks_guard = threading.Lock()

    def calculate_sla_deadline(
        self, pickup_time: datetime, service_level: ServiceLevel | str | None = ServiceLevel.STANDARD
    ) -> datetime:
        return calculate_sla_deadline(pickup_time, service_level)

    def validate_sla(
        self,
        parcel_id: str,
        current_location: GeoCoordinate,
        estimated_route_distance_km: float,
        safety_margin_minutes: float | None = None,
        *,
        now: datetime | None = None,
    ) -> RiskAssessment:
        parcel = self.store.find_by_id(parcel_id)
        return validate_sla(
            parcel,
            current_location,
            estimated_route_distance_km,
            safety_margin_minutes,
            now=now,
            estimator=self.time_estimator,
            config=self.config,
        )

    def assess_parcel_risk(
        self,
        parcel_id: str,
        current_location: GeoCoordinate | None = None,
        estimated_distance_km: float | None = None,
        *,
        now: datetime | None = None,
    ) -> RiskAssessment:
        """Risk assessment where the route distance may be unknown.

        Without a distance, the road distance vehicle -> pickup -> delivery is
        estimated (directions provider, falling back to Haversine). Without a
        vehicle location the route starts at the pickup.
        """

        parcel = self.store.find_by_id(parcel_id)
        location = current_location or parcel.pickup_location
        if estimated_distance_km is None:
            points = [location, parcel.pickup_location, parcel.delivery_location]
            estimate = self.distance_estimator.estimate(points)
            estimated_distance_km = estimate.distance_km
            logger.debug(f"Estimated {estimate.distance_km:.2f} km for parcel {parcel_id} via {estimate.source}")
        return validate_sla(
            parcel,
            location,
            estimated_distance_km,
            now=now,
            estimator=self.time_estimator,
            config=self.config,
        )

    def calculate_delivery_time_impact(
        self,
        existing_route: Sequence[GeoCoordinate],
        new_pickup: GeoCoordinate,
        new_delivery: GeoCoordinate,
        original_eta: datetime,
    ) -> DeliveryTimeImpact:
        return calculate_delivery_time_impact(
            existing_route,
            new_pickup,
            new_delivery,
            original_eta,
            estimator=self.time_estimator,
            config=self.config,
        )

    def get_at_risk_parcels(self, threshold_minutes: int | None = None, *, now: datetime | None = None) -> list[SLARiskAlert]:
        return self.scanner.get_at_risk_parcels(threshold_minutes, now=now)

    def run_risk_scan(self, threshold_minutes: int | None = None, *, now: datetime | None = None) -> ScanResult:
        result = self.scanner.scan(threshold_minutes, now=now)
        self.alert_registry.record(result)
        return result

    def generate_sla_compliance_report(self, start_date: datetime, end_date: datetime) -> ComplianceReport:
        return generate_sla_compliance_report(self.store, start_date, end_date)

    def check_status_transition(self, parcel_id: str, requested: ParcelStatus | str) -> ParcelStatus:
        """Raise InvalidStatusTransitionError unless the parcel may move to ``requested``."""

        parcel = self.store.find_by_id(parcel_id)
        validate_status_transition(parcel.status, requested)
        return parcel.status

    def insert_parcel_into_route(self, route_points: Sequence[RoutePoint], parcel_id: str) -> list[RoutePoint]:
        parcel = self.store.find_by_id(parcel_id)
        return insert_parcel_stops(route_points, parcel)

    def _vehicle_lock(self, vehicle_id: str) -> threading.Lock:
        with self._vehicle_locks_guard:
            return self._vehicle_locks.setdefault(vehicle_id, threading.Lock())

    def optimize_vehicle_route(
        self,
        vehicle_id: str,
        current_location: GeoCoordinate,
        route_points: Sequence[RoutePoint],
    ) -> RouteOptimizationResult:
        with self._vehicle_lock(vehicle_id):
            ordered = nearest_neighbor_order(current_location, route_points)
            pending = [point.location for point in ordered if not point.completed]
            estimate = self.distance_estimator.estimate([current_location, *pending])
            pickups = sum(1 for point in ordered if not point.completed and point.type is RoutePointType.PICKUP)
            deliveries = len(pending) - pickups
            duration = estimate.duration_min + round_minutes(
                self.time_estimator.service_minutes(pickups, deliveries) * self.time_estimator.traffic_buffer_multiplier
            )
            logger.info(
                f"Optimized route for vehicle {vehicle_id}: {len(pending)} pending stops, "
                f"{estimate.distance_km:.2f} km ({estimate.source})"
            )
            return RouteOptimizationResult(
                vehicle_id=vehicle_id,
                route_points=ordered,
                total_distance_km=round(estimate.distance_km, 2),
                estimated_duration_min=duration,
                distance_source=estimate.source,
            )

    def close(self) -> None:
        self.distance_estimator.close()
