"""Marginal cost of adding one parcel to an existing vehicle route."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

from ...config import Settings, settings
from ...models.domain import DeliveryTimeImpact, GeoCoordinate, ImpactLevel
from ..geospatial import distance_km, route_distance_km
from ..routing.insertion import insert_pickup_and_delivery
from ..timing import DeliveryTimeEstimator, round_minutes


def classify_impact(additional_minutes: float) -> ImpactLevel:
    if additional_minutes <= 15:
        return ImpactLevel.MINIMAL
    if additional_minutes <= 30:
        return ImpactLevel.MODERATE
    if additional_minutes <= 60:
        return ImpactLevel.SIGNIFICANT
    return ImpactLevel.SEVERE


def _shares_existing_stop(route: Sequence[GeoCoordinate], point: GeoCoordinate, radius_km: float) -> bool:
    return any(distance_km(stop, point) < radius_km for stop in route)


def calculate_delivery_time_impact(
    existing_route: Sequence[GeoCoordinate],
    new_pickup: GeoCoordinate,
    new_delivery: GeoCoordinate,
    original_eta: datetime,
    *,
    estimator: DeliveryTimeEstimator | None = None,
    config: Settings = settings,
) -> DeliveryTimeImpact:
    """Extra time and distance from inserting a pickup/delivery pair.

    A new stop within ``consolidation_radius_km`` of a stop already on the
    route is served during that visit, so it adds travel but no dwell time.
    """

    estimator = estimator or DeliveryTimeEstimator.from_settings(config)

    original_distance = route_distance_km(existing_route)
    optimized_route, _, _ = insert_pickup_and_delivery(existing_route, new_pickup, new_delivery)
    new_distance = route_distance_km(optimized_route)
    route_deviation = new_distance - original_distance

    pickups = 0 if _shares_existing_stop(existing_route, new_pickup, config.consolidation_radius_km) else 1
    deliveries = 0 if _shares_existing_stop(existing_route, new_delivery, config.consolidation_radius_km) else 1

    additional_travel_time = estimator.travel_minutes(route_deviation)
    additional_service_time = estimator.service_minutes(pickups, deliveries)
    total_additional_time = (additional_travel_time + additional_service_time) * estimator.traffic_buffer_multiplier

    return DeliveryTimeImpact(
        original_eta=original_eta,
        new_eta=original_eta + timedelta(minutes=total_additional_time),
        additional_time=round_minutes(total_additional_time),
        route_deviation=round(route_deviation, 2),
        impact_level=classify_impact(total_additional_time),
    )
