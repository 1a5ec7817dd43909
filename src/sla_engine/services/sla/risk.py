"""Per-parcel SLA risk evaluation."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from ...config import Settings, settings
from ...errors import ValidationError
from ...models.domain import GeoCoordinate, Parcel, Priority, RiskAssessment, RiskLevel
from ...timeutils import as_aware, local_wall_clock
from ..timing import DeliveryTimeEstimator

EXCEEDS_DEADLINE = "Estimated delivery time exceeds SLA deadline"
VERY_TIGHT_WINDOW = "Very tight delivery window"
LIMITED_MARGIN = "Limited safety margin"
HIGH_PRIORITY = "High priority parcel requires extra attention"
LONG_ROUTE = "Long delivery route increases risk"
OFF_PEAK = "Delivery during off-peak hours may have delays"

HIGH_PRIORITIES = frozenset({Priority.HIGH, Priority.URGENT})


def current_time_for(reference: datetime) -> datetime:
    """Local wall-clock now, aware only if ``reference`` is."""
    if reference.tzinfo is not None:
        return datetime.now().astimezone()
    return datetime.now()


def minutes_until(deadline: datetime, now: datetime) -> int:
    """Whole minutes from ``now`` to ``deadline``, floored; negative once overdue."""
    return math.floor((as_aware(deadline) - as_aware(now)).total_seconds() / 60)


def classify_safety_margin(margin: float, safety_margin_minutes: float) -> tuple[RiskLevel, Optional[str]]:
    """Map slack minutes to a risk level. First matching band wins."""
    if margin < 0:
        return RiskLevel.CRITICAL, EXCEEDS_DEADLINE
    if margin < safety_margin_minutes * 0.5:
        return RiskLevel.HIGH, VERY_TIGHT_WINDOW
    if margin < safety_margin_minutes:
        return RiskLevel.MEDIUM, LIMITED_MARGIN
    return RiskLevel.LOW, None


def is_off_peak(now: datetime, config: Settings = settings) -> bool:
    """Off-peak by the local hour of ``now``."""
    hour = local_wall_clock(now).hour
    return hour >= config.off_peak_start_hour or hour <= config.off_peak_end_hour


def contextual_risk_factors(
    priority: Priority,
    now: datetime,
    *,
    route_distance_km: float | None = None,
    config: Settings = settings,
) -> list[str]:
    """Risk factors that apply regardless of the margin-based level."""
    factors: list[str] = []
    if priority in HIGH_PRIORITIES:
        factors.append(HIGH_PRIORITY)
    if route_distance_km is not None and route_distance_km > config.long_route_threshold_km:
        factors.append(LONG_ROUTE)
    if is_off_peak(now, config):
        factors.append(OFF_PEAK)
    return factors


def validate_sla(
    parcel: Parcel,
    current_location: GeoCoordinate,
    estimated_route_distance_km: float,
    safety_margin_minutes: float | None = None,
    *,
    now: datetime | None = None,
    estimator: DeliveryTimeEstimator | None = None,
    config: Settings = settings,
) -> RiskAssessment:
    """Classify the risk of ``parcel`` missing its deadline on the given route.

    The estimate budgets one pickup and one delivery stop on top of the
    travel time for ``estimated_route_distance_km``.
    """

    if not isinstance(current_location, GeoCoordinate):
        raise ValidationError("current_location must be a GeoCoordinate")
    if not math.isfinite(estimated_route_distance_km) or estimated_route_distance_km < 0:
        raise ValidationError(f"estimated route distance must be a non-negative number, got {estimated_route_distance_km!r}")
    margin_threshold = config.default_safety_margin_minutes if safety_margin_minutes is None else safety_margin_minutes
    if not math.isfinite(margin_threshold) or margin_threshold < 0:
        raise ValidationError(f"safety margin must be a non-negative number, got {margin_threshold!r}")

    now = now or current_time_for(parcel.sla_deadline)
    estimator = estimator or DeliveryTimeEstimator.from_settings(config)

    time_to_deadline = minutes_until(parcel.sla_deadline, now)
    estimated_delivery_time = estimator.estimate_minutes(estimated_route_distance_km, pickups=1, deliveries=1)
    safety_margin = time_to_deadline - estimated_delivery_time

    risk_level, level_factor = classify_safety_margin(safety_margin, margin_threshold)
    risk_factors = [level_factor] if level_factor else []
    risk_factors.extend(
        contextual_risk_factors(parcel.priority, now, route_distance_km=estimated_route_distance_km, config=config)
    )

    return RiskAssessment(
        is_valid=risk_level is not RiskLevel.CRITICAL,
        risk_level=risk_level,
        time_to_deadline=time_to_deadline,
        estimated_delivery_time=estimated_delivery_time,
        safety_margin=safety_margin,
        risk_factors=risk_factors,
    )
