"""Domain models for parcels, route points and derived SLA assessments."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..errors import InvalidCoordinateError


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ParcelStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class RoutePointType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class ServiceLevel(str, Enum):
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"
    SAME_DAY = "SAME_DAY"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ImpactLevel(str, Enum):
    MINIMAL = "MINIMAL"
    MODERATE = "MODERATE"
    SIGNIFICANT = "SIGNIFICANT"
    SEVERE = "SEVERE"


@dataclass(frozen=True, slots=True)
class GeoCoordinate:
    """A validated latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        for name, value, limit in (("latitude", self.latitude, 90.0), ("longitude", self.longitude, 180.0)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidCoordinateError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidCoordinateError(f"{name} must be finite, got {value!r}")
            if abs(value) > limit:
                raise InvalidCoordinateError(f"{name} {value} outside [-{limit:g}, {limit:g}]")

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(slots=True)
class Dimensions:
    length_cm: float
    width_cm: float
    height_cm: float


@dataclass(slots=True)
class Parcel:
    """A parcel as owned by the persistence layer. The engine only reads it."""

    id: str
    tracking_number: str
    pickup_location: GeoCoordinate
    delivery_location: GeoCoordinate
    weight_kg: float
    dimensions: Dimensions
    priority: Priority
    sla_deadline: datetime
    status: ParcelStatus
    created_at: datetime
    updated_at: datetime
    assigned_vehicle_id: Optional[str] = None
    assigned_at: Optional[datetime] = None


@dataclass(slots=True)
class RoutePoint:
    id: str
    parcel_id: str
    location: GeoCoordinate
    type: RoutePointType
    sequence: int = 0
    completed: bool = False
    estimated_time: Optional[datetime] = None


@dataclass(slots=True)
class RiskAssessment:
    is_valid: bool
    risk_level: RiskLevel
    time_to_deadline: int
    estimated_delivery_time: int
    safety_margin: int
    risk_factors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DeliveryTimeImpact:
    original_eta: datetime
    new_eta: datetime
    additional_time: int
    route_deviation: float
    impact_level: ImpactLevel


@dataclass(slots=True)
class SLARiskAlert:
    parcel_id: str
    tracking_number: str
    risk_level: RiskLevel
    time_to_deadline: int
    estimated_delivery_time: int
    risk_factors: list[str]
    recommended_actions: list[str]


@dataclass(slots=True)
class SLABreach:
    """A parcel found at or past its deadline during a scan."""

    parcel_id: str
    tracking_number: str
    minutes_overdue: int


@dataclass(slots=True)
class ScanFailure:
    parcel_id: str
    error: str


@dataclass(slots=True)
class ScanResult:
    scanned_at: datetime
    alerts: list[SLARiskAlert] = field(default_factory=list)
    breaches: list[SLABreach] = field(default_factory=list)
    failures: list[ScanFailure] = field(default_factory=list)


@dataclass(slots=True)
class ComplianceReport:
    start_date: datetime
    end_date: datetime
    total_parcels: int
    on_time_deliveries: int
    late_deliveries: int
    compliance_rate: float
    average_delivery_time: float
    risk_breakdown: dict[str, int]


@dataclass(slots=True)
class DistanceEstimate:
    distance_km: float
    duration_min: int
    source: str
    degraded: bool = False


@dataclass(slots=True)
class RouteOptimizationResult:
    vehicle_id: str
    route_points: list[RoutePoint]
    total_distance_km: float
    estimated_duration_min: int
    distance_source: str
