"""SLA and route request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import (
    ComplianceReport,
    DeliveryTimeImpact,
    GeoCoordinate,
    ImpactLevel,
    ParcelStatus,
    RiskAssessment,
    RiskLevel,
    RouteOptimizationResult,
    RoutePoint,
    RoutePointType,
    ScanResult,
    ServiceLevel,
    SLABreach,
    SLARiskAlert,
)


class GeoCoordinateModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False)

    def to_domain(self) -> GeoCoordinate:
        return GeoCoordinate(self.latitude, self.longitude)

    @classmethod
    def from_domain(cls, coordinate: GeoCoordinate) -> "GeoCoordinateModel":
        return cls(latitude=coordinate.latitude, longitude=coordinate.longitude)


class SLAValidationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parcel_id: str = Field(..., alias="parcelId")
    current_location: GeoCoordinateModel = Field(..., alias="currentLocation")
    estimated_route_distance: float = Field(..., alias="estimatedRouteDistance", ge=0, allow_inf_nan=False)
    safety_margin_minutes: Optional[float] = Field(None, alias="safetyMarginMinutes", ge=0, allow_inf_nan=False)


class RiskAssessmentModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    risk_level: RiskLevel = Field(..., alias="riskLevel")
    time_to_deadline: int = Field(..., alias="timeToDeadline")
    estimated_delivery_time: int = Field(..., alias="estimatedDeliveryTime")
    safety_margin: int = Field(..., alias="safetyMargin")
    risk_factors: List[str] = Field(default_factory=list, alias="riskFactors")

    @classmethod
    def from_domain(cls, assessment: RiskAssessment) -> "RiskAssessmentModel":
        return cls(
            is_valid=assessment.is_valid,
            risk_level=assessment.risk_level,
            time_to_deadline=assessment.time_to_deadline,
            estimated_delivery_time=assessment.estimated_delivery_time,
            safety_margin=assessment.safety_margin,
            risk_factors=list(assessment.risk_factors),
        )


class DeliveryImpactRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_route: List[GeoCoordinateModel] = Field(default_factory=list, alias="originalRoute")
    new_pickup_location: GeoCoordinateModel = Field(..., alias="newPickupLocation")
    new_delivery_location: GeoCoordinateModel = Field(..., alias="newDeliveryLocation")
    original_eta: datetime = Field(..., alias="originalETA")


class DeliveryTimeImpactModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_eta: datetime = Field(..., alias="originalETA")
    new_eta: datetime = Field(..., alias="newETA")
    additional_time: int = Field(..., alias="additionalTime")
    route_deviation: float = Field(..., alias="routeDeviation")
    impact_level: ImpactLevel = Field(..., alias="impactLevel")

    @classmethod
    def from_domain(cls, impact: DeliveryTimeImpact) -> "DeliveryTimeImpactModel":
        return cls(
            original_eta=impact.original_eta,
            new_eta=impact.new_eta,
            additional_time=impact.additional_time,
            route_deviation=impact.route_deviation,
            impact_level=impact.impact_level,
        )


class SLARiskAlertModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parcel_id: str = Field(..., alias="parcelId")
    tracking_number: str = Field(..., alias="trackingNumber")
    risk_level: RiskLevel = Field(..., alias="riskLevel")
    time_to_deadline: int = Field(..., alias="timeToDeadline")
    estimated_delivery_time: int = Field(..., alias="estimatedDeliveryTime")
    risk_factors: List[str] = Field(default_factory=list, alias="riskFactors")
    recommended_actions: List[str] = Field(default_factory=list, alias="recommendedActions")

    @classmethod
    def from_domain(cls, alert: SLARiskAlert) -> "SLARiskAlertModel":
        return cls(
            parcel_id=alert.parcel_id,
            tracking_number=alert.tracking_number,
            risk_level=alert.risk_level,
            time_to_deadline=alert.time_to_deadline,
            estimated_delivery_time=alert.estimated_delivery_time,
            risk_factors=list(alert.risk_factors),
            recommended_actions=list(alert.recommended_actions),
        )


class SLABreachModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parcel_id: str = Field(..., alias="parcelId")
    tracking_number: str = Field(..., alias="trackingNumber")
    minutes_overdue: int = Field(..., alias="minutesOverdue")

    @classmethod
    def from_domain(cls, breach: SLABreach) -> "SLABreachModel":
        return cls(
            parcel_id=breach.parcel_id,
            tracking_number=breach.tracking_number,
            minutes_overdue=breach.minutes_overdue,
        )


class ActiveAlertsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scanned_at: Optional[datetime] = Field(None, alias="scannedAt")
    alerts: List[SLARiskAlertModel] = Field(default_factory=list)
    breaches: List[SLABreachModel] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: ScanResult | None) -> "ActiveAlertsModel":
        if result is None:
            return cls()
        return cls(
            scanned_at=result.scanned_at,
            alerts=[SLARiskAlertModel.from_domain(alert) for alert in result.alerts],
            breaches=[SLABreachModel.from_domain(breach) for breach in result.breaches],
        )


class ComplianceReportModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    total_parcels: int = Field(..., alias="totalParcels")
    on_time_deliveries: int = Field(..., alias="onTimeDeliveries")
    late_deliveries: int = Field(..., alias="lateDeliveries")
    compliance_rate: float = Field(..., alias="complianceRate")
    average_delivery_time: float = Field(..., alias="averageDeliveryTime")
    risk_breakdown: Dict[str, int] = Field(default_factory=dict, alias="riskBreakdown")

    @classmethod
    def from_domain(cls, report: ComplianceReport) -> "ComplianceReportModel":
        return cls(
            start_date=report.start_date,
            end_date=report.end_date,
            total_parcels=report.total_parcels,
            on_time_deliveries=report.on_time_deliveries,
            late_deliveries=report.late_deliveries,
            compliance_rate=report.compliance_rate,
            average_delivery_time=report.average_delivery_time,
            risk_breakdown=dict(report.risk_breakdown),
        )


class DeadlineRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pickup_time: datetime = Field(..., alias="pickupTime")
    service_level: ServiceLevel = Field(ServiceLevel.STANDARD, alias="serviceLevel")


class DeadlineResponse(BaseModel):
    deadline: datetime


class TransitionCheckRequest(BaseModel):
    status: ParcelStatus


class TransitionCheckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parcel_id: str = Field(..., alias="parcelId")
    current_status: ParcelStatus = Field(..., alias="currentStatus")
    requested_status: ParcelStatus = Field(..., alias="requestedStatus")
    allowed: bool


class RoutePointModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    parcel_id: str = Field(..., alias="parcelId")
    location: GeoCoordinateModel
    type: RoutePointType
    sequence: int = Field(0, ge=0)
    completed: bool = False
    estimated_time: Optional[datetime] = Field(None, alias="estimatedTime")

    def to_domain(self) -> RoutePoint:
        return RoutePoint(
            id=self.id,
            parcel_id=self.parcel_id,
            location=self.location.to_domain(),
            type=self.type,
            sequence=self.sequence,
            completed=self.completed,
            estimated_time=self.estimated_time,
        )

    @classmethod
    def from_domain(cls, point: RoutePoint) -> "RoutePointModel":
        return cls(
            id=point.id,
            parcel_id=point.parcel_id,
            location=GeoCoordinateModel.from_domain(point.location),
            type=point.type,
            sequence=point.sequence,
            completed=point.completed,
            estimated_time=point.estimated_time,
        )


class RouteOptimizationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vehicle_id: str = Field(..., alias="vehicleId")
    current_location: GeoCoordinateModel = Field(..., alias="currentLocation")
    route_points: List[RoutePointModel] = Field(default_factory=list, alias="routePoints")


class RouteOptimizationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vehicle_id: str = Field(..., alias="vehicleId")
    route_points: List[RoutePointModel] = Field(default_factory=list, alias="routePoints")
    total_distance: float = Field(..., alias="totalDistance")
    estimated_duration: int = Field(..., alias="estimatedDuration")
    distance_source: str = Field(..., alias="distanceSource")

    @classmethod
    def from_domain(cls, result: RouteOptimizationResult) -> "RouteOptimizationResponse":
        return cls(
            vehicle_id=result.vehicle_id,
            route_points=[RoutePointModel.from_domain(point) for point in result.route_points],
            total_distance=result.total_distance_km,
            estimated_duration=result.estimated_duration_min,
            distance_source=result.distance_source,
        )


class RouteInsertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parcel_id: str = Field(..., alias="parcelId")
    route_points: List[RoutePointModel] = Field(default_factory=list, alias="routePoints")


class RouteInsertResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parcel_id: str = Field(..., alias="parcelId")
    route_points: List[RoutePointModel] = Field(default_factory=list, alias="routePoints")
