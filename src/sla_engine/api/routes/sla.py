"""SLA endpoints."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from ...errors import InvalidCoordinateError, ParcelNotFoundError
from ...models.domain import GeoCoordinate
from ...schemas.sla import (
    ActiveAlertsModel,
    ComplianceReportModel,
    DeadlineRequest,
    DeadlineResponse,
    DeliveryImpactRequest,
    DeliveryTimeImpactModel,
    RiskAssessmentModel,
    SLARiskAlertModel,
    SLAValidationRequest,
    TransitionCheckRequest,
    TransitionCheckResponse,
)
from ...services.sla.service import SLAService
from ..dependencies import get_sla_service

router = APIRouter(prefix="/sla", tags=["sla"])


def _raise_http(exc: Exception, action: str) -> NoReturn:
    if isinstance(exc, ParcelNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logging.exception(f"Error while trying to {action}: {exc}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {str(exc)}",
    ) from exc


def _parse_location(value: str | None) -> GeoCoordinate | None:
    if not value:
        return None
    parts = value.split(",")
    if len(parts) != 2:
        raise InvalidCoordinateError(f"currentLocation must be 'lat,lng', got {value!r}")
    try:
        latitude, longitude = (float(part) for part in parts)
    except ValueError as exc:
        raise InvalidCoordinateError(f"currentLocation must be 'lat,lng', got {value!r}") from exc
    return GeoCoordinate(latitude, longitude)


@router.post("/validate", response_model=RiskAssessmentModel, status_code=status.HTTP_200_OK)
def validate(payload: SLAValidationRequest, service: SLAService = Depends(get_sla_service)) -> RiskAssessmentModel:
    try:
        assessment = service.validate_sla(
            payload.parcel_id,
            payload.current_location.to_domain(),
            payload.estimated_route_distance,
            payload.safety_margin_minutes,
        )
    except Exception as exc:
        _raise_http(exc, "validate SLA")
    return RiskAssessmentModel.from_domain(assessment)


@router.post("/delivery-impact", response_model=DeliveryTimeImpactModel, status_code=status.HTTP_200_OK)
def delivery_impact(
    payload: DeliveryImpactRequest, service: SLAService = Depends(get_sla_service)
) -> DeliveryTimeImpactModel:
    try:
        impact = service.calculate_delivery_time_impact(
            [point.to_domain() for point in payload.original_route],
            payload.new_pickup_location.to_domain(),
            payload.new_delivery_location.to_domain(),
            payload.original_eta,
        )
    except Exception as exc:
        _raise_http(exc, "calculate delivery time impact")
    return DeliveryTimeImpactModel.from_domain(impact)


@router.get("/at-risk", response_model=list[SLARiskAlertModel])
def at_risk(
    risk_threshold_minutes: int | None = Query(
        default=None, alias="riskThresholdMinutes", gt=0, description="Risk window in minutes (default: 120)"
    ),
    service: SLAService = Depends(get_sla_service),
) -> list[SLARiskAlertModel]:
    try:
        alerts = service.get_at_risk_parcels(risk_threshold_minutes)
    except Exception as exc:
        _raise_http(exc, "scan at-risk parcels")
    return [SLARiskAlertModel.from_domain(alert) for alert in alerts]


@router.get("/alerts", response_model=ActiveAlertsModel)
def active_alerts(service: SLAService = Depends(get_sla_service)) -> ActiveAlertsModel:
    """Alerts and breaches from the most recent scheduled scan."""
    return ActiveAlertsModel.from_domain(service.alert_registry.latest)


@router.get("/compliance-report", response_model=ComplianceReportModel)
def compliance_report(
    start_date: datetime = Query(..., alias="startDate", description="Start date (ISO format)"),
    end_date: datetime = Query(..., alias="endDate", description="End date (ISO format)"),
    service: SLAService = Depends(get_sla_service),
) -> ComplianceReportModel:
    try:
        report = service.generate_sla_compliance_report(start_date, end_date)
    except Exception as exc:
        _raise_http(exc, "generate compliance report")
    return ComplianceReportModel.from_domain(report)


@router.post("/calculate-deadline", response_model=DeadlineResponse)
def calculate_deadline(payload: DeadlineRequest, service: SLAService = Depends(get_sla_service)) -> DeadlineResponse:
    try:
        deadline = service.calculate_sla_deadline(payload.pickup_time, payload.service_level)
    except Exception as exc:
        _raise_http(exc, "calculate SLA deadline")
    return DeadlineResponse(deadline=deadline)


@router.get("/parcel/{parcel_id}/risk-assessment", response_model=RiskAssessmentModel)
def parcel_risk_assessment(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_location: str | None = Query(default=None, alias="currentLocation", description="Vehicle location 'lat,lng'"),
    estimated_distance: float | None = Query(default=None, alias="estimatedDistance", ge=0),
    service: SLAService = Depends(get_sla_service),
) -> RiskAssessmentModel:
    try:
        assessment = service.assess_parcel_risk(parcel_id, _parse_location(current_location), estimated_distance)
    except Exception as exc:
        _raise_http(exc, "assess parcel risk")
    return RiskAssessmentModel.from_domain(assessment)


@router.post("/parcel/{parcel_id}/transition-check", response_model=TransitionCheckResponse)
def transition_check(
    payload: TransitionCheckRequest,
    parcel_id: str = Path(..., description="Parcel ID"),
    service: SLAService = Depends(get_sla_service),
) -> TransitionCheckResponse:
    try:
        current = service.check_status_transition(parcel_id, payload.status)
    except Exception as exc:
        _raise_http(exc, "check status transition")
    return TransitionCheckResponse(
        parcel_id=parcel_id,
        current_status=current,
        requested_status=payload.status,
        allowed=True,
    )
