"""Vehicle route endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import ParcelNotFoundError
from ...schemas.sla import (
    RouteInsertRequest,
    RouteInsertResponse,
    RouteOptimizationRequest,
    RouteOptimizationResponse,
    RoutePointModel,
)
from ...services.sla.service import SLAService
from ..dependencies import get_sla_service

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=RouteOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(
    payload: RouteOptimizationRequest, service: SLAService = Depends(get_sla_service)
) -> RouteOptimizationResponse:
    """Reorder a vehicle's pending stops nearest-neighbour first."""
    try:
        result = service.optimize_vehicle_route(
            payload.vehicle_id,
            payload.current_location.to_domain(),
            [point.to_domain() for point in payload.route_points],
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing route for vehicle {payload.vehicle_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}",
        ) from exc
    return RouteOptimizationResponse.from_domain(result)


@router.post("/insert", response_model=RouteInsertResponse, status_code=status.HTTP_200_OK)
def insert(payload: RouteInsertRequest, service: SLAService = Depends(get_sla_service)) -> RouteInsertResponse:
    """Insert a parcel's pickup and delivery stops at their cheapest positions."""
    try:
        points = service.insert_parcel_into_route(
            [point.to_domain() for point in payload.route_points],
            payload.parcel_id,
        )
    except ParcelNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error inserting parcel {payload.parcel_id} into route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to insert parcel into route: {str(exc)}",
        ) from exc
    return RouteInsertResponse(
        parcel_id=payload.parcel_id,
        route_points=[RoutePointModel.from_domain(point) for point in points],
    )
