"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from ..errors import InvalidCoordinateError
from ..models.domain import GeoCoordinate

EARTH_RADIUS_KM = 6371.0


def _check_degrees(value: float, limit: float, name: str) -> None:
    if not math.isfinite(value) or abs(value) > limit:
        raise InvalidCoordinateError(f"{name} {value!r} is not a valid coordinate component")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    _check_degrees(lat1, 90.0, "lat1")
    _check_degrees(lat2, 90.0, "lat2")
    _check_degrees(lon1, 180.0, "lon1")
    _check_degrees(lon2, 180.0, "lon2")

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # rounding can push a marginally past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(origin: GeoCoordinate, destination: GeoCoordinate) -> float:
    return haversine_km(origin.latitude, origin.longitude, destination.latitude, destination.longitude)


def route_distance_km(points: Sequence[GeoCoordinate]) -> float:
    """Sum of consecutive leg distances along an ordered list of points."""

    return sum(distance_km(points[i], points[i + 1]) for i in range(len(points) - 1))
