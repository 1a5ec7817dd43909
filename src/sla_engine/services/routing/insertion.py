"""Cheapest-insertion of new stops into an existing ordered route.

Each new point is placed at the index that adds the least extra distance
(the detour). This is a greedy heuristic: it never does worse than appending
the point at the end of the route, but it makes no claim of optimality.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Sequence

from ...models.domain import GeoCoordinate, Parcel, RoutePoint, RoutePointType
from ..geospatial import distance_km


def insertion_detour_km(route: Sequence[GeoCoordinate], point: GeoCoordinate, index: int) -> float:
    """Extra distance incurred by inserting ``point`` before ``route[index]``."""

    if not 0 <= index <= len(route):
        raise IndexError(f"insertion index {index} outside 0..{len(route)}")
    if not route:
        return 0.0
    if index == 0:
        return distance_km(point, route[0])
    if index == len(route):
        return distance_km(route[-1], point)

    prev_point, next_point = route[index - 1], route[index]
    return distance_km(prev_point, point) + distance_km(point, next_point) - distance_km(prev_point, next_point)


def best_insertion_index(route: Sequence[GeoCoordinate], point: GeoCoordinate, start: int = 0) -> int:
    """Index in ``start..len(route)`` with minimum detour; ties go to the lowest index."""

    if not 0 <= start <= len(route):
        raise IndexError(f"start index {start} outside 0..{len(route)}")
    best_index = start
    best_detour = float("inf")
    for index in range(start, len(route) + 1):
        detour = insertion_detour_km(route, point, index)
        if detour < best_detour:
            best_detour = detour
            best_index = index
    return best_index


def insert_point(route: Sequence[GeoCoordinate], point: GeoCoordinate) -> list[GeoCoordinate]:
    result = list(route)
    result.insert(best_insertion_index(result, point), point)
    return result


def insert_pickup_and_delivery(
    route: Sequence[GeoCoordinate],
    pickup: GeoCoordinate,
    delivery: GeoCoordinate,
) -> tuple[list[GeoCoordinate], int, int]:
    """Insert a pickup/delivery pair keeping the pickup ahead of the delivery.

    Returns the new route with the indices the two points landed on.
    """

    result = list(route)
    pickup_index = best_insertion_index(result, pickup)
    result.insert(pickup_index, pickup)
    delivery_index = best_insertion_index(result, delivery, start=pickup_index + 1)
    result.insert(delivery_index, delivery)
    return result, pickup_index, delivery_index


def resequence(points: Sequence[RoutePoint]) -> list[RoutePoint]:
    """Copies of ``points`` with contiguous sequence numbers starting at zero."""

    return [replace(point, sequence=sequence) for sequence, point in enumerate(points)]


def insert_parcel_stops(route_points: Sequence[RoutePoint], parcel: Parcel) -> list[RoutePoint]:
    """Insert a parcel's pickup and delivery stops into a vehicle's ordered route.

    Completed stops are history, so new stops may only go after the last
    completed one.
    """

    ordered = sorted(route_points, key=lambda point: point.sequence)
    locked = 0
    for index, point in enumerate(ordered):
        if point.completed:
            locked = index + 1

    coordinates = [point.location for point in ordered]
    pickup_index = best_insertion_index(coordinates, parcel.pickup_location, start=locked)
    coordinates.insert(pickup_index, parcel.pickup_location)
    delivery_index = best_insertion_index(coordinates, parcel.delivery_location, start=pickup_index + 1)

    pickup = RoutePoint(
        id=str(uuid.uuid4()),
        parcel_id=parcel.id,
        location=parcel.pickup_location,
        type=RoutePointType.PICKUP,
    )
    delivery = RoutePoint(
        id=str(uuid.uuid4()),
        parcel_id=parcel.id,
        location=parcel.delivery_location,
        type=RoutePointType.DELIVERY,
    )
    result = list(ordered)
    result.insert(pickup_index, pickup)
    result.insert(delivery_index, delivery)
    return resequence(result)
