"""Nearest-neighbour ordering of a vehicle's pending stops."""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import GeoCoordinate, RoutePoint
from ..geospatial import distance_km
from .insertion import resequence

logger = logging.getLogger(__name__)


def nearest_neighbor_order(start: GeoCoordinate, points: Sequence[RoutePoint]) -> list[RoutePoint]:
    """Greedy tour: always drive to the closest unvisited pending stop.

    Completed stops keep their relative order at the head of the result.
    With zero or one pending stop the input is returned unchanged.
    """

    completed = [point for point in points if point.completed]
    remaining = [point for point in points if not point.completed]
    if len(remaining) <= 1:
        return list(points)

    ordered: list[RoutePoint] = []
    current = start
    while remaining:
        nearest_index = 0
        nearest_distance = distance_km(current, remaining[0].location)
        for index in range(1, len(remaining)):
            candidate = distance_km(current, remaining[index].location)
            if candidate < nearest_distance:
                nearest_distance = candidate
                nearest_index = index
        nearest = remaining.pop(nearest_index)
        ordered.append(nearest)
        current = nearest.location

    logger.debug("Reordered %d pending stops after %d completed", len(ordered), len(completed))
    return resequence([*completed, *ordered])
