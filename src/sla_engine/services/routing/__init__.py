"""Route geometry: insertion, nearest-neighbour ordering and directions."""

from .directions import (
    DirectionsLeg,
    DirectionsProvider,
    DirectionsResult,
    OSRMDirectionsProvider,
    RouteDistanceEstimator,
    build_directions_provider,
)
from .insertion import (
    best_insertion_index,
    insert_parcel_stops,
    insert_pickup_and_delivery,
    insert_point,
    insertion_detour_km,
)
from .sequencing import nearest_neighbor_order

__all__ = [
    "DirectionsLeg",
    "DirectionsProvider",
    "DirectionsResult",
    "OSRMDirectionsProvider",
    "RouteDistanceEstimator",
    "build_directions_provider",
    "best_insertion_index",
    "insert_parcel_stops",
    "insert_pickup_and_delivery",
    "insert_point",
    "insertion_detour_km",
    "nearest_neighbor_order",
]
