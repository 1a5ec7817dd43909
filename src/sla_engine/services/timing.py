"""Distance to delivery-time conversion."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..config import Settings, settings


def round_minutes(value: float) -> int:
    """Round half away from zero so x.5 minutes always rounds up for positive values."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(slots=True)
class DeliveryTimeEstimator:
    average_speed_kmh: float = settings.average_speed_kmh
    pickup_time_minutes: float = settings.pickup_time_minutes
    delivery_time_minutes: float = settings.delivery_time_minutes
    traffic_buffer_multiplier: float = settings.traffic_buffer_multiplier

    @classmethod
    def from_settings(cls, config: Settings) -> "DeliveryTimeEstimator":
        return cls(
            average_speed_kmh=config.average_speed_kmh,
            pickup_time_minutes=config.pickup_time_minutes,
            delivery_time_minutes=config.delivery_time_minutes,
            traffic_buffer_multiplier=config.traffic_buffer_multiplier,
        )

    def travel_minutes(self, distance_km: float) -> float:
        return distance_km / self.average_speed_kmh * 60.0

    def service_minutes(self, pickups: int = 1, deliveries: int = 1) -> float:
        return pickups * self.pickup_time_minutes + deliveries * self.delivery_time_minutes

    def buffered_minutes(self, distance_km: float, *, pickups: int = 1, deliveries: int = 1) -> float:
        """Unrounded estimate: (travel + dwell) scaled by the traffic buffer."""
        if not math.isfinite(distance_km):
            raise ValueError(f"distance must be finite, got {distance_km!r}")
        if pickups < 0 or deliveries < 0:
            raise ValueError("stop counts must be >= 0")
        travel = self.travel_minutes(distance_km)
        return (travel + self.service_minutes(pickups, deliveries)) * self.traffic_buffer_multiplier

    def estimate_minutes(self, distance_km: float, *, pickups: int = 1, deliveries: int = 1) -> int:
        if distance_km < 0:
            raise ValueError("distance must be >= 0")
        return round_minutes(self.buffered_minutes(distance_km, pickups=pickups, deliveries=deliveries))
