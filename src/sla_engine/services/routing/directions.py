"""Directions providers and the Haversine fallback distance estimator."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Sequence

import httpx

from ...config import settings
from ...errors import DirectionsUnavailableError
from ...models.domain import DistanceEstimate, GeoCoordinate
from ..geospatial import route_distance_km
from ..timing import DeliveryTimeEstimator, round_minutes

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DirectionsLeg:
    distance_km: float
    duration_min: float


@dataclass(slots=True)
class DirectionsResult:
    legs: list[DirectionsLeg]
    overview_polyline: str | None = None

    @property
    def distance_km(self) -> float:
        return sum(leg.distance_km for leg in self.legs)

    @property
    def duration_min(self) -> float:
        return sum(leg.duration_min for leg in self.legs)


class DirectionsProvider(ABC):
    """Contract for external road-network routing services."""

    @abstractmethod
    def route(
        self,
        origin: GeoCoordinate,
        destination: GeoCoordinate,
        waypoints: Sequence[GeoCoordinate] | None = None,
    ) -> DirectionsResult:
        raise NotImplementedError


class OSRMDirectionsProvider(DirectionsProvider):
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self.base_url = base_url or settings.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.base_url = self.base_url.rstrip("/")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.directions_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 3.0)))

    def route(
        self,
        origin: GeoCoordinate,
        destination: GeoCoordinate,
        waypoints: Sequence[GeoCoordinate] | None = None,
    ) -> DirectionsResult:
        coordinates = [origin, *(waypoints or ()), destination]
        # OSRM route endpoint expects coordinates as "lon,lat;lon,lat;..."
        coordinate_str = ";".join(f"{point.longitude},{point.latitude}" for point in coordinates)
        params = {
            "overview": "simplified",
            "geometries": "polyline",
            "steps": "false",
        }
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    return _parse_route_response(response.json())
                except (httpx.TimeoutException, httpx.NetworkError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DirectionsUnavailableError(f"OSRM unreachable at {self.base_url}: {exc}") from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM route error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                    time.sleep(wait_time)
                except httpx.HTTPError as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DirectionsUnavailableError(f"OSRM route request failed: {exc}") from exc
                    time.sleep(self.backoff_seconds * attempt)
        finally:
            client.close()


def _parse_route_response(data: dict) -> DirectionsResult:
    if data.get("code") != "Ok" or not data.get("routes"):
        raise DirectionsUnavailableError(f"OSRM route request failed: {data.get('message', 'no route')}")
    route = data["routes"][0]
    legs = [
        DirectionsLeg(distance_km=float(leg["distance"]) / 1000.0, duration_min=float(leg["duration"]) / 60.0)
        for leg in route.get("legs", [])
    ]
    if not legs:
        legs = [DirectionsLeg(distance_km=float(route["distance"]) / 1000.0, duration_min=float(route["duration"]) / 60.0)]
    return DirectionsResult(legs=legs, overview_polyline=route.get("geometry"))


@dataclass
class RouteDistanceEstimator:
    """Road distance for an ordered list of points, never blocking on the provider.

    The provider gets ``timeout_seconds`` of wall-clock time. On timeout or any
    provider error the estimate falls back to summed Haversine legs.
    """

    provider: DirectionsProvider | None = None
    time_estimator: DeliveryTimeEstimator = field(default_factory=DeliveryTimeEstimator)
    timeout_seconds: float = settings.directions_timeout_seconds
    _executor: ThreadPoolExecutor | None = field(default=None, init=False, repr=False)
    _executor_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def estimate(self, points: Sequence[GeoCoordinate]) -> DistanceEstimate:
        if len(points) < 2:
            return DistanceEstimate(distance_km=0.0, duration_min=0, source="haversine")
        if self.provider is not None:
            try:
                result = self._route_with_timeout(points)
                return DistanceEstimate(
                    distance_km=result.distance_km,
                    duration_min=round_minutes(result.duration_min * self.time_estimator.traffic_buffer_multiplier),
                    source="directions",
                )
            except FutureTimeoutError:
                logger.warning(
                    f"Directions provider timed out after {self.timeout_seconds:.1f}s; using haversine estimate (degraded)"
                )
            except Exception as exc:
                logger.warning(f"Directions provider failed: {exc}. Using haversine estimate (degraded)")
            return self._haversine(points, degraded=True)
        return self._haversine(points, degraded=False)

    def _route_with_timeout(self, points: Sequence[GeoCoordinate]) -> DirectionsResult:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="directions")
            executor = self._executor
        future = executor.submit(self.provider.route, points[0], points[-1], list(points[1:-1]))
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            raise

    def _haversine(self, points: Sequence[GeoCoordinate], *, degraded: bool) -> DistanceEstimate:
        distance = route_distance_km(points)
        duration = round_minutes(self.time_estimator.travel_minutes(distance) * self.time_estimator.traffic_buffer_multiplier)
        return DistanceEstimate(distance_km=distance, duration_min=duration, source="haversine", degraded=degraded)

    def close(self) -> None:
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)


def build_directions_provider() -> DirectionsProvider | None:
    """OSRM provider when a base URL is configured, otherwise None."""
    if not settings.osrm_base_url:
        logger.info("OSRM base URL not configured - distances use the haversine estimator")
        return None
    return OSRMDirectionsProvider()


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health with a minimal two-point route request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        test_coords = "13.388860,52.517037;13.385983,52.496891"
        url = f"{base.rstrip('/')}/route/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"overview": "false"}, timeout=settings.directions_timeout_seconds)
        response.raise_for_status()
        return response.json().get("code") == "Ok"
    except (httpx.HTTPError, ValueError):
        return False
