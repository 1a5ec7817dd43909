import logging
import threading
import time

import httpx
import pytest

from sla_engine.config import settings
from sla_engine.errors import DirectionsUnavailableError
from sla_engine.models.domain import GeoCoordinate
from sla_engine.services.geospatial import route_distance_km
from sla_engine.services.routing.directions import (
    DirectionsLeg,
    DirectionsProvider,
    DirectionsResult,
    OSRMDirectionsProvider,
    RouteDistanceEstimator,
    build_directions_provider,
    check_health,
)

MUMBAI = GeoCoordinate(19.076, 72.8777)
THANE = GeoCoordinate(19.2183, 72.9781)
DELHI = GeoCoordinate(28.7041, 77.1025)


class FixedProvider(DirectionsProvider):
    def __init__(self) -> None:
        self.calls = []

    def route(self, origin, destination, waypoints=None):
        self.calls.append((origin, destination, list(waypoints or [])))
        return DirectionsResult(legs=[DirectionsLeg(5.0, 10.0), DirectionsLeg(7.0, 20.0)], overview_polyline="xyz")


class FailingProvider(DirectionsProvider):
    def route(self, origin, destination, waypoints=None):
        raise DirectionsUnavailableError("connection refused")


class SlowProvider(DirectionsProvider):
    def __init__(self) -> None:
        self.release = threading.Event()

    def route(self, origin, destination, waypoints=None):
        self.release.wait(5)
        return DirectionsResult(legs=[DirectionsLeg(1.0, 1.0)])


def test_estimator_without_provider_uses_haversine():
    estimator = RouteDistanceEstimator()
    estimate = estimator.estimate([MUMBAI, THANE, DELHI])
    assert estimate.source == "haversine"
    assert not estimate.degraded
    assert estimate.distance_km == pytest.approx(route_distance_km([MUMBAI, THANE, DELHI]))


def test_estimator_short_route_is_zero():
    estimate = RouteDistanceEstimator(provider=FailingProvider()).estimate([MUMBAI])
    assert estimate.distance_km == 0.0
    assert estimate.duration_min == 0


def test_estimator_uses_provider_and_buffers_duration():
    provider = FixedProvider()
    estimator = RouteDistanceEstimator(provider=provider, timeout_seconds=2)
    try:
        estimate = estimator.estimate([MUMBAI, THANE, DELHI])
    finally:
        estimator.close()

    assert estimate.source == "directions"
    assert estimate.distance_km == pytest.approx(12.0)
    assert estimate.duration_min == 39
    assert provider.calls == [(MUMBAI, DELHI, [THANE])]


def test_provider_failure_degrades_to_haversine(caplog: pytest.LogCaptureFixture):
    estimator = RouteDistanceEstimator(provider=FailingProvider(), timeout_seconds=2)
    with caplog.at_level(logging.WARNING):
        estimate = estimator.estimate([MUMBAI, THANE])
    estimator.close()

    assert estimate.source == "haversine"
    assert estimate.degraded
    assert estimate.distance_km == pytest.approx(route_distance_km([MUMBAI, THANE]))
    assert "degraded" in caplog.text


def test_slow_provider_does_not_block_estimate():
    provider = SlowProvider()
    estimator = RouteDistanceEstimator(provider=provider, timeout_seconds=0.05)
    started = time.monotonic()
    try:
        estimate = estimator.estimate([MUMBAI, THANE])
        elapsed = time.monotonic() - started
    finally:
        provider.release.set()
        estimator.close()

    assert estimate.degraded
    assert estimate.source == "haversine"
    assert elapsed < 2


def _osrm(handler, **kwargs) -> OSRMDirectionsProvider:
    provider = OSRMDirectionsProvider(base_url="http://osrm.test/", backoff_seconds=0, **kwargs)
    provider._get_client = lambda: httpx.Client(transport=httpx.MockTransport(handler))
    return provider


def test_osrm_route_parses_legs():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "code": "Ok",
                "routes": [
                    {
                        "distance": 12000,
                        "duration": 1200,
                        "geometry": "abc",
                        "legs": [{"distance": 5000, "duration": 600}, {"distance": 7000, "duration": 600}],
                    }
                ],
            },
        )

    result = _osrm(handler).route(MUMBAI, DELHI, [THANE])

    assert [leg.distance_km for leg in result.legs] == [5.0, 7.0]
    assert result.distance_km == pytest.approx(12.0)
    assert result.duration_min == pytest.approx(20.0)
    assert result.overview_polyline == "abc"
    # OSRM wants lon,lat pairs
    assert seen[0].url.path.startswith("/route/v1/driving/72.8777,19.076")
    assert seen[0].url.params["overview"] == "simplified"


def test_osrm_no_route_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "NoRoute", "message": "Impossible route"})

    with pytest.raises(DirectionsUnavailableError, match="Impossible route"):
        _osrm(handler).route(MUMBAI, DELHI)


def test_osrm_server_error_raises_after_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, json={})

    with pytest.raises(DirectionsUnavailableError):
        _osrm(handler, max_retries=0).route(MUMBAI, DELHI)
    assert len(calls) == 1


def test_osrm_network_error_is_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DirectionsUnavailableError):
        _osrm(handler, max_retries=1).route(MUMBAI, DELHI)
    assert len(calls) == 2


def test_unconfigured_osrm(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "osrm_base_url", None)
    with pytest.raises(ValueError):
        OSRMDirectionsProvider()
    assert build_directions_provider() is None
    assert check_health() is False


def test_concurrent_first_estimates_share_one_executor(monkeypatch: pytest.MonkeyPatch):
    from concurrent.futures import ThreadPoolExecutor

    from sla_engine.services.routing import directions as directions_module

    created = []

    class CountingExecutor(ThreadPoolExecutor):
        def __init__(self, *args, **kwargs):
            created.append(self)
            super().__init__(*args, **kwargs)

    monkeypatch.setattr(directions_module, "ThreadPoolExecutor", CountingExecutor)
    estimator = RouteDistanceEstimator(provider=FixedProvider(), timeout_seconds=2)
    barrier = threading.Barrier(8)
    results = []

    def run() -> None:
        barrier.wait(5)
        results.append(estimator.estimate([MUMBAI, THANE]))

    threads = [threading.Thread(target=run) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5)
    estimator.close()

    assert len(created) == 1
    assert len(results) == 8
    assert all(result.source == "directions" for result in results)
