import threading
from datetime import datetime, timezone

import pytest

from sla_engine.models.domain import ScanResult
from sla_engine.services.sla.scheduler import ScanScheduler


class BlockingScanner:
    """Scanner double whose scans wait until released."""

    def __init__(self, block: bool = False) -> None:
        self.calls = 0
        self.entered = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()

    def scan(self, threshold_minutes=None):
        self.calls += 1
        self.entered.set()
        self.release.wait(5)
        return ScanResult(scanned_at=datetime.now(timezone.utc))


class FlakyScanner:
    def __init__(self) -> None:
        self.calls = 0
        self.recovered = threading.Event()

    def scan(self, threshold_minutes=None):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("store unavailable")
        self.recovered.set()
        return ScanResult(scanned_at=datetime.now(timezone.utc))


def test_run_once_reports_result():
    results = []
    scheduler = ScanScheduler(BlockingScanner(), 60, on_result=results.append)

    result = scheduler.run_once()

    assert result is not None
    assert results == [result]
    assert scheduler.runs_completed == 1


def test_overlapping_run_is_skipped():
    scanner = BlockingScanner(block=True)
    scheduler = ScanScheduler(scanner, 60)
    worker = threading.Thread(target=scheduler.run_once)
    worker.start()
    assert scanner.entered.wait(5)

    assert scheduler.run_once() is None
    assert scheduler.runs_skipped == 1

    scanner.release.set()
    worker.join(5)
    assert scanner.calls == 1
    assert scheduler.runs_completed == 1


def test_start_runs_immediately_and_stop_halts():
    done = threading.Event()
    scheduler = ScanScheduler(BlockingScanner(), 60, on_result=lambda result: done.set())

    scheduler.start()
    assert done.wait(5)
    assert scheduler.running

    scheduler.stop(timeout=5)
    assert not scheduler.running
    assert scheduler.runs_completed == 1


def test_stop_lets_in_flight_scan_finish():
    scanner = BlockingScanner(block=True)
    results = []
    scheduler = ScanScheduler(scanner, 60, on_result=results.append)
    scheduler.start()
    assert scanner.entered.wait(5)

    scheduler.stop(timeout=0.05)
    assert scheduler.running

    scanner.release.set()
    scheduler.stop(timeout=5)
    assert not scheduler.running
    assert len(results) == 1
    assert scanner.calls == 1


def test_loop_survives_a_failed_scan():
    scanner = FlakyScanner()
    scheduler = ScanScheduler(scanner, 0.01)

    scheduler.start()
    try:
        assert scanner.recovered.wait(5)
    finally:
        scheduler.stop(timeout=5)
    assert scanner.calls >= 2


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        ScanScheduler(BlockingScanner(), 0)
