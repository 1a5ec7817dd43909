"""Background scheduling for the at-risk scanner."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ...models.domain import ScanResult
from .scanner import AtRiskScanner

logger = logging.getLogger(__name__)


class ScanScheduler:
    """Runs ``scanner.scan()`` every ``interval_seconds`` on a daemon thread.

    Scans are single-flight: a run requested while another is in progress is
    skipped. ``stop()`` lets an in-flight scan finish and prevents new ones.
    """

    def __init__(
        self,
        scanner: AtRiskScanner,
        interval_seconds: float,
        on_result: Optional[Callable[[ScanResult], None]] = None,
        threshold_minutes: int | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.scanner = scanner
        self.interval_seconds = interval_seconds
        self.on_result = on_result
        self.threshold_minutes = threshold_minutes
        self._stop_event = threading.Event()
        self._run_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.runs_completed = 0
        self.runs_skipped = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="sla-risk-scanner", daemon=True)
        self._thread.start()
        logger.info(f"SLA risk scanner started (interval {self.interval_seconds:.0f}s)")

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("SLA risk scanner still finishing an in-flight scan after stop()")
            else:
                self._thread = None
        logger.info("SLA risk scanner stopped")

    def run_once(self) -> ScanResult | None:
        """Run one scan now unless one is already in progress."""

        if not self._run_lock.acquire(blocking=False):
            self.runs_skipped += 1
            logger.warning("Previous SLA risk scan still running - skipping this run")
            return None
        try:
            result = self.scanner.scan(self.threshold_minutes)
            self.runs_completed += 1
            if self.on_result is not None:
                self.on_result(result)
            return result
        finally:
            self._run_lock.release()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("SLA risk scan failed")
            self._stop_event.wait(self.interval_seconds)
