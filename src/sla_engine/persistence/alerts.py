"""Holds the outcome of the most recent at-risk scan."""

from __future__ import annotations

import threading
from typing import Optional

from ..models.domain import ScanResult, SLABreach, SLARiskAlert


class AlertRegistry:
    """Active alerts and breaches, replaced wholesale by each completed scan."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: Optional[ScanResult] = None

    def record(self, result: ScanResult) -> None:
        with self._lock:
            self._latest = result

    @property
    def latest(self) -> Optional[ScanResult]:
        with self._lock:
            return self._latest

    def active_alerts(self) -> list[SLARiskAlert]:
        latest = self.latest
        return list(latest.alerts) if latest else []

    def breaches(self) -> list[SLABreach]:
        latest = self.latest
        return list(latest.breaches) if latest else []

    def clear(self) -> None:
        with self._lock:
            self._latest = None
