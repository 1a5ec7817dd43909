"""Batch scan of in-flight parcels for SLA risk."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from ...config import Settings, settings
from ...models.domain import (
    Parcel,
    Priority,
    RiskLevel,
    ScanFailure,
    ScanResult,
    SLABreach,
    SLARiskAlert,
)
from ...persistence.parcels import ParcelFilter, ParcelOrder, ParcelStore
from ...timeutils import as_aware
from ..timing import round_minutes
from .risk import classify_safety_margin, contextual_risk_factors, minutes_until
from .status import ACTIVE_STATUSES

logger = logging.getLogger(__name__)

APPROACHING_DEADLINE = "Approaching SLA deadline"

RECOMMENDED_ACTIONS: dict[RiskLevel, tuple[str, ...]] = {
    RiskLevel.CRITICAL: ("Immediate dispatcher intervention required", "Consider emergency reassignment"),
    RiskLevel.HIGH: ("Monitor closely", "Prepare contingency plan"),
    RiskLevel.MEDIUM: ("Track progress regularly",),
}


class AtRiskScanner:
    def __init__(self, store: ParcelStore, config: Settings = settings) -> None:
        self.store = store
        self.config = config

    def estimate_remaining_delivery_time(self, parcel: Parcel, now: datetime) -> int:
        """Heuristic remaining minutes from priority and time already spent assigned."""

        base_estimate = self.config.base_remaining_delivery_minutes
        if parcel.priority is Priority.URGENT:
            base_estimate *= self.config.urgent_speedup_factor
        elif parcel.priority is Priority.LOW:
            base_estimate *= self.config.low_priority_slowdown_factor

        elapsed_minutes = 0.0
        if parcel.assigned_at is not None:
            elapsed_minutes = max(0.0, (now - parcel.assigned_at).total_seconds() / 60)

        remaining = max(self.config.min_remaining_delivery_minutes, base_estimate - elapsed_minutes)
        return round_minutes(remaining)

    def evaluate(self, parcel: Parcel, now: datetime) -> SLARiskAlert:
        time_to_deadline = minutes_until(parcel.sla_deadline, now)
        estimated_delivery_time = self.estimate_remaining_delivery_time(parcel, now)
        margin = time_to_deadline - estimated_delivery_time

        risk_level, level_factor = classify_safety_margin(margin, self.config.default_safety_margin_minutes)
        # every parcel inside the risk window is at least worth tracking
        if risk_level is RiskLevel.LOW or risk_level is RiskLevel.MEDIUM:
            risk_level, level_factor = RiskLevel.MEDIUM, APPROACHING_DEADLINE

        risk_factors = [level_factor]
        risk_factors.extend(contextual_risk_factors(parcel.priority, now, config=self.config))

        return SLARiskAlert(
            parcel_id=parcel.id,
            tracking_number=parcel.tracking_number,
            risk_level=risk_level,
            time_to_deadline=time_to_deadline,
            estimated_delivery_time=estimated_delivery_time,
            risk_factors=risk_factors,
            recommended_actions=list(RECOMMENDED_ACTIONS[risk_level]),
        )

    def scan(self, threshold_minutes: int | None = None, *, now: datetime | None = None) -> ScanResult:
        """Evaluate every active parcel whose deadline falls inside the risk window.

        Parcels already at or past their deadline are reported as breaches,
        not alerts. A parcel that fails to evaluate is recorded and skipped.
        """

        window = threshold_minutes if threshold_minutes is not None else self.config.risk_window_minutes
        if window <= 0:
            raise ValueError("risk threshold must be > 0 minutes")
        now = as_aware(now) if now is not None else datetime.now(timezone.utc)

        parcels = self.store.find(
            ParcelFilter(statuses=ACTIVE_STATUSES, deadline_before=now + timedelta(minutes=window)),
            ParcelOrder(field="sla_deadline", ascending=True),
        )
        result = ScanResult(scanned_at=now)

        for parcel in parcels:
            try:
                time_to_deadline = minutes_until(parcel.sla_deadline, now)
                if time_to_deadline <= 0:
                    result.breaches.append(
                        SLABreach(
                            parcel_id=parcel.id,
                            tracking_number=parcel.tracking_number,
                            minutes_overdue=-time_to_deadline,
                        )
                    )
                    continue
                result.alerts.append(self.evaluate(parcel, now))
            except Exception as exc:
                logger.warning(f"SLA risk evaluation failed for parcel {parcel.id}: {exc}")
                result.failures.append(ScanFailure(parcel_id=parcel.id, error=str(exc)))

        logger.info(
            f"SLA risk scan completed - {len(parcels)} parcels in window, {len(result.alerts)} alerts, "
            f"{len(result.breaches)} breaches, {len(result.failures)} failures"
        )
        return result

    def get_at_risk_parcels(self, threshold_minutes: int | None = None, *, now: datetime | None = None) -> list[SLARiskAlert]:
        return self.scan(threshold_minutes, now=now).alerts
