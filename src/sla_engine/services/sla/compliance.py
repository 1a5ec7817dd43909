"""Historical SLA compliance reporting."""

from __future__ import annotations

from datetime import datetime

from ...errors import ValidationError
from ...models.domain import ComplianceReport, ParcelStatus, RiskLevel
from ...persistence.parcels import ParcelFilter, ParcelOrder, ParcelStore
from ...timeutils import as_aware


def margin_bucket(minutes_to_spare: float) -> RiskLevel:
    """Bucket a delivered parcel by how much slack it had at delivery."""
    if minutes_to_spare < 0:
        return RiskLevel.CRITICAL
    if minutes_to_spare < 30:
        return RiskLevel.HIGH
    if minutes_to_spare < 60:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def generate_sla_compliance_report(store: ParcelStore, start_date: datetime, end_date: datetime) -> ComplianceReport:
    """Compliance over DELIVERED parcels created between the two dates (inclusive).

    A parcel's ``updated_at`` is taken as its delivery instant. Naive dates
    are read as local time.
    """

    start_date, end_date = as_aware(start_date), as_aware(end_date)
    if end_date < start_date:
        raise ValidationError(f"end date {end_date.isoformat()} is before start date {start_date.isoformat()}")

    parcels = store.find(
        ParcelFilter(statuses=(ParcelStatus.DELIVERED,), created_from=start_date, created_to=end_date),
        ParcelOrder(field="created_at", ascending=True),
    )

    risk_breakdown = {level.value: 0 for level in RiskLevel}
    on_time = 0
    total_delivery_minutes = 0.0
    for parcel in parcels:
        delivered_at, deadline = as_aware(parcel.updated_at), as_aware(parcel.sla_deadline)
        total_delivery_minutes += (delivered_at - as_aware(parcel.created_at)).total_seconds() / 60
        if delivered_at <= deadline:
            on_time += 1
        minutes_to_spare = (deadline - delivered_at).total_seconds() / 60
        risk_breakdown[margin_bucket(minutes_to_spare).value] += 1

    total = len(parcels)
    return ComplianceReport(
        start_date=start_date,
        end_date=end_date,
        total_parcels=total,
        on_time_deliveries=on_time,
        late_deliveries=total - on_time,
        compliance_rate=(on_time / total * 100) if total else 0.0,
        average_delivery_time=(total_delivery_minutes / total) if total else 0.0,
        risk_breakdown=risk_breakdown,
    )
