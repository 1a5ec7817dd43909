"""Parcel store contract with in-memory and Supabase implementations."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from ..config import settings
from ..errors import ParcelNotFoundError
from ..models.domain import Dimensions, GeoCoordinate, Parcel, ParcelStatus, Priority
from ..timeutils import as_aware, as_aware_or_none

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("sla_deadline", "created_at", "updated_at", "assigned_at")


@dataclass(frozen=True, slots=True)
class ParcelFilter:
    statuses: Optional[Sequence[ParcelStatus]] = None
    deadline_before: Optional[datetime] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    vehicle_id: Optional[str] = None

    def matches(self, parcel: Parcel) -> bool:
        if self.statuses is not None and parcel.status not in self.statuses:
            return False
        if self.deadline_before is not None and as_aware(parcel.sla_deadline) > as_aware(self.deadline_before):
            return False
        if self.created_from is not None and as_aware(parcel.created_at) < as_aware(self.created_from):
            return False
        if self.created_to is not None and as_aware(parcel.created_at) > as_aware(self.created_to):
            return False
        if self.vehicle_id is not None and parcel.assigned_vehicle_id != self.vehicle_id:
            return False
        return True


@dataclass(frozen=True, slots=True)
class ParcelOrder:
    field: str = "sla_deadline"
    ascending: bool = True

    def __post_init__(self) -> None:
        if self.field not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot order parcels by {self.field!r}")


class ParcelStore(ABC):
    """Read access to parcels, plus ``save`` for collaborators that mutate them."""

    @abstractmethod
    def find_by_id(self, parcel_id: str) -> Parcel:
        raise NotImplementedError

    @abstractmethod
    def find(self, parcel_filter: ParcelFilter | None = None, order: ParcelOrder | None = None) -> list[Parcel]:
        raise NotImplementedError

    @abstractmethod
    def save(self, parcel: Parcel) -> Parcel:
        raise NotImplementedError


def with_aware_timestamps(parcel: Parcel) -> Parcel:
    """Copy of ``parcel`` whose naive timestamps are read as local time."""
    return replace(
        parcel,
        sla_deadline=as_aware(parcel.sla_deadline),
        created_at=as_aware(parcel.created_at),
        updated_at=as_aware(parcel.updated_at),
        assigned_at=as_aware_or_none(parcel.assigned_at),
    )


class InMemoryParcelStore(ParcelStore):
    def __init__(self, parcels: Iterable[Parcel] = ()) -> None:
        self._lock = threading.Lock()
        self._parcels: dict[str, Parcel] = {parcel.id: with_aware_timestamps(parcel) for parcel in parcels}

    def find_by_id(self, parcel_id: str) -> Parcel:
        with self._lock:
            parcel = self._parcels.get(parcel_id)
        if parcel is None:
            raise ParcelNotFoundError(parcel_id)
        return replace(parcel)

    def find(self, parcel_filter: ParcelFilter | None = None, order: ParcelOrder | None = None) -> list[Parcel]:
        parcel_filter = parcel_filter or ParcelFilter()
        with self._lock:
            matches = [replace(parcel) for parcel in self._parcels.values() if parcel_filter.matches(parcel)]
        if order is not None:
            # parcels without the sort key (e.g. never assigned) go last
            present = [parcel for parcel in matches if getattr(parcel, order.field) is not None]
            missing = [parcel for parcel in matches if getattr(parcel, order.field) is None]
            present.sort(key=lambda parcel: getattr(parcel, order.field), reverse=not order.ascending)
            matches = present + missing
        return matches

    def save(self, parcel: Parcel) -> Parcel:
        with self._lock:
            self._parcels[parcel.id] = with_aware_timestamps(parcel)
        return parcel

    def __len__(self) -> int:
        with self._lock:
            return len(self._parcels)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_aware(value)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_aware(datetime.fromisoformat(text))


def parcel_from_row(row: dict[str, Any]) -> Parcel:
    """Map a ``parcels`` row (flat lat/lon columns) to a Parcel."""
    return Parcel(
        id=str(row["id"]),
        tracking_number=str(row["tracking_number"]),
        pickup_location=GeoCoordinate(float(row["pickup_latitude"]), float(row["pickup_longitude"])),
        delivery_location=GeoCoordinate(float(row["delivery_latitude"]), float(row["delivery_longitude"])),
        weight_kg=float(row.get("weight") or 0.0),
        dimensions=Dimensions(
            length_cm=float(row.get("length_cm") or 0.0),
            width_cm=float(row.get("width_cm") or 0.0),
            height_cm=float(row.get("height_cm") or 0.0),
        ),
        priority=Priority(str(row.get("priority") or Priority.MEDIUM.value)),
        sla_deadline=_parse_timestamp(row["sla_deadline"]),
        status=ParcelStatus(str(row.get("status") or ParcelStatus.PENDING.value)),
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"]),
        assigned_vehicle_id=str(row["assigned_vehicle_id"]) if row.get("assigned_vehicle_id") else None,
        assigned_at=_parse_timestamp(row.get("assigned_at")),
    )


def parcel_to_row(parcel: Parcel) -> dict[str, Any]:
    return {
        "id": parcel.id,
        "tracking_number": parcel.tracking_number,
        "pickup_latitude": parcel.pickup_location.latitude,
        "pickup_longitude": parcel.pickup_location.longitude,
        "delivery_latitude": parcel.delivery_location.latitude,
        "delivery_longitude": parcel.delivery_location.longitude,
        "weight": parcel.weight_kg,
        "length_cm": parcel.dimensions.length_cm,
        "width_cm": parcel.dimensions.width_cm,
        "height_cm": parcel.dimensions.height_cm,
        "priority": parcel.priority.value,
        "sla_deadline": parcel.sla_deadline.isoformat(),
        "status": parcel.status.value,
        "assigned_vehicle_id": parcel.assigned_vehicle_id,
        "assigned_at": parcel.assigned_at.isoformat() if parcel.assigned_at else None,
        "created_at": parcel.created_at.isoformat(),
        "updated_at": parcel.updated_at.isoformat(),
    }


class SupabaseParcelStore(ParcelStore):
    """Parcel store backed by a Supabase table.

    The table (or view) must expose flat ``pickup_latitude``/``pickup_longitude``
    and ``delivery_latitude``/``delivery_longitude`` columns.
    """

    def __init__(self, client: Any, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.parcels_table

    def find_by_id(self, parcel_id: str) -> Parcel:
        response = self.client.table(self.table).select("*").eq("id", parcel_id).limit(1).execute()
        rows = response.data or []
        if not rows:
            raise ParcelNotFoundError(parcel_id)
        return parcel_from_row(rows[0])

    def find(self, parcel_filter: ParcelFilter | None = None, order: ParcelOrder | None = None) -> list[Parcel]:
        parcel_filter = parcel_filter or ParcelFilter()
        query = self.client.table(self.table).select("*")
        if parcel_filter.statuses is not None:
            query = query.in_("status", [status.value for status in parcel_filter.statuses])
        if parcel_filter.deadline_before is not None:
            query = query.lte("sla_deadline", as_aware(parcel_filter.deadline_before).isoformat())
        if parcel_filter.created_from is not None:
            query = query.gte("created_at", as_aware(parcel_filter.created_from).isoformat())
        if parcel_filter.created_to is not None:
            query = query.lte("created_at", as_aware(parcel_filter.created_to).isoformat())
        if parcel_filter.vehicle_id is not None:
            query = query.eq("assigned_vehicle_id", parcel_filter.vehicle_id)
        if order is not None:
            query = query.order(order.field, desc=not order.ascending)

        response = query.execute()
        parcels: list[Parcel] = []
        for row in response.data or []:
            try:
                parcels.append(parcel_from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid parcel row {row.get('id')}: {e}")
        return parcels

    def save(self, parcel: Parcel) -> Parcel:
        response = self.client.table(self.table).upsert(parcel_to_row(parcel)).execute()
        rows = response.data or []
        return parcel_from_row(rows[0]) if rows else parcel


def build_parcel_store() -> ParcelStore:
    """Supabase-backed store when configured, otherwise an empty in-memory store."""
    from ..db.supabase import get_supabase_client

    client = get_supabase_client()
    if client is None:
        logger.info("Supabase not configured - using in-memory parcel store")
        return InMemoryParcelStore()
    return SupabaseParcelStore(client)
