"""FastAPI dependency helpers."""

from __future__ import annotations

from fastapi import Request

from ..services.sla.service import SLAService


def get_sla_service(request: Request) -> SLAService:
    return request.app.state.sla_service
