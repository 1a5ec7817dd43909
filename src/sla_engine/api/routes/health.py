"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_directions_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.directions import check_health as directions_health_check
    return directions_health_check


@router.get("/health/directions", status_code=status.HTTP_200_OK)
def health_directions() -> dict:
    """Check the directions provider; the engine degrades to Haversine when it is down."""
    from ...config import settings

    if not settings.osrm_base_url:
        return {"service": "osrm", "configured": False, "healthy": False, "fallback": "haversine"}
    try:
        healthy = _get_directions_health_check()()
        return {"service": "osrm", "configured": True, "healthy": healthy, "fallback": "haversine"}
    except Exception as e:
        return {"service": "osrm", "configured": True, "healthy": False, "error": str(e)}


@router.get("/health/scanner", status_code=status.HTTP_200_OK)
def health_scanner(request: Request) -> dict:
    scheduler = getattr(request.app.state, "scan_scheduler", None)
    if scheduler is None:
        return {"service": "sla-scanner", "enabled": False}
    return {
        "service": "sla-scanner",
        "enabled": True,
        "running": scheduler.running,
        "runs_completed": scheduler.runs_completed,
        "runs_skipped": scheduler.runs_skipped,
    }


@router.get("/health/storage", status_code=status.HTTP_200_OK)
def health_storage(request: Request) -> dict:
    from ...db.supabase import supabase_configured

    store = request.app.state.sla_service.store
    return {
        "service": "parcel-store",
        "backend": type(store).__name__,
        "supabase_configured": supabase_configured(),
    }
