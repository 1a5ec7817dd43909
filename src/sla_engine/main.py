"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import health, routes, sla
from .config import Settings, settings
from .persistence.parcels import ParcelStore, build_parcel_store
from .services.routing.directions import RouteDistanceEstimator, build_directions_provider
from .services.sla.scheduler import ScanScheduler
from .services.sla.service import SLAService
from .services.timing import DeliveryTimeEstimator


def _configure_logging(config: Settings) -> None:
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_service(store: ParcelStore | None = None, config: Settings = settings) -> SLAService:
    estimator = RouteDistanceEstimator(
        provider=build_directions_provider(),
        time_estimator=DeliveryTimeEstimator.from_settings(config),
        timeout_seconds=config.directions_timeout_seconds,
    )
    return SLAService(store or build_parcel_store(), distance_estimator=estimator, config=config)


def create_app(
    service: SLAService | None = None,
    *,
    config: Settings = settings,
    start_scanner: bool | None = None,
) -> FastAPI:
    _configure_logging(config)
    sla_service = service or build_service(config=config)
    run_scanner = config.scanner_enabled if start_scanner is None else start_scanner

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if run_scanner:
            scheduler = ScanScheduler(
                sla_service.scanner,
                config.scan_interval_seconds,
                on_result=sla_service.alert_registry.record,
            )
            scheduler.start()
        app.state.scan_scheduler = scheduler
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop(timeout=config.directions_timeout_seconds * 2)
            sla_service.close()

    app = FastAPI(title=config.app_name, lifespan=lifespan)
    app.state.sla_service = sla_service
    app.state.scan_scheduler = None
    if config.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(config.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": config.app_name,
            "status": "running",
            "api_prefix": config.api_prefix,
            "health": f"{config.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=config.api_prefix)
    app.include_router(sla.router, prefix=config.api_prefix)
    app.include_router(routes.router, prefix=config.api_prefix)
    return app


app = create_app()
