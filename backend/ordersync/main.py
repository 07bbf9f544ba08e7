"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ordersync.api.v1 import ledger, results, sync
from ordersync.core.config import settings
from ordersync.core.logging import get_logger, setup_logging
from ordersync.service import SyncService, build_service

API_PREFIX = "/api/v1"


def create_app(service_factory: Callable[[], SyncService] | None = None) -> FastAPI:
    """
    Build the API app.  The lifespan creates the service container and,
    when AUTO_SYNC_ON_STARTUP is set, starts the scheduler.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle hooks."""
        setup_logging(settings.LOG_LEVEL, json_format=settings.LOG_JSON)
        logger = get_logger("startup")
        logger.info("Application starting", env=settings.APP_ENV)

        service = service_factory() if service_factory else build_service(settings)
        app.state.service = service
        if service.settings.AUTO_SYNC_ON_STARTUP:
            service.scheduler.start()

        yield

        logger.info("Application shutting down")
        await service.aclose()
        app.state.service = None

    app = FastAPI(
        title="Order Sync API",
        description="Order-file ingestion from SFTP into the commerce platform",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sync.router, prefix=API_PREFIX)
    app.include_router(ledger.router, prefix=API_PREFIX)
    app.include_router(results.router, prefix=API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Public health-check endpoint."""
        return {"status": "ok", "env": settings.APP_ENV}

    return app


app = create_app()
