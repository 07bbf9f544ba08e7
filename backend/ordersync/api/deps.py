"""Shared dependencies for API routes."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from ordersync.service import SyncService


def get_service(request: Request) -> SyncService:
    """The process-wide service container built in the app lifespan."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync service is not initialised",
        )
    return service
