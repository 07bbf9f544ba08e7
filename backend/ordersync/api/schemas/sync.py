"""Request/response schemas for the sync control surface."""

from __future__ import annotations

from pydantic import BaseModel, Field


class IntervalUpdate(BaseModel):
    """Request payload for changing the auto-sync interval."""

    minutes: float = Field(..., gt=0, le=24 * 60)


class IntervalChangeResponse(BaseModel):
    action: str
    interval_minutes: float
    pending_interval_minutes: float | None = None


class LedgerResponse(BaseModel):
    count: int
    files: list[str]


class RemovedResponse(BaseModel):
    removed: int
