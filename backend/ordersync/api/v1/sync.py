"""
Sync control endpoints — manual run, status, auto-sync start/stop/interval.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from ordersync.api.deps import get_service
from ordersync.api.schemas import IntervalChangeResponse, IntervalUpdate
from ordersync.core.constants import SyncStatus
from ordersync.ingestion.orchestrator import ALREADY_RUNNING_MESSAGE
from ordersync.service import SyncService

router = APIRouter(prefix="/sync", tags=["Sync"])


# ─── Manual run ───────────────────────────────────────────
@router.post("/run")
async def run_sync(service: SyncService = Depends(get_service)):
    """Run one sync cycle now and return its report."""
    if service.orchestrator.in_progress:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_RUNNING_MESSAGE)

    report = await service.orchestrator.run_cycle()
    if report.status == SyncStatus.ALREADY_RUNNING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_RUNNING_MESSAGE)
    return report.to_dict()


# ─── Status ───────────────────────────────────────────────
@router.get("/status")
async def sync_status(service: SyncService = Depends(get_service)):
    return {
        "scheduler": service.scheduler.status(),
        "orchestrator": service.orchestrator.status(),
    }


# ─── Auto-sync ────────────────────────────────────────────
@router.post("/start")
async def start_auto_sync(service: SyncService = Depends(get_service)):
    started = service.scheduler.start()
    return {"started": started, "scheduler": service.scheduler.status()}


@router.post("/stop")
async def stop_auto_sync(service: SyncService = Depends(get_service)):
    """Stop further ticks; a cycle already running is left to finish."""
    await service.scheduler.stop(wait=False)
    return {"stopped": True, "scheduler": service.scheduler.status()}


@router.put("/interval", response_model=IntervalChangeResponse)
async def change_interval(
    body: IntervalUpdate,
    service: SyncService = Depends(get_service),
):
    action = service.scheduler.change_interval(body.minutes)
    return IntervalChangeResponse(
        action=action,
        interval_minutes=service.scheduler.interval_minutes,
        pending_interval_minutes=service.scheduler.pending_interval,
    )
