"""
Processing-results endpoints — per-file outcome history and statistics.
"""

from fastapi import APIRouter, Depends

from ordersync.api.deps import get_service
from ordersync.api.schemas import RemovedResponse
from ordersync.service import SyncService

router = APIRouter(prefix="/results", tags=["Results"])


@router.get("")
async def list_results(
    limit: int = 100,
    success: bool | None = None,
    service: SyncService = Depends(get_service),
):
    records = service.results.all()
    if success is not None:
        records = [r for r in records if r.success == success]
    records = records[-limit:] if limit > 0 else []
    return {
        "statistics": service.results.statistics(),
        "results": [r.to_dict() for r in reversed(records)],
    }


@router.delete("", response_model=RemovedResponse)
async def clear_results(service: SyncService = Depends(get_service)):
    return RemovedResponse(removed=service.results.clear())
