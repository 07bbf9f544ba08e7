"""
Processed-file ledger endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from ordersync.api.deps import get_service
from ordersync.api.schemas import LedgerResponse, RemovedResponse
from ordersync.service import SyncService

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get("", response_model=LedgerResponse)
async def list_processed_files(service: SyncService = Depends(get_service)):
    names = service.ledger.names()
    return LedgerResponse(count=len(names), files=names)


@router.delete("", response_model=RemovedResponse)
async def clear_processed_files(service: SyncService = Depends(get_service)):
    """Forget every processed file; they become eligible again next cycle."""
    if service.orchestrator.in_progress:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot clear the ledger while a sync is in progress",
        )
    return RemovedResponse(removed=service.ledger.clear())


@router.delete("/{file_name}", response_model=RemovedResponse)
async def remove_processed_file(file_name: str, service: SyncService = Depends(get_service)):
    try:
        removed = service.ledger.remove(file_name)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{file_name} is not in the ledger")
    return RemovedResponse(removed=1)
