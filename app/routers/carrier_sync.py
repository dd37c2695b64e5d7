from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.core.deps import get_db_session
from app.schemas.carrier_sync import RetryResponse
from app.services.carrier_sync import CarrierSyncService

router = APIRouter(prefix="/carrier-sync", tags=["carrier-sync"])


@router.post("/retry", response_model=RetryResponse)
async def retry_carrier_sync(limit: int = Query(default=50, ge=1, le=500), session=Depends(get_db_session)):
    summary = await CarrierSyncService(session).retry_pending(limit)
    return RetryResponse(
        attempted=summary.attempted,
        succeeded=summary.succeeded,
        failed=summary.failed,
        task_ids=summary.task_ids,
    )
