from __future__ import annotations

import uuid
from fastapi import APIRouter, Depends

from app.core.deps import get_db_session
from app.schemas.cancellation import CancellationRead
from app.services.cancellation import CancellationService

router = APIRouter(prefix="/cancellations", tags=["cancellations"])


@router.get("/{request_id}", response_model=CancellationRead)
async def get_cancellation(request_id: uuid.UUID, session=Depends(get_db_session)):
    return await CancellationService(session).get_record(request_id)
