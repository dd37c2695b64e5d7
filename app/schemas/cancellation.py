from __future__ import annotations

import uuid
from datetime import datetime
from pydantic import BaseModel

from app.models.enums import CancellationState
from app.schemas.common import BaseSchema


class CancelRequest(BaseModel):
    reason: str | None = None


class CancellationRead(BaseSchema):
    id: uuid.UUID
    request_id: uuid.UUID
    invoice_id: uuid.UUID | None
    invoice_number: str
    tracking_code: str
    state: CancellationState
    snapshot: dict
    reason: str | None
    cancelled_by: str
    created_at: datetime | None = None
