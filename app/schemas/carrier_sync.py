from __future__ import annotations

import uuid
from pydantic import BaseModel, Field


class RetryResponse(BaseModel):
    attempted: int
    succeeded: int
    failed: int
    task_ids: list[uuid.UUID] = Field(default_factory=list)
