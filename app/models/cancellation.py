from __future__ import annotations

import uuid
from sqlalchemy import DateTime, Enum, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.enums import CancellationState


class CancellationRecord(Base):
    """Immutable audit snapshot of a cancelled invoice request and everything linked to it."""

    __tablename__ = "cancellation_records"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, unique=True)
    invoice_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False)
    tracking_code: Mapped[str] = mapped_column(String(64), nullable=False)

    state: Mapped[CancellationState] = mapped_column(
        Enum(CancellationState), nullable=False, default=CancellationState.ACTIVE
    )
    snapshot: Mapped[dict] = mapped_column(JSONB, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    cancelled_by: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
