from __future__ import annotations

import uuid
from sqlalchemy import DateTime, Enum, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.enums import IdentifierKind


class IdentifierReservation(Base):
    __tablename__ = "identifier_reservations"
    __table_args__ = (UniqueConstraint("kind", "value", name="uq_identifier_reservations_kind_value"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    kind: Mapped[IdentifierKind] = mapped_column(Enum(IdentifierKind), nullable=False)
    value: Mapped[str] = mapped_column(String(64), nullable=False)
    reserved_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
