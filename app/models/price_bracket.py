from __future__ import annotations

import uuid
from decimal import Decimal
from sqlalchemy import Boolean, DateTime, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class PriceBracket(Base):
    __tablename__ = "price_brackets"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    route: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    min_kg: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_kg: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    label: Mapped[str] = mapped_column(String(64), nullable=False)
    is_special: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
