from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum as SAEnum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.enums import InvoiceStatus


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    awb_number: Mapped[str] = mapped_column(String(64), nullable=False)
    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoice_requests.id"), nullable=False, unique=True
    )
    client_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("clients.id"))
    service_route: Mapped[str] = mapped_column(String(64), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    pickup_charge: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    delivery_charge: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    insurance_charge: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    delivery_base_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    base_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    total_amount_cod: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    total_amount_tax_invoice: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))

    weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    number_of_boxes: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    batch_number: Mapped[str | None] = mapped_column(String(64))
    customer_trn: Mapped[str | None] = mapped_column(String(64))
    notes: Mapped[str | None] = mapped_column(Text)

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(SAEnum(InvoiceStatus), default=InvoiceStatus.UNPAID, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    request = relationship("InvoiceRequest", back_populates="invoice")
    client = relationship("Client", back_populates="invoices")
