from __future__ import annotations

import uuid
from decimal import Decimal
from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.enums import DeliveryOption, InvoiceRequestStatus, WeightBasis


class InvoiceRequest(Base):
    __tablename__ = "invoice_requests"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    tracking_code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    service_route: Mapped[str] = mapped_column(String(64), nullable=False)

    client_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("clients.id"))
    booking_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("shipment_bookings.id"))

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(64))
    receiver_name: Mapped[str] = mapped_column(String(255), nullable=False)
    receiver_company: Mapped[str | None] = mapped_column(String(255))
    receiver_phone: Mapped[str | None] = mapped_column(String(64))
    origin_place: Mapped[str] = mapped_column(Text, nullable=False)
    destination_place: Mapped[str] = mapped_column(Text, nullable=False)
    shipment_type: Mapped[str] = mapped_column(String(64), nullable=False)

    sender_delivery_option: Mapped[DeliveryOption | None] = mapped_column(Enum(DeliveryOption))
    insured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivery_base_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))

    carrier_reference: Mapped[str | None] = mapped_column(String(64))
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[InvoiceRequestStatus] = mapped_column(
        Enum(InvoiceRequestStatus), nullable=False, default=InvoiceRequestStatus.DRAFT
    )

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    verification = relationship(
        "ShipmentVerification", back_populates="request", uselist=False, cascade="all, delete-orphan"
    )
    invoice = relationship("Invoice", back_populates="request", uselist=False)
    delivery_assignments = relationship("DeliveryAssignment", back_populates="request")
    booking = relationship("ShipmentBooking", back_populates="requests")


class ShipmentVerification(Base):
    __tablename__ = "shipment_verifications"

    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoice_requests.id", ondelete="CASCADE"), primary_key=True
    )

    actual_weight: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    volumetric_weight: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    total_kg: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    chargeable_weight: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    weight_basis: Mapped[WeightBasis | None] = mapped_column(Enum(WeightBasis))
    number_of_boxes: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    shipment_classification: Mapped[str | None] = mapped_column(String(32))
    boxes: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    total_vm: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    volume_cbm: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))

    declared_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    rate: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    rate_bracket: Mapped[str | None] = mapped_column(String(64))

    verified_by: Mapped[str | None] = mapped_column(String(255))
    verified_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True))

    request = relationship("InvoiceRequest", back_populates="verification")
