from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator

from app.models.enums import DeliveryOption, InvoiceRequestStatus, WeightBasis
from app.schemas.common import BaseSchema, Page


def _upper(value):
    return value.strip().upper() if isinstance(value, str) else value


class InvoiceRequestCreate(BaseModel):
    service_route: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)
    customer_phone: str | None = None
    receiver_name: str = Field(min_length=1)
    receiver_company: str | None = None
    receiver_phone: str | None = None
    origin_place: str = Field(min_length=1)
    destination_place: str = Field(min_length=1)
    shipment_type: str = Field(min_length=1)
    tracking_code: str | None = None
    client_id: uuid.UUID | None = None
    booking_id: uuid.UUID | None = None
    sender_delivery_option: DeliveryOption | None = None
    insured: bool = False
    delivery_base_amount: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    status: InvoiceRequestStatus | None = None

    @field_validator("service_route", "tracking_code", mode="before")
    @classmethod
    def normalize_codes(cls, value: str | None):
        return _upper(value)

    @field_validator("status")
    @classmethod
    def initial_status(cls, value: InvoiceRequestStatus | None):
        if value not in (None, InvoiceRequestStatus.DRAFT, InvoiceRequestStatus.SUBMITTED):
            raise ValueError("a new invoice request must be DRAFT or SUBMITTED")
        return value


class BoxInput(BaseModel):
    items: str | None = None
    quantity: int = Field(default=1, ge=1)
    length: Decimal | None = Field(default=None, ge=0)
    width: Decimal | None = Field(default=None, ge=0)
    height: Decimal | None = Field(default=None, ge=0)
    vm: Decimal | None = Field(default=None, ge=0)
    classification: str | None = None

    @field_validator("classification", mode="before")
    @classmethod
    def normalize_classification(cls, value: str | None):
        return _upper(value) or None


class VerificationUpdate(BaseModel):
    actual_weight: Decimal | None = Field(default=None, ge=0)
    volumetric_weight: Decimal | None = Field(default=None, ge=0)
    total_kg: Decimal | None = Field(default=None, ge=0)
    chargeable_weight: Decimal | None = Field(default=None, ge=0)
    number_of_boxes: int | None = Field(default=None, ge=1)
    shipment_classification: str | None = None
    boxes: list[BoxInput] | None = None
    total_vm: Decimal | None = Field(default=None, ge=0)
    volume_cbm: Decimal | None = Field(default=None, ge=0)
    declared_value: Decimal | None = Field(default=None, ge=0)
    rate: Decimal | None = Field(default=None, ge=0)
    rate_bracket: str | None = None

    @field_validator("shipment_classification", mode="before")
    @classmethod
    def normalize_classification(cls, value: str | None):
        return _upper(value) or None


class VerificationRead(BaseSchema):
    actual_weight: Decimal | None
    volumetric_weight: Decimal | None
    total_kg: Decimal | None
    chargeable_weight: Decimal | None
    weight_basis: WeightBasis | None
    number_of_boxes: int
    shipment_classification: str | None
    boxes: list[dict] = Field(default_factory=list)
    total_vm: Decimal | None
    volume_cbm: Decimal | None
    declared_value: Decimal | None
    rate: Decimal | None
    rate_bracket: str | None
    verified_by: str | None
    verified_at: datetime | None


class InvoiceRequestRead(BaseSchema):
    id: uuid.UUID
    invoice_number: str
    tracking_code: str
    service_route: str
    client_id: uuid.UUID | None
    booking_id: uuid.UUID | None
    customer_name: str
    customer_phone: str | None
    receiver_name: str
    receiver_company: str | None
    receiver_phone: str | None
    origin_place: str
    destination_place: str
    shipment_type: str
    sender_delivery_option: DeliveryOption | None
    insured: bool
    delivery_base_amount: Decimal | None
    carrier_reference: str | None
    notes: str | None
    created_by: str
    status: InvoiceRequestStatus
    created_at: datetime | None = None
    verification: VerificationRead | None = None


class InvoiceRequestCreated(BaseModel):
    request: InvoiceRequestRead
    tracking_code_substituted: bool = False
    requested_tracking_code: str | None = None
    substitution_reason: str | None = None


class VerificationResult(BaseModel):
    request: InvoiceRequestRead
    carrier_synced: bool


class InvoiceRequestList(Page[InvoiceRequestRead]):
    pass
