from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator

from app.models.enums import DeliveryOption, InvoiceStatus, WeightBasis
from app.schemas.common import BaseSchema, Page
from app.services.engine.types import InvoiceCalculation, InvoiceOptions


class InvoiceOptionsIn(BaseModel):
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0)
    has_delivery: bool | None = None
    delivery_base_amount: Decimal | None = Field(default=None, ge=0)
    delivery_charge: Decimal | None = Field(default=None, ge=0)
    pickup_base_amount: Decimal | None = Field(default=None, ge=0)
    insurance_amount: Decimal | None = Field(default=None, ge=0)
    shipping_amount: Decimal | None = Field(default=None, ge=0)

    def to_options(self) -> InvoiceOptions:
        return InvoiceOptions(**self.model_dump(include=set(InvoiceOptionsIn.model_fields)))


class InvoiceGenerate(InvoiceOptionsIn):
    request_id: uuid.UUID
    client_id: uuid.UUID | None = None
    customer_trn: str | None = None
    notes: str | None = None
    issue_date: date | None = None
    due_date: date | None = None


class QuoteShipment(BaseModel):
    service_route: str = Field(min_length=1)
    actual_weight: Decimal | None = Field(default=None, ge=0)
    volumetric_weight: Decimal | None = Field(default=None, ge=0)
    weight_override: Decimal | None = Field(default=None, ge=0)
    number_of_boxes: int = Field(default=1, ge=1)
    shipment_classification: str | None = None
    box_classifications: list[str | None] = Field(default_factory=list)
    insured: bool = False
    declared_value: Decimal | None = Field(default=None, ge=0)
    special_rate: Decimal | None = Field(default=None, ge=0)
    sender_delivery_option: DeliveryOption | None = None
    stored_delivery_base_amount: Decimal | None = Field(default=None, ge=0)

    @field_validator("service_route", "shipment_classification", mode="before")
    @classmethod
    def normalize_upper(cls, value: str | None):
        return value.strip().upper() if isinstance(value, str) else value


class QuoteRequest(InvoiceOptionsIn):
    request_id: uuid.UUID | None = None
    shipment: QuoteShipment | None = None


class QuoteResponse(BaseModel):
    service_route: str
    route_kind: str
    actual_weight: Decimal
    volumetric_weight: Decimal
    chargeable_weight: Decimal
    weight_basis: WeightBasis
    number_of_boxes: int
    shipment_classification: str | None
    rate: Decimal | None
    amount: Decimal
    pickup_charge: Decimal
    delivery_charge: Decimal
    insurance_charge: Decimal
    delivery_base_amount: Decimal | None
    base_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    total_amount_cod: Decimal | None
    total_amount_tax_invoice: Decimal | None
    value_inclusive: bool
    notes: list[str] = Field(default_factory=list)

    @classmethod
    def from_calculation(cls, calculation: InvoiceCalculation) -> "QuoteResponse":
        fields = calculation.invoice_fields()
        return cls(
            route_kind=calculation.route.kind.value,
            actual_weight=calculation.weight.actual_weight,
            volumetric_weight=calculation.weight.volumetric_weight,
            chargeable_weight=calculation.weight.chargeable_weight,
            weight_basis=calculation.weight.weight_basis,
            shipment_classification=calculation.classification.shipment_classification,
            rate=calculation.charges.rate,
            value_inclusive=calculation.tax.value_inclusive,
            notes=list(calculation.notes),
            **{k: v for k, v in fields.items() if k != "weight_kg"},
        )


class InvoiceRead(BaseSchema):
    id: uuid.UUID
    invoice_number: str
    awb_number: str
    request_id: uuid.UUID
    client_id: uuid.UUID | None
    service_route: str
    amount: Decimal
    pickup_charge: Decimal
    delivery_charge: Decimal
    insurance_charge: Decimal
    delivery_base_amount: Decimal | None
    base_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    total_amount_cod: Decimal | None
    total_amount_tax_invoice: Decimal | None
    weight_kg: Decimal | None
    number_of_boxes: int
    batch_number: str | None
    customer_trn: str | None
    notes: str | None
    issue_date: date
    due_date: date
    status: InvoiceStatus
    created_by: str
    created_at: datetime | None = None


class InvoiceList(Page[InvoiceRead]):
    pass


class BulkRowError(BaseModel):
    row: int
    field: str | None
    message: str


class BulkImportResponse(BaseModel):
    total_rows: int
    created: list[str]
    errors: list[BulkRowError]
    substituted_tracking_codes: int


class ReportRead(BaseSchema):
    id: uuid.UUID
    title: str
    invoice_id: uuid.UUID | None
    invoice_number: str | None
    amount: Decimal | None
    cargo_details: dict
    generated_by: str
    generated_at: datetime | None = None
