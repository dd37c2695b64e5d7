from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol

from app.models.enums import DeliveryOption, RouteKind, ShipmentClassification, WeightBasis


@dataclass(frozen=True)
class EngineConfig:
    vat_rate: Decimal = Decimal("5")
    default_delivery_base_amount: Decimal = Decimal("20")
    per_box_delivery_increment: Decimal = Decimal("5")
    cod_free_delivery_threshold_kg: Decimal = Decimal("15")

    @classmethod
    def from_settings(cls, settings) -> "EngineConfig":
        return cls(
            vat_rate=Decimal(str(settings.vat_rate_percent)),
            default_delivery_base_amount=Decimal(str(settings.default_delivery_base_amount)),
            per_box_delivery_increment=Decimal(str(settings.per_box_delivery_increment)),
            cod_free_delivery_threshold_kg=Decimal(str(settings.cod_free_delivery_threshold_kg)),
        )


@dataclass(frozen=True)
class ResolvedRoute:
    code: str
    kind: RouteKind

    @property
    def is_outbound(self) -> bool:
        return self.kind == RouteKind.OUTBOUND

    @property
    def is_inbound(self) -> bool:
        return self.kind == RouteKind.INBOUND

    @property
    def rate_key(self) -> str:
        if self.kind == RouteKind.OUTBOUND:
            return "PH_TO_UAE"
        if self.kind == RouteKind.INBOUND:
            return "UAE_TO_PH"
        return self.code


@dataclass(frozen=True)
class WeightResult:
    actual_weight: Decimal
    volumetric_weight: Decimal
    chargeable_weight: Decimal
    weight_basis: WeightBasis
    overridden: bool = False


@dataclass(frozen=True)
class ClassificationResult:
    shipment_classification: str | None
    box_classifications: tuple[str | None, ...]
    forced: bool = False
    is_flomic_or_personal: bool = False

    @property
    def known(self) -> ShipmentClassification | None:
        try:
            return ShipmentClassification(self.shipment_classification)
        except ValueError:
            return None


@dataclass(frozen=True)
class ShipmentSnapshot:
    """Read-only view of a verified shipment, as handed to the engine."""

    service_route: str | None
    actual_weight: Any
    volumetric_weight: Any
    weight_override: Any = None
    number_of_boxes: int = 1
    shipment_classification: str | None = None
    box_classifications: tuple[str | None, ...] = ()
    insured: bool = False
    declared_value: Any = None
    special_rate: Any = None
    sender_delivery_option: DeliveryOption | None = None
    stored_delivery_base_amount: Any = None


@dataclass(frozen=True)
class InvoiceOptions:
    tax_rate: Any = Decimal("0")
    has_delivery: bool | None = None
    delivery_base_amount: Any = None
    delivery_charge: Any = None
    pickup_base_amount: Any = None
    insurance_amount: Any = None
    shipping_amount: Any = None


@dataclass(frozen=True)
class ChargeBreakdown:
    rate: Decimal | None
    shipping: Decimal
    pickup: Decimal
    delivery: Decimal
    insurance: Decimal
    base_amount: Decimal
    delivery_base_amount: Decimal | None = None
    delivery_cod: Decimal | None = None
    delivery_tax_invoice: Decimal | None = None
    has_delivery: bool = False


@dataclass(frozen=True)
class TaxResult:
    base_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    total_amount_cod: Decimal | None = None
    total_amount_tax_invoice: Decimal | None = None
    value_inclusive: bool = False


@dataclass(frozen=True)
class InvoiceCalculation:
    route: ResolvedRoute
    weight: WeightResult
    classification: ClassificationResult
    charges: ChargeBreakdown
    tax: TaxResult
    number_of_boxes: int
    notes: list[str] = field(default_factory=list)

    def invoice_fields(self) -> dict[str, Any]:
        return {
            "service_route": self.route.code,
            "amount": self.charges.shipping,
            "pickup_charge": self.charges.pickup,
            "delivery_charge": self.charges.delivery,
            "insurance_charge": self.charges.insurance,
            "delivery_base_amount": self.charges.delivery_base_amount,
            "base_amount": self.tax.base_amount,
            "tax_rate": self.tax.tax_rate,
            "tax_amount": self.tax.tax_amount,
            "total_amount": self.tax.total_amount,
            "total_amount_cod": self.tax.total_amount_cod,
            "total_amount_tax_invoice": self.tax.total_amount_tax_invoice,
            "weight_kg": self.weight.chargeable_weight,
            "number_of_boxes": self.number_of_boxes,
        }


class RateLookup(Protocol):
    def rate_for(self, route_key: str, weight: Decimal) -> Decimal | None: ...
