from __future__ import annotations

from decimal import Decimal
from typing import Any

from app.core.errors import ValidationError
from app.models.enums import DeliveryOption
from app.services.engine.money import ZERO, round_money, to_decimal
from app.services.engine.types import ChargeBreakdown, EngineConfig, InvoiceOptions, ResolvedRoute


def select_rate(special_rate: Any, route: ResolvedRoute, weight: Decimal, rate_table) -> Decimal | None:
    special = to_decimal(special_rate, "rate", required=False)
    if special is not None and special > 0:
        return special
    if rate_table is None:
        return None
    return rate_table.rate_for(route.rate_key, weight)


def shipping_charge(weight: Decimal, rate: Decimal | None, declared_amount: Any = None) -> Decimal:
    declared = to_decimal(declared_amount, "shipping_amount", required=False)
    if declared is not None:
        return round_money(declared)
    if rate is None:
        raise ValidationError("rate", "no rate available for this route and weight", rule="rate_required")
    return round_money(weight * rate)


def tax_invoice_delivery(base: Decimal, boxes: int, config: EngineConfig) -> Decimal:
    extra_boxes = max(0, boxes - 1)
    return round_money(base + extra_boxes * config.per_box_delivery_increment)


def cod_delivery(base: Decimal, weight: Decimal, config: EngineConfig) -> Decimal:
    if weight >= config.cod_free_delivery_threshold_kg:
        return round_money(ZERO)
    return round_money(base)


def outbound_delivery_base(options: InvoiceOptions, stored_base: Any, config: EngineConfig) -> Decimal:
    for value, field in ((options.delivery_base_amount, "delivery_base_amount"), (stored_base, "delivery_base_amount")):
        parsed = to_decimal(value, field, required=False)
        if parsed is not None and parsed > 0:
            return parsed
    return config.default_delivery_base_amount


def pickup_charge(
    route: ResolvedRoute,
    pickup_base_amount: Any,
    sender_delivery_option: DeliveryOption | None,
) -> Decimal:
    pickup = to_decimal(pickup_base_amount, "pickup_base_amount", required=False)
    if route.is_outbound and sender_delivery_option == DeliveryOption.PICKUP and pickup is None:
        raise ValidationError(
            "pickup_base_amount",
            "pickup_base_amount is required for outbound shipments with sender pickup",
            rule="pickup_required",
        )
    return round_money(pickup or ZERO)


def insurance_charge(route: ResolvedRoute, insurance_amount: Any) -> Decimal:
    if route.is_outbound:
        return round_money(ZERO)
    # Only an explicit caller amount is billed; nothing is derived from declared value.
    amount = to_decimal(insurance_amount, "insurance_amount", required=False)
    return round_money(amount or ZERO)


def calculate_charges(
    route: ResolvedRoute,
    chargeable_weight: Decimal,
    number_of_boxes: int,
    rate: Decimal | None,
    options: InvoiceOptions,
    tax_rate: Decimal,
    *,
    sender_delivery_option: DeliveryOption | None = None,
    stored_delivery_base_amount: Any = None,
    config: EngineConfig | None = None,
) -> ChargeBreakdown:
    config = config or EngineConfig()
    if number_of_boxes < 1:
        raise ValidationError("number_of_boxes", "number_of_boxes must be at least 1", rule="min_boxes")

    shipping = shipping_charge(chargeable_weight, rate, options.shipping_amount)
    pickup = pickup_charge(route, options.pickup_base_amount, sender_delivery_option)
    insurance = insurance_charge(route, options.insurance_amount)

    delivery_base = None
    delivery_cod = None
    delivery_tax_invoice = None

    if route.is_outbound:
        has_delivery = True if options.has_delivery is None else bool(options.has_delivery)
        delivery_base = outbound_delivery_base(options, stored_delivery_base_amount, config)
        if has_delivery:
            delivery_tax_invoice = tax_invoice_delivery(delivery_base, number_of_boxes, config)
            delivery_cod = cod_delivery(delivery_base, chargeable_weight, config)
        else:
            delivery_tax_invoice = round_money(ZERO)
            delivery_cod = round_money(ZERO)
        delivery = delivery_tax_invoice if tax_rate > 0 else delivery_cod
    else:
        manual = to_decimal(options.delivery_charge, "delivery_charge", required=False)
        has_delivery = bool(options.has_delivery) or manual is not None
        delivery = round_money(manual) if has_delivery and manual is not None else round_money(ZERO)

    base_amount = round_money(shipping + pickup + delivery + insurance)

    return ChargeBreakdown(
        rate=rate,
        shipping=shipping,
        pickup=pickup,
        delivery=delivery,
        insurance=insurance,
        base_amount=base_amount,
        delivery_base_amount=round_money(delivery_base) if delivery_base is not None else None,
        delivery_cod=delivery_cod,
        delivery_tax_invoice=delivery_tax_invoice,
        has_delivery=has_delivery,
    )
