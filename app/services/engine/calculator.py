from __future__ import annotations

from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.services.engine.charges import calculate_charges, select_rate
from app.services.engine.routing import resolve_classification, resolve_route, validate_insurance
from app.services.engine.tax import calculate_totals, resolve_tax_rate
from app.services.engine.types import (
    EngineConfig,
    InvoiceCalculation,
    InvoiceOptions,
    RateLookup,
    ShipmentSnapshot,
)
from app.services.engine.weights import resolve_weight

logger = get_logger(__name__)


def calculate_invoice(
    snapshot: ShipmentSnapshot,
    options: InvoiceOptions | None = None,
    rate_table: RateLookup | None = None,
    config: EngineConfig | None = None,
) -> InvoiceCalculation:
    """Price a verified shipment.

    Used by invoice generation, the quote endpoint and the CSV import so all
    three produce identical amounts for identical inputs. Raises
    ``ValidationError`` naming the offending field; never touches storage.
    """
    options = options or InvoiceOptions()
    config = config or EngineConfig()

    route = resolve_route(snapshot.service_route)
    weight = resolve_weight(snapshot.actual_weight, snapshot.volumetric_weight, snapshot.weight_override)
    classification = resolve_classification(route, snapshot.shipment_classification, snapshot.box_classifications)
    validate_insurance(route, snapshot.insured, snapshot.declared_value)
    tax_rate = resolve_tax_rate(route, options.tax_rate, config)

    boxes = 1 if snapshot.number_of_boxes is None else int(snapshot.number_of_boxes)
    if boxes < 1:
        raise ValidationError("number_of_boxes", "number_of_boxes must be at least 1", rule="min_boxes")
    rate = None
    if options.shipping_amount is None:
        rate = select_rate(snapshot.special_rate, route, weight.chargeable_weight, rate_table)

    charges = calculate_charges(
        route,
        weight.chargeable_weight,
        boxes,
        rate,
        options,
        tax_rate,
        sender_delivery_option=snapshot.sender_delivery_option,
        stored_delivery_base_amount=snapshot.stored_delivery_base_amount,
        config=config,
    )
    tax = calculate_totals(route, classification, charges, tax_rate, config)

    notes = []
    if classification.forced:
        notes.append("classification forced to GENERAL for outbound route")
    if weight.overridden:
        notes.append("chargeable weight taken from manual override")
    if tax.value_inclusive:
        notes.append("amount treated as VAT-inclusive")

    logger.debug(
        "invoice_calculated",
        route=route.code,
        chargeable_weight=str(weight.chargeable_weight),
        base_amount=str(tax.base_amount),
        total_amount=str(tax.total_amount),
    )
    return InvoiceCalculation(
        route=route,
        weight=weight,
        classification=classification,
        charges=charges,
        tax=tax,
        number_of_boxes=boxes,
        notes=notes,
    )
