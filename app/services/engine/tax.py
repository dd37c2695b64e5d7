from __future__ import annotations

from decimal import Decimal
from typing import Any

from app.core.errors import ValidationError
from app.services.engine.money import ZERO, percent_of, round_money, to_decimal
from app.services.engine.types import ChargeBreakdown, ClassificationResult, EngineConfig, ResolvedRoute, TaxResult


def resolve_tax_rate(route: ResolvedRoute, requested: Any, config: EngineConfig) -> Decimal:
    """Validate the requested settlement path.

    Only the outbound route lets the caller choose: 0 selects the
    cash-on-delivery invoice, the VAT rate selects the tax invoice. Elsewhere
    the rate follows from route and classification and the request is ignored.
    """
    rate = to_decimal(requested if requested is not None else ZERO, "tax_rate")
    if route.is_outbound and rate not in (ZERO, config.vat_rate):
        raise ValidationError(
            "tax_rate",
            f"tax_rate must be 0 (COD invoice) or {config.vat_rate} (tax invoice) for outbound routes",
            rule="outbound_tax_rate",
        )
    return rate


def extract_inclusive_tax(gross: Decimal, config: EngineConfig) -> tuple[Decimal, Decimal]:
    divisor = Decimal("1") + config.vat_rate / Decimal("100")
    subtotal = round_money(gross / divisor)
    return subtotal, percent_of(subtotal, config.vat_rate)


def calculate_totals(
    route: ResolvedRoute,
    classification: ClassificationResult,
    charges: ChargeBreakdown,
    tax_rate: Decimal,
    config: EngineConfig | None = None,
) -> TaxResult:
    config = config or EngineConfig()

    if route.is_inbound and classification.is_flomic_or_personal:
        # Quoted amounts already include VAT; split it out and keep the quoted total.
        subtotal, tax = extract_inclusive_tax(charges.base_amount, config)
        return TaxResult(
            base_amount=subtotal,
            tax_rate=config.vat_rate,
            tax_amount=tax,
            total_amount=charges.base_amount,
            value_inclusive=True,
        )

    if route.is_outbound:
        delivery_ti = charges.delivery_tax_invoice or round_money(ZERO)
        delivery_cod = charges.delivery_cod or round_money(ZERO)
        tax_invoice_tax = percent_of(delivery_ti, config.vat_rate)

        total_cod = round_money(charges.shipping + charges.pickup + delivery_cod)
        # The tax invoice covers the delivery leg only; shipping is settled on the COD document.
        total_tax_invoice = round_money(delivery_ti + tax_invoice_tax)

        is_tax_invoice = tax_rate == config.vat_rate
        return TaxResult(
            base_amount=charges.base_amount,
            tax_rate=tax_rate,
            tax_amount=tax_invoice_tax if is_tax_invoice else round_money(ZERO),
            total_amount=total_tax_invoice if is_tax_invoice else total_cod,
            total_amount_cod=total_cod,
            total_amount_tax_invoice=total_tax_invoice,
        )

    return TaxResult(
        base_amount=charges.base_amount,
        tax_rate=round_money(ZERO),
        tax_amount=round_money(ZERO),
        total_amount=charges.base_amount,
    )
