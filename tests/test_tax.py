from decimal import Decimal

import pytest

from app.core.errors import ValidationError
from app.services.engine.money import round_money
from app.services.engine.routing import resolve_classification, resolve_route
from app.services.engine.tax import calculate_totals, extract_inclusive_tax, resolve_tax_rate
from app.services.engine.types import ChargeBreakdown, EngineConfig

CONFIG = EngineConfig()


def _breakdown(shipping, pickup="0", delivery="0", insurance="0", delivery_cod=None, delivery_ti=None):
    values = [Decimal(v) for v in (shipping, pickup, delivery, insurance)]
    return ChargeBreakdown(
        rate=None,
        shipping=values[0],
        pickup=values[1],
        delivery=values[2],
        insurance=values[3],
        base_amount=round_money(sum(values)),
        delivery_cod=Decimal(delivery_cod) if delivery_cod is not None else None,
        delivery_tax_invoice=Decimal(delivery_ti) if delivery_ti is not None else None,
    )


def test_inbound_flomic_extracts_inclusive_tax():
    route = resolve_route("UAE_TO_PH")
    classification = resolve_classification(route, "FLOMIC")
    result = calculate_totals(route, classification, _breakdown("105.00"), Decimal("0"), CONFIG)
    assert result.base_amount == Decimal("100.00")
    assert result.tax_amount == Decimal("5.00")
    assert result.total_amount == Decimal("105.00")
    assert result.tax_rate == Decimal("5")
    assert result.value_inclusive is True


@pytest.mark.parametrize("gross", ["0.01", "1.00", "10.01", "99.99", "123.45", "1000.00", "7777.77"])
def test_inclusive_subtotal_round_trips_within_a_cent(gross):
    subtotal, _ = extract_inclusive_tax(Decimal(gross), CONFIG)
    assert abs(subtotal * Decimal("1.05") - Decimal(gross)) <= Decimal("0.01")


def test_inbound_commercial_has_no_tax():
    route = resolve_route("UAE_TO_PH")
    classification = resolve_classification(route, "COMMERCIAL")
    result = calculate_totals(route, classification, _breakdown("80", delivery="20"), Decimal("5"), CONFIG)
    assert result.tax_amount == Decimal("0.00")
    assert result.total_amount == Decimal("100.00")
    assert result.value_inclusive is False


@pytest.mark.parametrize("tax_rate", [Decimal("0"), Decimal("5")])
def test_outbound_total_mirrors_selected_dual_total(tax_rate):
    route = resolve_route("PH_TO_UAE")
    classification = resolve_classification(route, None)
    delivery = "30.00" if tax_rate else "20.00"
    charges = _breakdown("200", pickup="10", delivery=delivery, delivery_cod="20.00", delivery_ti="30.00")
    result = calculate_totals(route, classification, charges, tax_rate, CONFIG)

    assert result.total_amount_cod == Decimal("230.00")
    assert result.total_amount_tax_invoice == Decimal("31.50")
    assert result.total_amount in (result.total_amount_cod, result.total_amount_tax_invoice)
    if tax_rate:
        assert result.total_amount == result.total_amount_tax_invoice
        assert result.tax_amount == Decimal("1.50")
    else:
        assert result.total_amount == result.total_amount_cod
        assert result.tax_amount == Decimal("0.00")


def test_other_routes_total_equals_base():
    route = resolve_route("DOMESTIC")
    classification = resolve_classification(route, "GENERAL")
    result = calculate_totals(route, classification, _breakdown("42.10"), Decimal("5"), CONFIG)
    assert result.tax_amount == Decimal("0.00")
    assert result.total_amount == result.base_amount + result.tax_amount


def test_outbound_tax_rate_must_select_a_settlement_path():
    route = resolve_route("PH_TO_UAE")
    assert resolve_tax_rate(route, "5", CONFIG) == Decimal("5")
    assert resolve_tax_rate(route, None, CONFIG) == Decimal("0")
    with pytest.raises(ValidationError) as exc:
        resolve_tax_rate(route, "12", CONFIG)
    assert exc.value.rule == "outbound_tax_rate"


def test_other_routes_accept_any_requested_rate():
    assert resolve_tax_rate(resolve_route("UAE_TO_PH"), "12", CONFIG) == Decimal("12")
