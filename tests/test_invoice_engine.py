from decimal import Decimal

import pytest

from app.core.errors import ValidationError
from app.models.enums import DeliveryOption, WeightBasis
from app.services.engine.calculator import calculate_invoice
from app.services.engine.types import EngineConfig, InvoiceOptions, ShipmentSnapshot
from app.services.rates import DEFAULT_BRACKETS, RateTable


def _outbound(**kwargs):
    values = dict(service_route="PH_TO_UAE", actual_weight="20", volumetric_weight="12", number_of_boxes=1)
    values.update(kwargs)
    return ShipmentSnapshot(**values)


def test_outbound_tax_invoice_end_to_end():
    snapshot = _outbound(number_of_boxes=3, special_rate=Decimal("10"), shipment_classification="FLOMIC")
    result = calculate_invoice(snapshot, InvoiceOptions(tax_rate=Decimal("5")))

    assert result.weight.chargeable_weight == Decimal("20")
    assert result.weight.weight_basis == WeightBasis.ACTUAL
    assert result.classification.shipment_classification == "GENERAL"
    assert result.charges.shipping == Decimal("200.00")
    assert result.charges.delivery == Decimal("30.00")
    assert result.tax.base_amount == Decimal("230.00")
    assert result.tax.tax_amount == Decimal("1.50")
    assert result.tax.total_amount_tax_invoice == Decimal("31.50")
    assert result.tax.total_amount_cod == Decimal("200.00")
    assert result.tax.total_amount == result.tax.total_amount_tax_invoice
    assert "classification forced to GENERAL for outbound route" in result.notes


def test_outbound_cod_end_to_end():
    snapshot = _outbound(actual_weight="10", volumetric_weight="2", special_rate=Decimal("39"))
    result = calculate_invoice(snapshot, InvoiceOptions(tax_rate=Decimal("0")))

    assert result.charges.shipping == Decimal("390.00")
    assert result.charges.delivery == Decimal("20.00")
    assert result.tax.tax_amount == Decimal("0.00")
    assert result.tax.total_amount == result.tax.total_amount_cod == Decimal("410.00")


def test_cod_free_delivery_scenario_with_thirty_kg_threshold():
    config = EngineConfig(cod_free_delivery_threshold_kg=Decimal("30"))
    options = InvoiceOptions(tax_rate=Decimal("0"), shipping_amount=Decimal("100"))

    light = calculate_invoice(_outbound(actual_weight="20"), options, config=config)
    heavy = calculate_invoice(_outbound(actual_weight="40"), options, config=config)

    assert light.charges.delivery == Decimal("20.00")
    assert heavy.charges.delivery == Decimal("0.00")


def test_outbound_sender_pickup_without_amount_fails():
    snapshot = _outbound(special_rate=Decimal("10"), sender_delivery_option=DeliveryOption.PICKUP)
    with pytest.raises(ValidationError) as exc:
        calculate_invoice(snapshot, InvoiceOptions())
    assert exc.value.field == "pickup_base_amount"


def test_inbound_flomic_scenario():
    snapshot = ShipmentSnapshot(
        service_route="UAE_TO_PH",
        actual_weight="5",
        volumetric_weight="5",
        shipment_classification="FLOMIC",
    )
    result = calculate_invoice(snapshot, InvoiceOptions(shipping_amount=Decimal("105.00")))
    assert result.tax.base_amount == Decimal("100.00")
    assert result.tax.tax_amount == Decimal("5.00")
    assert result.tax.total_amount == Decimal("105.00")
    assert result.tax.value_inclusive is True


def test_rate_table_lookup_uses_chargeable_weight():
    table = RateTable(DEFAULT_BRACKETS)
    snapshot = _outbound(actual_weight="3", volumetric_weight="16")
    result = calculate_invoice(snapshot, InvoiceOptions(tax_rate=Decimal("0")), rate_table=table)
    expected = table.rate_for("PH_TO_UAE", Decimal("16"))
    assert result.charges.rate == expected
    assert result.charges.shipping == (Decimal("16") * expected).quantize(Decimal("0.01"))


def test_manual_override_is_billed():
    snapshot = _outbound(weight_override="25", special_rate=Decimal("10"))
    result = calculate_invoice(snapshot, InvoiceOptions(tax_rate=Decimal("0")))
    assert result.weight.chargeable_weight == Decimal("25")
    assert result.charges.shipping == Decimal("250.00")
    assert "chargeable weight taken from manual override" in result.notes


def test_missing_rate_is_a_validation_error():
    with pytest.raises(ValidationError) as exc:
        calculate_invoice(_outbound(), InvoiceOptions())
    assert exc.value.rule == "rate_required"


def test_insured_inbound_without_declared_value_fails():
    snapshot = ShipmentSnapshot(
        service_route="UAE_TO_PH",
        actual_weight="5",
        volumetric_weight="5",
        shipment_classification="COMMERCIAL",
        insured=True,
    )
    with pytest.raises(ValidationError) as exc:
        calculate_invoice(snapshot, InvoiceOptions(shipping_amount=Decimal("50")))
    assert exc.value.field == "declared_value"


def test_identical_inputs_give_identical_amounts():
    snapshot = _outbound(number_of_boxes=2, special_rate=Decimal("12.5"))
    options = InvoiceOptions(tax_rate=Decimal("5"), pickup_base_amount=Decimal("15"))
    assert calculate_invoice(snapshot, options).invoice_fields() == calculate_invoice(snapshot, options).invoice_fields()


def test_cod_delivery_is_free_at_twenty_kg_with_default_threshold():
    options = InvoiceOptions(tax_rate=Decimal("0"), shipping_amount=Decimal("100"))
    result = calculate_invoice(_outbound(actual_weight="20"), options)

    assert EngineConfig().cod_free_delivery_threshold_kg == Decimal("15")
    assert result.charges.delivery == Decimal("0.00")
    assert result.tax.total_amount_cod == Decimal("100.00")


@pytest.mark.parametrize("boxes", [0, -2])
def test_box_count_below_one_is_rejected(boxes):
    with pytest.raises(ValidationError) as exc:
        calculate_invoice(_outbound(number_of_boxes=boxes, special_rate=Decimal("10")), InvoiceOptions())
    assert exc.value.field == "number_of_boxes"


def test_missing_box_count_defaults_to_one():
    result = calculate_invoice(_outbound(number_of_boxes=None, special_rate=Decimal("10")), InvoiceOptions())
    assert result.number_of_boxes == 1
