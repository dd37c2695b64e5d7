from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from app.services.carrier_payloads import dimension_cm, invoice_payload, parse_address, shipment_payload


def _invoice(**overrides):
    values = dict(
        service_route="PH_TO_UAE",
        invoice_number="INV12345",
        awb_number="PHL000000000001",
        amount=Decimal("200.00"),
        delivery_charge=Decimal("30.00"),
        tax_amount=Decimal("1.50"),
        total_amount=Decimal("31.50"),
        weight_kg=Decimal("20.00"),
        issue_date=date(2026, 3, 1),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_parse_address_splits_parts():
    parsed = parse_address("Villa 4, Al Barsha, Dubai, UAE")
    assert parsed["line1"] == "Villa 4"
    assert parsed["line2"] == "Al Barsha"
    assert parsed["city"] == "Dubai"
    assert parse_address(None)["city"] == "Dubai"


def test_dimension_from_volume_then_boxes():
    assert round(dimension_cm(SimpleNamespace(volume_cbm=Decimal("0.125"), total_vm=None, boxes=[])), 2) == 50.0
    box = {"length": "40", "width": "30", "height": "60"}
    assert dimension_cm(SimpleNamespace(volume_cbm=None, total_vm=None, boxes=[box])) == 60.0
    assert dimension_cm(SimpleNamespace(volume_cbm=None, total_vm=None, boxes=[])) == 10.0


def test_outbound_invoice_reports_delivery_leg_only():
    payload = invoice_payload(_invoice(), SimpleNamespace(company_name="ACME", contact_name="Jo"))
    assert payload["charges"][0]["amount"]["amount"] == 30.0
    assert payload["charges"][1] == {"type": "Tax", "amount": {"currencyCode": "AED", "amount": 1.5}}
    assert payload["invoice"]["totalAmountIncludingTax"] == 31.5
    assert payload["invoice"]["billingAccountNumber"] == "ACME"
    assert payload["invoice"]["invoiceDate"].startswith("2026-03-01T00:00:00")


def test_other_route_invoice_uses_shipping_and_total():
    invoice = _invoice(service_route="DOMESTIC", tax_amount=Decimal("0"), total_amount=Decimal("230.00"))
    payload = invoice_payload(invoice)
    assert [c["type"] for c in payload["charges"]] == ["Base Rate"]
    assert payload["charges"][0]["amount"]["amount"] == 200.0
    assert payload["invoice"]["totalAmountIncludingTax"] == 230.0
    assert payload["invoice"]["billingAccountNumber"] == "N/A"


def test_shipment_payload_splits_weight_across_boxes():
    request = SimpleNamespace(
        tracking_code="PHL000000000001",
        carrier_reference=None,
        customer_name="Sender",
        customer_phone="+63",
        origin_place="Manila, PH",
        receiver_name="Receiver",
        receiver_phone=None,
        destination_place="Dubai",
        shipment_type="Parcel",
    )
    verification = SimpleNamespace(
        chargeable_weight=Decimal("20"),
        number_of_boxes=2,
        boxes=[{"items": "Clothes", "quantity": 3}, {"items": None}],
        volume_cbm=None,
        total_vm=None,
        rate=Decimal("38"),
    )
    payload = shipment_payload(request, verification)

    assert payload["trackingNumber"] == "PHL000000000001"
    assert payload["details"]["numberOfPieces"] == 2
    assert payload["details"]["weight"]["value"] == 20.0
    assert [item["weight"]["value"] for item in payload["items"]] == [10.0, 10.0]
    assert payload["items"][1]["description"] == "Item 2"
    assert payload["receiver"]["line1"] == "Dubai"
