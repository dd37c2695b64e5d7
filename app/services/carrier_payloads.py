from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from app.services.engine.routing import resolve_route

DEFAULT_DIMENSION_CM = 10.0
MIN_WEIGHT_KG = 0.1
DEFAULT_HS_CODE = "8504.40"


def _num(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    return float(Decimal(str(value)))


def parse_address(address: str | None) -> dict[str, str]:
    if not address or address == "N/A":
        return {"line1": "", "line2": "", "line3": "", "city": "Dubai", "state": "", "postCode": "", "countryCode": "AE"}
    parts = [p.strip() for p in address.split(",")]
    return {
        "line1": parts[0],
        "line2": parts[1] if len(parts) > 1 else "",
        "line3": parts[2] if len(parts) > 2 else "",
        "city": parts[-2] if len(parts) > 1 and parts[-2] else "Dubai",
        "state": "",
        "postCode": "",
        "countryCode": "AE",
    }


def dimension_cm(verification) -> float:
    """Edge length of a cube with the shipment's volume, or the largest side of the first box."""
    for volume in (getattr(verification, "volume_cbm", None), getattr(verification, "total_vm", None)):
        if volume is not None and _num(volume) > 0:
            return max((_num(volume) * 1_000_000) ** (1 / 3), 1.0)
    boxes = getattr(verification, "boxes", None) or []
    if boxes:
        first = boxes[0]
        sides = [_num(first.get(k)) for k in ("length", "width", "height") if first.get(k) is not None]
        if len(sides) == 3:
            return max(*sides, 1.0)
    return DEFAULT_DIMENSION_CM


def _party(name: str | None, phone: str | None, address: str | None) -> dict[str, Any]:
    parsed = parse_address(address)
    return {
        "name": name or "N/A",
        "email": "",
        "phone": phone or "",
        **parsed,
        "line1": parsed["line1"] or address or "N/A",
    }


def shipment_payload(request, verification, currency: str = "AED") -> dict[str, Any]:
    weight = max(_num(getattr(verification, "chargeable_weight", None), MIN_WEIGHT_KG), MIN_WEIGHT_KG)
    boxes = getattr(verification, "boxes", None) or []
    pieces = getattr(verification, "number_of_boxes", None) or max(len(boxes), 1)
    edge = round(dimension_cm(verification), 2)
    dimensions = {"length": edge, "width": edge, "height": edge, "unit": "CM"}

    if boxes:
        per_box = max(weight / pieces, MIN_WEIGHT_KG)
        items = [
            {
                "description": box.get("items") or f"Item {index + 1}",
                "countryOfOrigin": "AE",
                "quantity": int(box.get("quantity") or 1),
                "hsCode": DEFAULT_HS_CODE,
                "weight": {"unit": "KG", "value": round(per_box, 2)},
                "dimensions": dimensions,
            }
            for index, box in enumerate(boxes)
        ]
    else:
        items = [
            {
                "description": "General Goods",
                "countryOfOrigin": "AE",
                "quantity": 1,
                "hsCode": DEFAULT_HS_CODE,
                "weight": {"unit": "KG", "value": weight},
                "dimensions": dimensions,
            }
        ]

    return {
        "trackingNumber": request.tracking_code,
        "uhawb": request.carrier_reference or "",
        "sender": _party(request.customer_name, request.customer_phone, request.origin_place),
        "receiver": _party(request.receiver_name, request.receiver_phone, request.destination_place),
        "details": {
            "weight": {"unit": "KG", "value": weight},
            "declaredWeight": {"unit": "KG", "value": weight},
            "deliveryCharges": {"currencyCode": currency, "amount": _num(getattr(verification, "rate", None))},
            "numberOfPieces": pieces,
            "pickupDate": datetime.now(timezone.utc).isoformat(),
            "deliveryStatus": "In Transit",
            "shippingType": "INT",
            "productType": "Parcel",
            "descriptionOfGoods": request.shipment_type or "General Goods",
            "dimensions": dimensions,
        },
        "items": items,
    }


def invoice_payload(invoice, client=None, currency: str = "AED") -> dict[str, Any]:
    """Invoice issuance payload.

    Outbound invoices report only the delivery leg and its tax; the shipping
    charge is settled on the COD document and never reaches the carrier.
    """
    outbound = resolve_route(invoice.service_route).is_outbound
    tax_amount = _num(invoice.tax_amount)
    if outbound:
        base_charge = _num(invoice.delivery_charge)
        total_including_tax = round(base_charge + tax_amount, 2)
    else:
        base_charge = _num(invoice.amount)
        total_including_tax = _num(invoice.total_amount)

    issue_date = invoice.issue_date or date.today()
    company = getattr(client, "company_name", None) or "N/A"
    contact = getattr(client, "contact_name", None) or company

    charges = [{"type": "Base Rate", "amount": {"currencyCode": currency, "amount": base_charge}}]
    if tax_amount > 0:
        charges.append({"type": "Tax", "amount": {"currencyCode": currency, "amount": tax_amount}})

    return {
        "trackingNumber": invoice.awb_number or invoice.invoice_number,
        "chargeableWeight": {"unit": "KG", "value": _num(invoice.weight_kg, MIN_WEIGHT_KG) or MIN_WEIGHT_KG},
        "charges": charges,
        "invoice": {
            "invoiceNumber": invoice.invoice_number,
            "invoiceDate": datetime.combine(issue_date, datetime.min.time(), tzinfo=timezone.utc).isoformat(),
            "billingAccountNumber": company,
            "billingAccountName": contact,
            "totalDiscountAmount": 0,
            "taxAmount": tax_amount,
            "totalAmountIncludingTax": total_including_tax,
            "currencyCode": currency,
        },
    }
