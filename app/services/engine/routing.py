from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from app.core.errors import ValidationError
from app.models.enums import RouteKind, ShipmentClassification
from app.services.engine.money import to_decimal
from app.services.engine.types import ClassificationResult, ResolvedRoute

OUTBOUND_CODES = ("PH_TO_UAE",)
OUTBOUND_ALIASES = {"PHL_ARE_AIR"}
INBOUND_CODES = ("UAE_TO_PH", "UAE_TO_PINAS")

INBOUND_SHIPMENT_CLASSES = {ShipmentClassification.COMMERCIAL.value, ShipmentClassification.FLOMIC.value}
INBOUND_BOX_CLASSES = INBOUND_SHIPMENT_CLASSES | {ShipmentClassification.PERSONAL.value}
FLOMIC_MARKERS = {ShipmentClassification.FLOMIC.value, ShipmentClassification.PERSONAL.value}


def normalize_route_code(raw: str | None) -> str:
    if raw is None:
        return ""
    return re.sub(r"[\s-]+", "_", str(raw).strip().upper())


def _matches(code: str, families: Iterable[str]) -> bool:
    return any(code == family or code.startswith(f"{family}_") for family in families)


def resolve_route(raw: str | None) -> ResolvedRoute:
    code = normalize_route_code(raw)
    if not code:
        raise ValidationError("service_route", "service_route is required", rule="required")
    if _matches(code, OUTBOUND_CODES) or code in OUTBOUND_ALIASES:
        return ResolvedRoute(code=code, kind=RouteKind.OUTBOUND)
    if _matches(code, INBOUND_CODES):
        return ResolvedRoute(code=code, kind=RouteKind.INBOUND)
    return ResolvedRoute(code=code, kind=RouteKind.OTHER)


def normalize_classification(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip().upper()
    return text or None


def resolve_classification(
    route: ResolvedRoute,
    shipment_value: Any,
    box_values: Iterable[Any] = (),
) -> ClassificationResult:
    boxes = tuple(normalize_classification(v) for v in box_values)

    if route.is_outbound:
        # Outbound cargo is always billed as GENERAL, whatever the caller sent.
        general = ShipmentClassification.GENERAL.value
        return ClassificationResult(
            shipment_classification=general,
            box_classifications=tuple(general for _ in boxes),
            forced=True,
        )

    shipment = normalize_classification(shipment_value)

    if route.is_inbound:
        if shipment is None:
            raise ValidationError(
                "shipment_classification",
                "shipment_classification is required for inbound routes (COMMERCIAL or FLOMIC)",
                rule="required",
            )
        if shipment not in INBOUND_SHIPMENT_CLASSES:
            raise ValidationError(
                "shipment_classification",
                f"shipment_classification must be COMMERCIAL or FLOMIC for inbound routes, got {shipment}",
                rule="inbound_classification",
            )
        for index, box in enumerate(boxes):
            if box is not None and box not in INBOUND_BOX_CLASSES:
                raise ValidationError(
                    f"boxes[{index}].classification",
                    f"box classification must be COMMERCIAL, FLOMIC or PERSONAL for inbound routes, got {box}",
                    rule="inbound_classification",
                )
        return ClassificationResult(
            shipment_classification=shipment,
            box_classifications=boxes,
            is_flomic_or_personal=is_flomic_or_personal(shipment, boxes),
        )

    return ClassificationResult(shipment_classification=shipment, box_classifications=boxes)


def is_flomic_or_personal(shipment_value: Any, box_values: Iterable[Any] = ()) -> bool:
    if any(normalize_classification(box) in FLOMIC_MARKERS for box in box_values):
        return True
    return normalize_classification(shipment_value) in FLOMIC_MARKERS


def validate_insurance(route: ResolvedRoute, insured: bool, declared_value: Any) -> Decimal | None:
    """Inbound insured shipments need a positive declared value.

    ``insured`` must come from the stored record so a verification payload
    cannot switch the check off.
    """
    declared = to_decimal(declared_value, "declared_value", required=False)
    if route.is_inbound and insured and (declared is None or declared <= 0):
        raise ValidationError(
            "declared_value",
            "declared_value must be greater than 0 for insured inbound shipments",
            rule="insured_requires_declared_value",
        )
    return declared
