from decimal import Decimal

import pytest

from app.core.errors import ValidationError
from app.models.enums import RouteKind
from app.services.engine.routing import (
    is_flomic_or_personal,
    resolve_classification,
    resolve_route,
    validate_insurance,
)


@pytest.mark.parametrize(
    "raw, kind, code",
    [
        ("PH_TO_UAE", RouteKind.OUTBOUND, "PH_TO_UAE"),
        (" ph to uae ", RouteKind.OUTBOUND, "PH_TO_UAE"),
        ("PH-TO-UAE_EXPRESS", RouteKind.OUTBOUND, "PH_TO_UAE_EXPRESS"),
        ("PHL_ARE_AIR", RouteKind.OUTBOUND, "PHL_ARE_AIR"),
        ("UAE_TO_PH", RouteKind.INBOUND, "UAE_TO_PH"),
        ("uae_to_pinas_sea", RouteKind.INBOUND, "UAE_TO_PINAS_SEA"),
        ("UAE_TO_PHX", RouteKind.OTHER, "UAE_TO_PHX"),
        ("DOMESTIC", RouteKind.OTHER, "DOMESTIC"),
    ],
)
def test_resolve_route(raw, kind, code):
    route = resolve_route(raw)
    assert route.kind == kind
    assert route.code == code


def test_route_is_required():
    with pytest.raises(ValidationError) as exc:
        resolve_route("   ")
    assert exc.value.field == "service_route"


def test_rate_key_collapses_route_families():
    assert resolve_route("PH_TO_UAE_EXPRESS").rate_key == "PH_TO_UAE"
    assert resolve_route("UAE_TO_PINAS").rate_key == "UAE_TO_PH"
    assert resolve_route("DOMESTIC").rate_key == "DOMESTIC"


def test_outbound_forces_general_everywhere():
    route = resolve_route("PH_TO_UAE")
    result = resolve_classification(route, "commercial", ["FLOMIC", None, "personal"])
    assert result.shipment_classification == "GENERAL"
    assert result.box_classifications == ("GENERAL", "GENERAL", "GENERAL")
    assert result.forced is True


@pytest.mark.parametrize("route_code", ["PH_TO_UAE", "UAE_TO_PH"])
def test_classification_is_idempotent(route_code):
    route = resolve_route(route_code)
    first = resolve_classification(route, "FLOMIC", ["COMMERCIAL", "PERSONAL"])
    second = resolve_classification(route, first.shipment_classification, first.box_classifications)
    assert second.shipment_classification == first.shipment_classification
    assert second.box_classifications == first.box_classifications
    assert second.is_flomic_or_personal == first.is_flomic_or_personal


@pytest.mark.parametrize("value", [None, "", "GENERAL", "PERSONAL"])
def test_inbound_shipment_classification_must_be_commercial_or_flomic(value):
    with pytest.raises(ValidationError) as exc:
        resolve_classification(resolve_route("UAE_TO_PH"), value)
    assert exc.value.field == "shipment_classification"


def test_inbound_rejects_unknown_box_classification():
    with pytest.raises(ValidationError) as exc:
        resolve_classification(resolve_route("UAE_TO_PH"), "COMMERCIAL", ["COMMERCIAL", "GENERAL"])
    assert exc.value.field == "boxes[1].classification"


def test_inbound_box_marker_makes_shipment_flomic_or_personal():
    result = resolve_classification(resolve_route("UAE_TO_PH"), "COMMERCIAL", ["commercial", "personal"])
    assert result.shipment_classification == "COMMERCIAL"
    assert result.is_flomic_or_personal is True


def test_inbound_commercial_without_markers():
    result = resolve_classification(resolve_route("UAE_TO_PH"), " commercial ", [])
    assert result.shipment_classification == "COMMERCIAL"
    assert result.is_flomic_or_personal is False


def test_other_routes_accept_classification_verbatim():
    result = resolve_classification(resolve_route("DOMESTIC"), "  fragile ", ["x"])
    assert result.shipment_classification == "FRAGILE"
    assert result.box_classifications == ("X",)
    assert result.forced is False


def test_is_flomic_or_personal_checks_shipment_when_no_box_marker():
    assert is_flomic_or_personal("flomic", [None, "COMMERCIAL"]) is True
    assert is_flomic_or_personal("COMMERCIAL", []) is False


def test_insured_inbound_requires_declared_value():
    route = resolve_route("UAE_TO_PH")
    with pytest.raises(ValidationError) as exc:
        validate_insurance(route, True, None)
    assert exc.value.rule == "insured_requires_declared_value"
    with pytest.raises(ValidationError):
        validate_insurance(route, True, "0")
    assert validate_insurance(route, True, "250") == Decimal("250")


def test_insurance_not_checked_for_uninsured_or_outbound():
    assert validate_insurance(resolve_route("UAE_TO_PH"), False, None) is None
    assert validate_insurance(resolve_route("PH_TO_UAE"), True, None) is None
