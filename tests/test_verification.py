import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import Settings
from app.core.errors import CollaboratorError, ConflictError, NotFoundError, ValidationError
from app.models.enums import CarrierOperation, InvoiceRequestStatus, WeightBasis
from app.models.invoice import Invoice
from app.models.invoice_request import InvoiceRequest, ShipmentVerification
from app.services.carrier_sync import CarrierSyncService
from app.services.rates import DEFAULT_BRACKETS, RateTable
from app.services.verification import VerificationService, normalize_box


class FakeSession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def add(self, obj):
        return None

    def expunge(self, obj):
        return None

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


class FakeRequestRepo:
    def __init__(self, *requests, fail_reference=False):
        self.requests = {r.id: r for r in requests}
        self.fail_reference = fail_reference
        self.references = {}

    async def get_for_update(self, request_id):
        return self.requests.get(request_id)

    async def set_carrier_reference(self, request_id, reference):
        if self.fail_reference:
            raise OperationalError("UPDATE invoice_requests", {}, Exception("connection lost"))
        self.references[request_id] = reference


class FakeRateProvider:
    async def load(self):
        return RateTable(DEFAULT_BRACKETS)


class FakeCarrier:
    def __init__(self, fail=False):
        self.fail = fail
        self.payloads = []

    async def create_shipment(self, payload):
        self.payloads.append(payload)
        if self.fail:
            raise CollaboratorError("carrier", "create_shipment failed with HTTP 503")
        return {"data": {"uhawb": "UH-9"}}


class FakeSyncRepo:
    def __init__(self):
        self.created = []

    async def create(self, task):
        self.created.append(task)
        return task


class FakeCache:
    def __init__(self):
        self.invalidated = []

    async def invalidate(self, *namespaces):
        self.invalidated.extend(namespaces)


def _request(route="PH_TO_UAE", insured=False, **verification):
    request = InvoiceRequest(
        id=uuid.uuid4(),
        invoice_number="INV00002",
        tracking_code="PHL000000000002",
        service_route=route,
        customer_name="Sender",
        receiver_name="Receiver",
        origin_place="Manila",
        destination_place="Dubai",
        shipment_type="Parcel",
        created_by="ops",
        status=InvoiceRequestStatus.DRAFT,
        insured=insured,
    )
    request.verification = ShipmentVerification(request_id=request.id, number_of_boxes=1, boxes=[], **verification)
    return request


def _service(request, carrier=None):
    session = FakeSession()
    carrier = carrier or FakeCarrier()
    service = VerificationService(session, Settings(), carrier=carrier, cache=FakeCache())
    service.requests = FakeRequestRepo(request)
    service.rate_provider = FakeRateProvider()
    service.sync = CarrierSyncService(session, client=carrier, repo=FakeSyncRepo())
    return service, session


@pytest.mark.asyncio
async def test_outbound_verification_stores_resolved_values_and_syncs():
    request = _request()
    service, session = _service(request)

    outcome = await service.update(
        request.id,
        {
            "actual_weight": Decimal("12"),
            "volumetric_weight": Decimal("18"),
            "shipment_classification": "COMMERCIAL",
            "boxes": [
                {"items": "Shoes", "length": Decimal("40"), "classification": "COMMERCIAL"},
                {"items": "Bags", "quantity": 2},
            ],
        },
        "checker",
    )

    verification = outcome.request.verification
    assert verification.chargeable_weight == Decimal("18")
    assert verification.weight_basis == WeightBasis.VOLUMETRIC
    assert verification.total_kg is None
    assert verification.shipment_classification == "GENERAL"
    assert [box["classification"] for box in verification.boxes] == ["GENERAL", "GENERAL"]
    assert verification.boxes[0]["length"] == "40"
    assert verification.number_of_boxes == 2
    assert verification.rate_bracket == "16-29 KG"
    assert verification.verified_by == "checker"
    assert request.status == InvoiceRequestStatus.VERIFIED
    assert outcome.carrier_synced is True
    assert request.carrier_reference == "UH-9"
    assert service.requests.references == {request.id: "UH-9"}
    assert session.commits == 1
    assert service.cache.invalidated == ["invoice_requests"]


@pytest.mark.asyncio
async def test_manual_total_kg_overrides_chargeable_weight():
    request = _request()
    service, _ = _service(request)

    await service.update(
        request.id,
        {"actual_weight": Decimal("5"), "volumetric_weight": Decimal("3"), "total_kg": Decimal("7.5")},
        "checker",
    )

    verification = request.verification
    assert verification.chargeable_weight == Decimal("7.5")
    assert verification.total_kg == Decimal("7.5")
    assert verification.weight_basis == WeightBasis.ACTUAL


@pytest.mark.asyncio
async def test_stored_insured_flag_cannot_be_bypassed():
    request = _request(route="UAE_TO_PH", insured=True)
    service, session = _service(request)

    with pytest.raises(ValidationError) as exc:
        await service.update(
            request.id,
            {
                "actual_weight": Decimal("5"),
                "volumetric_weight": Decimal("5"),
                "shipment_classification": "COMMERCIAL",
                "insured": False,
            },
            "checker",
        )
    assert exc.value.field == "declared_value"
    assert session.rollbacks == 1 and session.commits == 0
    assert request.status == InvoiceRequestStatus.DRAFT


@pytest.mark.asyncio
async def test_inbound_requires_valid_classification():
    request = _request(route="UAE_TO_PH")
    service, _ = _service(request)
    with pytest.raises(ValidationError) as exc:
        await service.update(request.id, {"actual_weight": 1, "volumetric_weight": 1}, "checker")
    assert exc.value.field == "shipment_classification"


@pytest.mark.asyncio
async def test_stored_weights_are_reused_on_partial_update():
    request = _request(
        route="UAE_TO_PH",
        actual_weight=Decimal("9"),
        volumetric_weight=Decimal("4"),
        shipment_classification="COMMERCIAL",
    )
    service, _ = _service(request)

    await service.update(request.id, {"declared_value": Decimal("100")}, "checker")

    assert request.verification.chargeable_weight == Decimal("9")
    assert request.verification.declared_value == Decimal("100")
    assert request.verification.rate_bracket == "1-15 KG"


@pytest.mark.asyncio
async def test_verification_is_read_only_once_invoiced():
    request = _request()
    request.invoice = Invoice(
        id=uuid.uuid4(),
        invoice_number="INV00002",
        awb_number="PHL000000000002",
        request_id=request.id,
        service_route="PH_TO_UAE",
        amount=Decimal("1"),
        base_amount=Decimal("1"),
        total_amount=Decimal("1"),
        issue_date=date(2026, 1, 1),
        due_date=date(2026, 1, 31),
        created_by="ops",
    )
    service, _ = _service(request)
    with pytest.raises(ConflictError):
        await service.update(request.id, {"actual_weight": 1, "volumetric_weight": 1}, "checker")


@pytest.mark.asyncio
async def test_unknown_request_is_not_found():
    service, _ = _service(_request())
    with pytest.raises(NotFoundError):
        await service.update(uuid.uuid4(), {}, "checker")


@pytest.mark.asyncio
async def test_carrier_failure_is_queued_not_raised():
    request = _request()
    carrier = FakeCarrier(fail=True)
    service, session = _service(request, carrier)

    outcome = await service.update(request.id, {"actual_weight": 2, "volumetric_weight": 1}, "checker")

    assert outcome.carrier_synced is False
    assert request.status == InvoiceRequestStatus.VERIFIED
    task = service.sync.repo.created[0]
    assert task.operation == CarrierOperation.CREATE_SHIPMENT
    assert task.request_id == request.id
    assert task.payload["trackingNumber"] == "PHL000000000002"


def test_normalize_box_rejects_negative_dimensions():
    with pytest.raises(ValidationError) as exc:
        normalize_box(1, {"width": "-3"}, None)
    assert exc.value.field == "boxes[1].width"


@pytest.mark.asyncio
async def test_carrier_reference_save_failure_keeps_verification():
    request = _request()
    service, session = _service(request)
    service.requests.fail_reference = True

    outcome = await service.update(request.id, {"actual_weight": 2, "volumetric_weight": 1}, "checker")

    assert outcome.carrier_synced is True
    assert request.status == InvoiceRequestStatus.VERIFIED
    assert request.carrier_reference is None
    assert session.commits == 1 and session.rollbacks == 1
