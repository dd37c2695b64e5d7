import itertools
import uuid
from datetime import date
from decimal import Decimal

import pytest

from app.core.config import Settings
from app.core.errors import ValidationError
from app.models.client import Client
from app.models.delivery_assignment import DeliveryAssignment
from app.models.invoice import Invoice
from app.models.invoice_request import InvoiceRequest
from app.services.bulk_import import (
    BulkImportService,
    map_columns,
    normalize_column_name,
    parse_boxes,
    parse_date,
    read_csv,
)
from app.services.identifiers import IdentifierGenerator


class FakeSavepoint:
    def __init__(self, session):
        self.session = session

    async def __aenter__(self):
        self.session.savepoints += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self) -> None:
        self.added = []
        self.savepoints = 0
        self.commits = 0
        self.expunged = []

    def begin_nested(self):
        return FakeSavepoint(self)

    async def scalar(self, statement):
        return None

    def add(self, obj):
        self.added.append(obj)

    def expunge(self, obj):
        self.expunged.append(obj)

    async def flush(self):
        for obj in self.added:
            if getattr(obj, "id", None) is None:
                obj.id = uuid.uuid4()

    async def commit(self):
        self.commits += 1

    def of_type(self, model):
        return [obj for obj in self.added if isinstance(obj, model)]


class FakeIdentifierRepo:
    def __init__(self):
        self.reserved = set()

    async def reserve(self, kind, value):
        if (kind, value) in self.reserved:
            return False
        self.reserved.add((kind, value))
        return True


class FakeCache:
    def __init__(self):
        self.invalidated = []

    async def invalidate(self, *namespaces):
        self.invalidated.extend(namespaces)


class FakeInvoicing:
    def __init__(self):
        self.cache = FakeCache()
        self.issued = []

    async def issue_with_carrier(self, invoice):
        self.issued.append(invoice.invoice_number)
        return True


def _service():
    session = FakeSession()
    settings = Settings()
    invoicing = FakeInvoicing()
    service = BulkImportService(session, settings, invoicing=invoicing)
    counter = itertools.count(1)
    service.identifiers = IdentifierGenerator(
        None,
        settings,
        token_factory=lambda length: str(next(counter)).rjust(length, "0"),
        repo=FakeIdentifierRepo(),
    )
    return service, session


CSV = (
    "Sender Name,Amount (AED),Weight (KG),Box No.,Tax Rate,Receiver,Invoice Date,AWB\n"
    "ACME Trading,100,20,3,5,Ali,2026-03-01,\n"
    "ACME Trading,abc,5,1,0,Bo,,\n"
    "Beta Foods,50,,2 boxes,0,Cy,,XYZ\n"
).encode()


def test_normalize_column_name_strips_noise():
    assert normalize_column_name("\ufeff Sender  Name ") == "sender_name"
    assert normalize_column_name("Amount (AED)") == "amount_aed"
    assert normalize_column_name(None) == ""


def test_map_columns_matches_aliases():
    mapping = map_columns(["Company", "Total", "KG", "Box#", "AWB Number", "Remarks"])
    assert mapping == {
        "sender_name": "Company",
        "amount": "Total",
        "weight": "KG",
        "number_of_boxes": "Box#",
        "tracking_code": "AWB Number",
        "notes": "Remarks",
    }


def test_parse_boxes_defaults_to_one():
    assert parse_boxes("") == 1
    assert parse_boxes(None) == 1
    assert parse_boxes("0") == 1
    assert parse_boxes("Box 4") == 4


def test_parse_date():
    assert parse_date("2026-03-01", "issue_date") == date(2026, 3, 1)
    assert parse_date("", "issue_date") is None
    with pytest.raises(ValidationError) as exc:
        parse_date("not a date", "due_date")
    assert exc.value.field == "due_date"


def test_read_csv_falls_back_to_latin1():
    frame = read_csv(b"Sender,Amount\nCaf\xe9,10\n")
    assert frame.iloc[0]["Sender"] == "Café"
    assert frame.iloc[0]["Amount"] == "10"


@pytest.mark.asyncio
async def test_import_creates_invoices_and_collects_row_errors():
    service, session = _service()

    result = await service.import_csv(CSV, "billing")

    assert result.total_rows == 3
    assert len(result.created) == 2
    assert result.substituted_tracking_codes == 1
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.row == 3
    assert error.field == "amount"

    assert session.savepoints == 3
    assert session.commits == 1
    assert service.invoicing.issued == result.created
    assert set(service.invoicing.cache.invalidated) == {"invoices", "invoice_requests"}

    first, second = session.of_type(Invoice)
    assert session.expunged == [first, second]
    assert first.service_route == "PH_TO_UAE"
    assert first.amount == Decimal("100.00")
    assert first.delivery_charge == Decimal("30.00")
    assert first.tax_amount == Decimal("1.50")
    assert first.total_amount == Decimal("31.50")
    assert first.total_amount_cod == Decimal("100.00")
    assert first.number_of_boxes == 3
    assert first.issue_date == date(2026, 3, 1)
    assert first.due_date == date(2026, 3, 31)

    assert second.delivery_charge == Decimal("20.00")
    assert second.total_amount == Decimal("70.00")
    assert second.number_of_boxes == 2
    assert second.awb_number.startswith("PHL")

    requests = session.of_type(InvoiceRequest)
    assert [r.receiver_name for r in requests] == ["Ali", "Cy"]
    assert requests[0].verification.chargeable_weight == Decimal("20")
    assert {c.company_name for c in session.of_type(Client)} == {"ACME Trading", "Beta Foods"}
    assignments = session.of_type(DeliveryAssignment)
    assert [a.invoice_id for a in assignments] == [first.id, second.id]


@pytest.mark.asyncio
async def test_missing_sender_is_a_row_error():
    service, session = _service()
    result = await service.import_csv(b"Amount,Receiver\n10,Ali\n", "billing")
    assert result.created == []
    assert result.errors[0].field == "sender_name"
    assert service.invoicing.issued == []
    assert service.invoicing.cache.invalidated == []
