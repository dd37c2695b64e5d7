"""
CSV bulk invoice ingestion.

Column names are normalized and matched against alias lists, then every row
is priced by the shared engine on the outbound route. Each row runs in its
own savepoint so one bad row never aborts the batch.
"""
from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

import pandas as pd
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import EngineError, ValidationError
from app.core.logging import get_logger
from app.models.client import Client
from app.models.delivery_assignment import DeliveryAssignment
from app.models.enums import InvoiceRequestStatus, InvoiceStatus, ShipmentClassification
from app.models.invoice import Invoice
from app.models.invoice_request import InvoiceRequest, ShipmentVerification
from app.services.engine.calculator import calculate_invoice
from app.services.engine.money import to_decimal
from app.services.engine.types import EngineConfig, InvoiceOptions, ShipmentSnapshot
from app.services.identifiers import IdentifierGenerator
from app.services.invoicing import InvoicingService
from app.services.response_cache import INVOICE_REQUESTS, INVOICES

logger = get_logger(__name__)

BULK_ROUTE = "PH_TO_UAE"

COLUMN_ALIASES: dict[str, list[str]] = {
    "sender_name": [
        "sender_name", "sendername", "sender", "company_name", "company", "companyname",
        "client_name", "customer_name",
    ],
    "contact_name": ["contact_name", "contactname", "contact_person", "contact"],
    "email": ["email", "e-mail", "client_email", "sender_email"],
    "phone": ["phone", "telephone", "phonenumber", "phone_number", "mobile", "sender_mobile"],
    "amount": [
        "amount_aed", "amountaed", "amount", "invoice_amount", "base_amount", "total_amount", "total",
        "charges", "subtotal",
    ],
    "number_of_boxes": [
        "number_of_boxes", "numberofboxes", "boxes", "box_no", "boxno", "box_no.", "box_number", "box#",
        "box_count", "boxcount", "qty_boxes", "qtyboxes",
    ],
    "weight": ["weight_kg", "weightkg", "weight", "kg", "weight_in_kg"],
    "tax_rate": ["tax_rate", "taxrate", "tax_percent", "vat_rate"],
    "receiver_name": ["receiver_name", "receivername", "receiver"],
    "receiver_phone": ["receiver_mobile", "receivermobile", "receiver_phone", "receiverphone", "receiver_contact"],
    "receiver_address": ["receiver_address", "receiveraddress", "delivery_address", "deliveryaddress"],
    "due_date": ["due_date", "duedate", "due"],
    "notes": ["notes", "remarks", "remarks_notes"],
    "invoice_number": ["invoice_number", "invoicenumber", "invoice_id", "invoiceid", "invoice"],
    "issue_date": ["created_at", "createdat", "date", "created", "invoice_date", "invoicedate"],
    "tracking_code": ["tracking_code", "trackingcode", "tracking", "awb_number", "awbnumber", "awb"],
    "volume_cbm": ["volume_cbm", "volumecbm", "volume", "cbm", "volume_in_cbm"],
}

_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")


def normalize_column_name(name: Any) -> str:
    text = _ZERO_WIDTH.sub("", str(name or "")).strip().lower()
    text = re.sub(r"\s+", "_", text)
    text = re.sub(r"[()]", "", text)
    text = re.sub(r"_+", "_", text)
    return text.strip("_")


def map_columns(columns) -> dict[str, str]:
    """Map each known field to the first source column whose normalized name is one of its aliases."""
    normalized = {normalize_column_name(col): col for col in columns}
    mapping = {}
    for target, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            source = normalized.get(normalize_column_name(alias))
            if source is not None:
                mapping[target] = source
                break
    return mapping


def read_csv(content: bytes) -> pd.DataFrame:
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            return pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, encoding=encoding)
        except UnicodeDecodeError:
            continue
    raise ValidationError("file", "could not decode CSV file", rule="encoding")


def parse_boxes(value: str | None) -> int:
    digits = re.sub(r"[^\d]", "", value or "")
    boxes = int(digits) if digits else 1
    return boxes if boxes >= 1 else 1


def parse_date(value: str | None, field_name: str) -> date | None:
    if not value:
        return None
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        raise ValidationError(field_name, f"{field_name} is not a valid date: {value}", rule="date")
    return parsed.date()


@dataclass
class RowError:
    row: int
    field: str | None
    message: str


@dataclass
class BulkImportResult:
    total_rows: int = 0
    created: list[str] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    substituted_tracking_codes: int = 0


class BulkImportService:
    def __init__(self, session: AsyncSession, settings: Settings | None = None, invoicing: InvoicingService | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.engine_config = EngineConfig.from_settings(self.settings)
        self.identifiers = IdentifierGenerator(session, self.settings)
        self.invoicing = invoicing or InvoicingService(session, self.settings)

    async def import_csv(self, content: bytes, created_by: str) -> BulkImportResult:
        frame = read_csv(content)
        mapping = map_columns(frame.columns)
        result = BulkImportResult(total_rows=len(frame))
        created: list[Invoice] = []

        for index, record in enumerate(frame.to_dict(orient="records")):
            row_number = index + 2
            row = {target: (record.get(source) or "").strip() for target, source in mapping.items()}
            try:
                async with self.session.begin_nested():
                    invoice, substituted = await self._import_row(row, created_by)
            except (EngineError, SQLAlchemyError) as exc:
                field_name = getattr(exc, "field", None)
                message = getattr(exc, "message", None) or str(exc)
                result.errors.append(RowError(row=row_number, field=field_name, message=message))
                logger.warning("bulk_row_failed", row=row_number, field=field_name, error=message)
                continue
            created.append(invoice)
            result.created.append(invoice.invoice_number)
            result.substituted_tracking_codes += int(substituted)

        await self.session.commit()
        for invoice in created:
            self.session.expunge(invoice)
        logger.info(
            "bulk_import_finished",
            total_rows=result.total_rows,
            created=len(result.created),
            failed=len(result.errors),
        )
        if created:
            await self.invoicing.cache.invalidate(INVOICES, INVOICE_REQUESTS)
        for invoice in created:
            await self.invoicing.issue_with_carrier(invoice)
        return result

    async def _client(self, row: dict[str, str]) -> Client:
        name = row.get("sender_name")
        if not name:
            raise ValidationError("sender_name", "sender_name is required", rule="required")
        existing = await self.session.scalar(select(Client).where(Client.company_name == name))
        if existing is not None:
            return existing
        client = Client(
            company_name=name,
            contact_name=row.get("contact_name") or name,
            email=row.get("email") or None,
            phone=row.get("phone") or None,
        )
        self.session.add(client)
        await self.session.flush()
        return client

    async def _import_row(self, row: dict[str, str], created_by: str) -> tuple[Invoice, bool]:
        amount = to_decimal(row.get("amount"), "amount")
        if amount <= 0:
            raise ValidationError("amount", "amount must be greater than 0", rule="positive")
        weight = to_decimal(row.get("weight"), "weight", required=False) or Decimal("0")
        boxes = parse_boxes(row.get("number_of_boxes"))
        tax_rate = to_decimal(row.get("tax_rate"), "tax_rate", required=False) or Decimal("0")
        issue = parse_date(row.get("issue_date"), "issue_date") or date.today()
        due = parse_date(row.get("due_date"), "due_date") or issue + timedelta(days=self.settings.invoice_due_days)

        snapshot = ShipmentSnapshot(
            service_route=BULK_ROUTE,
            actual_weight=weight,
            volumetric_weight=Decimal("0"),
            number_of_boxes=boxes,
        )
        options = InvoiceOptions(tax_rate=tax_rate, has_delivery=True, shipping_amount=amount)
        calculation = calculate_invoice(snapshot, options, None, self.engine_config)

        client = await self._client(row)
        invoice_number = await self.identifiers.invoice_number(row.get("invoice_number"))
        tracking = await self.identifiers.tracking_code(calculation.route, row.get("tracking_code"))
        receiver_address = row.get("receiver_address") or "N/A"

        request = InvoiceRequest(
            invoice_number=invoice_number,
            tracking_code=tracking.value,
            service_route=calculation.route.code,
            client_id=client.id,
            customer_name=client.company_name,
            customer_phone=client.phone,
            receiver_name=row.get("receiver_name") or "N/A",
            receiver_phone=row.get("receiver_phone") or None,
            origin_place="N/A",
            destination_place=receiver_address,
            shipment_type="CSV_IMPORT",
            created_by=created_by,
            status=InvoiceRequestStatus.COMPLETED,
        )
        request.verification = ShipmentVerification(
            actual_weight=calculation.weight.actual_weight,
            volumetric_weight=calculation.weight.volumetric_weight,
            chargeable_weight=calculation.weight.chargeable_weight,
            weight_basis=calculation.weight.weight_basis,
            number_of_boxes=boxes,
            shipment_classification=ShipmentClassification.GENERAL.value,
            boxes=[],
            volume_cbm=to_decimal(row.get("volume_cbm"), "volume_cbm", required=False),
        )
        self.session.add(request)
        await self.session.flush()

        invoice = Invoice(
            invoice_number=invoice_number,
            awb_number=tracking.value,
            request_id=request.id,
            client_id=client.id,
            batch_number=row.get("invoice_number") or None,
            notes=row.get("notes") or f"Service Code: {calculation.route.code}",
            issue_date=issue,
            due_date=due,
            status=InvoiceStatus.UNPAID,
            created_by=created_by,
            **calculation.invoice_fields(),
        )
        self.session.add(invoice)
        await self.session.flush()

        self.session.add(
            DeliveryAssignment(
                request_id=request.id,
                invoice_id=invoice.id,
                delivery_address=receiver_address,
                delivery_charge=invoice.delivery_charge,
            )
        )
        await self.session.flush()
        return invoice, tracking.substituted
