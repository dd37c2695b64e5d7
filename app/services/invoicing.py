from __future__ import annotations

import uuid
from datetime import date, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import CollaboratorError, ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.client import Client
from app.models.enums import CarrierOperation, InvoiceRequestStatus, InvoiceStatus
from app.models.invoice import Invoice
from app.models.invoice_request import InvoiceRequest
from app.models.report import Report
from app.repositories.invoice_repo import InvoiceRepository
from app.repositories.invoice_request_repo import InvoiceRequestRepository
from app.repositories.report_repo import ReportRepository
from app.services.carrier_payloads import invoice_payload
from app.services.carrier_sync import CarrierSyncService
from app.services.engine.calculator import calculate_invoice
from app.services.engine.types import EngineConfig, InvoiceCalculation, InvoiceOptions, ShipmentSnapshot
from app.services.providers.carrier import CarrierClient
from app.services.rates import RateTableProvider
from app.services.response_cache import INVOICE_REQUESTS, INVOICES, ResponseCache

logger = get_logger(__name__)


def snapshot_from_request(request: InvoiceRequest) -> ShipmentSnapshot:
    verification = request.verification
    if verification is None:
        raise ValidationError("verification", "shipment has not been verified", rule="verification_required")
    boxes = verification.boxes or []
    return ShipmentSnapshot(
        service_route=request.service_route,
        actual_weight=verification.actual_weight,
        volumetric_weight=verification.volumetric_weight,
        weight_override=verification.total_kg,
        number_of_boxes=verification.number_of_boxes or 1,
        shipment_classification=verification.shipment_classification,
        box_classifications=tuple(box.get("classification") for box in boxes),
        insured=bool(request.insured),
        declared_value=verification.declared_value,
        special_rate=verification.rate,
        sender_delivery_option=request.sender_delivery_option,
        stored_delivery_base_amount=request.delivery_base_amount,
    )


def cargo_details(request: InvoiceRequest, calculation: InvoiceCalculation) -> dict:
    verification = request.verification
    return {
        "request_id": str(request.id),
        "invoice_number": request.invoice_number,
        "awb_number": request.tracking_code,
        "customer": {"name": request.customer_name, "phone": request.customer_phone},
        "receiver": {
            "name": request.receiver_name,
            "company": request.receiver_company,
            "address": request.destination_place,
            "phone": request.receiver_phone,
        },
        "shipment": {
            "number_of_boxes": calculation.number_of_boxes,
            "weight": str(calculation.weight.chargeable_weight),
            "weight_type": calculation.weight.weight_basis.value,
            "classification": calculation.classification.shipment_classification,
            "rate": str(calculation.charges.rate) if calculation.charges.rate is not None else None,
            "declared_value": str(verification.declared_value) if verification and verification.declared_value else None,
        },
        "route": f"{request.origin_place} -> {request.destination_place}",
        "service_code": calculation.route.code,
    }


class InvoicingService:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        carrier: CarrierClient | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.engine_config = EngineConfig.from_settings(self.settings)
        self.requests = InvoiceRequestRepository(session)
        self.invoices = InvoiceRepository(session)
        self.reports = ReportRepository(session)
        self.rate_provider = RateTableProvider(session)
        self.carrier = carrier or CarrierClient(self.settings)
        self.sync = CarrierSyncService(session, self.carrier)
        self.cache = cache or ResponseCache(self.settings.response_cache_ttl_seconds)

    async def quote(self, snapshot: ShipmentSnapshot, options: InvoiceOptions) -> InvoiceCalculation:
        table = await self.rate_provider.load()
        return calculate_invoice(snapshot, options, table, self.engine_config)

    async def quote_request(self, request_id: str | uuid.UUID, options: InvoiceOptions) -> InvoiceCalculation:
        request = await self.requests.get(request_id)
        if request is None:
            raise NotFoundError(f"invoice request {request_id} not found")
        return await self.quote(snapshot_from_request(request), options)

    async def generate(
        self,
        request_id: str | uuid.UUID,
        options: InvoiceOptions,
        created_by: str,
        client_id: uuid.UUID | None = None,
        customer_trn: str | None = None,
        notes: str | None = None,
        issue_date: date | None = None,
        due_date: date | None = None,
    ) -> tuple[Invoice, InvoiceCalculation]:
        try:
            request = await self.requests.get_for_update(request_id)
            if request is None:
                raise NotFoundError(f"invoice request {request_id} not found")
            if request.status == InvoiceRequestStatus.CANCELLED:
                raise ConflictError(f"invoice request {request_id} is cancelled")
            if request.invoice is not None:
                raise ConflictError(f"invoice request {request_id} already has invoice {request.invoice.invoice_number}")

            snapshot = snapshot_from_request(request)
            table = await self.rate_provider.load()
            calculation = calculate_invoice(snapshot, options, table, self.engine_config)

            issued = issue_date or date.today()
            invoice = Invoice(
                invoice_number=request.invoice_number,
                awb_number=request.tracking_code,
                request_id=request.id,
                client_id=client_id or request.client_id,
                customer_trn=customer_trn,
                notes=notes or request.notes,
                issue_date=issued,
                due_date=due_date or issued + timedelta(days=self.settings.invoice_due_days),
                status=InvoiceStatus.UNPAID,
                created_by=created_by,
                **calculation.invoice_fields(),
            )
            await self.invoices.add(invoice)
            request.status = InvoiceRequestStatus.COMPLETED
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        details = cargo_details(request, calculation)
        # Post-commit steps may roll back; keep the committed invoice readable.
        self.session.expunge(invoice)

        logger.info(
            "invoice_generated",
            invoice_number=invoice.invoice_number,
            request_id=str(request.id),
            route=calculation.route.code,
            tax_rate=str(invoice.tax_rate),
            total_amount=str(invoice.total_amount),
        )
        await self.cache.invalidate(INVOICES, INVOICE_REQUESTS)
        await self.issue_with_carrier(invoice)
        await self.write_report(invoice, details, created_by)
        return invoice, calculation

    async def _client_for(self, invoice: Invoice) -> Client | None:
        if invoice.client_id is None:
            return None
        return await self.session.get(Client, invoice.client_id)

    async def issue_with_carrier(self, invoice: Invoice) -> bool:
        """Issue the invoice on the carrier platform; a failure is queued for retry, never raised."""
        try:
            client = await self._client_for(invoice)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.warning("carrier_client_lookup_failed", invoice_number=invoice.invoice_number, error=str(exc))
            client = None
        payload = invoice_payload(invoice, client, self.settings.carrier_currency)
        try:
            await self.carrier.issue_invoice(payload)
        except CollaboratorError as exc:
            await self.sync.record_failure(
                CarrierOperation.ISSUE_INVOICE,
                payload,
                exc,
                request_id=invoice.request_id,
                invoice_id=invoice.id,
            )
            return False
        return True

    async def write_report(self, invoice: Invoice, details: dict, generated_by: str) -> Report | None:
        report = Report(
            title=f"Audit: Invoice {invoice.invoice_number}",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            amount=invoice.total_amount,
            cargo_details=details,
            generated_by=generated_by,
        )
        try:
            return await self.reports.create(report)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("report_write_failed", invoice_number=invoice.invoice_number, error=str(exc))
            return None
