from __future__ import annotations

import uuid
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from app.core.deps import get_actor, get_db_session, get_response_cache
from app.core.errors import ValidationError
from app.models.enums import InvoiceStatus
from app.repositories.invoice_repo import InvoiceRepository
from app.repositories.report_repo import ReportRepository
from app.schemas.invoice import (
    BulkImportResponse,
    BulkRowError,
    InvoiceGenerate,
    InvoiceList,
    InvoiceRead,
    QuoteRequest,
    QuoteResponse,
    ReportRead,
)
from app.services.bulk_import import BulkImportService
from app.services.engine.types import ShipmentSnapshot
from app.services.invoicing import InvoicingService
from app.services.response_cache import INVOICES, ResponseCache

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
async def generate_invoice(
    payload: InvoiceGenerate,
    actor: str = Depends(get_actor),
    session=Depends(get_db_session),
    cache: ResponseCache = Depends(get_response_cache),
):
    service = InvoicingService(session, cache=cache)
    invoice, _ = await service.generate(
        payload.request_id,
        payload.to_options(),
        actor,
        client_id=payload.client_id,
        customer_trn=payload.customer_trn,
        notes=payload.notes,
        issue_date=payload.issue_date,
        due_date=payload.due_date,
    )
    return invoice


@router.post("/quote", response_model=QuoteResponse)
async def quote_invoice(payload: QuoteRequest, session=Depends(get_db_session)):
    service = InvoicingService(session)
    options = payload.to_options()
    if payload.request_id is not None:
        calculation = await service.quote_request(payload.request_id, options)
    elif payload.shipment is not None:
        data = payload.shipment.model_dump()
        data["box_classifications"] = tuple(data["box_classifications"])
        calculation = await service.quote(ShipmentSnapshot(**data), options)
    else:
        raise ValidationError("shipment", "either request_id or shipment is required", rule="required")
    return QuoteResponse.from_calculation(calculation)


@router.post("/bulk-upload", response_model=BulkImportResponse)
async def bulk_upload(
    file: UploadFile = File(...),
    actor: str = Depends(get_actor),
    session=Depends(get_db_session),
    cache: ResponseCache = Depends(get_response_cache),
):
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only CSV allowed")
    service = BulkImportService(session, invoicing=InvoicingService(session, cache=cache))
    result = await service.import_csv(await file.read(), actor)
    return BulkImportResponse(
        total_rows=result.total_rows,
        created=result.created,
        errors=[BulkRowError(row=e.row, field=e.field, message=e.message) for e in result.errors],
        substituted_tracking_codes=result.substituted_tracking_codes,
    )


@router.get("", response_model=InvoiceList)
async def list_invoices(
    status_filter: InvoiceStatus | None = Query(default=None, alias="status"),
    client_id: uuid.UUID | None = None,
    service_route: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    session=Depends(get_db_session),
    cache: ResponseCache = Depends(get_response_cache),
):
    filters = {
        "status": status_filter.value if status_filter else None,
        "client_id": str(client_id) if client_id else None,
        "service_route": service_route,
    }
    pagination = {"limit": limit, "offset": offset}
    cached = await cache.get(INVOICES, filters, pagination)
    if cached is not None:
        return cached

    items, total = await InvoiceRepository(session).list(status_filter, client_id, service_route, limit, offset)
    response = InvoiceList(
        items=[InvoiceRead.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )
    await cache.set(INVOICES, filters, pagination, response.model_dump(mode="json"))
    return response


@router.get("/{invoice_id}", response_model=InvoiceRead)
async def get_invoice(invoice_id: uuid.UUID, session=Depends(get_db_session)):
    invoice = await InvoiceRepository(session).get(invoice_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


@router.get("/{invoice_id}/reports", response_model=list[ReportRead])
async def list_invoice_reports(invoice_id: uuid.UUID, session=Depends(get_db_session)):
    return await ReportRepository(session).list_for_invoice(invoice_id)
