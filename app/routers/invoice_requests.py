from __future__ import annotations

import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import get_actor, get_db_session, get_response_cache
from app.models.enums import InvoiceRequestStatus
from app.repositories.invoice_request_repo import InvoiceRequestRepository
from app.schemas.cancellation import CancellationRead, CancelRequest
from app.schemas.invoice_request import (
    InvoiceRequestCreate,
    InvoiceRequestCreated,
    InvoiceRequestList,
    InvoiceRequestRead,
    VerificationResult,
    VerificationUpdate,
)
from app.services.cancellation import CancellationService
from app.services.invoice_requests import InvoiceRequestService
from app.services.response_cache import INVOICE_REQUESTS, INVOICES, ResponseCache
from app.services.verification import VerificationService

router = APIRouter(prefix="/invoice-requests", tags=["invoice-requests"])


@router.post("", response_model=InvoiceRequestCreated, status_code=status.HTTP_201_CREATED)
async def create_invoice_request(
    payload: InvoiceRequestCreate,
    actor: str = Depends(get_actor),
    session=Depends(get_db_session),
    cache: ResponseCache = Depends(get_response_cache),
):
    service = InvoiceRequestService(session, cache=cache)
    request, tracking = await service.create(payload.model_dump(), actor)
    return InvoiceRequestCreated(
        request=InvoiceRequestRead.model_validate(request),
        tracking_code_substituted=tracking.substituted,
        requested_tracking_code=tracking.requested,
        substitution_reason=tracking.reason,
    )


@router.get("", response_model=InvoiceRequestList)
async def list_invoice_requests(
    status_filter: InvoiceRequestStatus | None = Query(default=None, alias="status"),
    service_route: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    session=Depends(get_db_session),
    cache: ResponseCache = Depends(get_response_cache),
):
    filters = {"status": status_filter.value if status_filter else None, "service_route": service_route}
    pagination = {"limit": limit, "offset": offset}
    cached = await cache.get(INVOICE_REQUESTS, filters, pagination)
    if cached is not None:
        return cached

    items, total = await InvoiceRequestRepository(session).list(status_filter, service_route, limit, offset)
    response = InvoiceRequestList(
        items=[InvoiceRequestRead.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )
    await cache.set(INVOICE_REQUESTS, filters, pagination, response.model_dump(mode="json"))
    return response


@router.get("/{request_id}", response_model=InvoiceRequestRead)
async def get_invoice_request(request_id: uuid.UUID, session=Depends(get_db_session)):
    request = await InvoiceRequestRepository(session).get(request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice request not found")
    return request


@router.put("/{request_id}/verification", response_model=VerificationResult)
async def update_verification(
    request_id: uuid.UUID,
    payload: VerificationUpdate,
    actor: str = Depends(get_actor),
    session=Depends(get_db_session),
    cache: ResponseCache = Depends(get_response_cache),
):
    service = VerificationService(session, cache=cache)
    outcome = await service.update(request_id, payload.model_dump(exclude_unset=True), actor)
    return VerificationResult(
        request=InvoiceRequestRead.model_validate(outcome.request),
        carrier_synced=outcome.carrier_synced,
    )


@router.post("/{request_id}/cancel", response_model=CancellationRead)
async def cancel_invoice_request(
    request_id: uuid.UUID,
    payload: CancelRequest | None = None,
    actor: str = Depends(get_actor),
    session=Depends(get_db_session),
    cache: ResponseCache = Depends(get_response_cache),
):
    record = await CancellationService(session).cancel(request_id, actor, payload.reason if payload else None)
    await cache.invalidate(INVOICE_REQUESTS, INVOICES)
    return record
