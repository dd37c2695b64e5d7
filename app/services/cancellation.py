from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError
from app.core.logging import get_logger
from app.models.cancellation import CancellationRecord
from app.models.enums import CancellationState, InvoiceRequestStatus
from app.repositories.cancellation_repo import (
    BookingEventRepository,
    CancellationRepository,
    DeliveryAssignmentRepository,
)
from app.repositories.invoice_repo import InvoiceRepository
from app.repositories.invoice_request_repo import InvoiceRequestRepository

logger = get_logger(__name__)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def row_snapshot(obj) -> dict[str, Any] | None:
    """Column values of an ORM row as JSON-safe data."""
    if obj is None:
        return None
    return {attr.key: _plain(getattr(obj, attr.key)) for attr in sa_inspect(obj).mapper.column_attrs}


class CancellationService:
    """Archives and removes an invoice request with its invoice and delivery assignments.

    Everything happens in the caller's session as one transaction: the audit
    record is flushed before any delete, and any failure rolls the whole
    cancellation back.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.requests = InvoiceRequestRepository(session)
        self.invoices = InvoiceRepository(session)
        self.assignments = DeliveryAssignmentRepository(session)
        self.records = CancellationRepository(session)
        self.events = BookingEventRepository(session)

    async def cancel(self, request_id: str | uuid.UUID, cancelled_by: str, reason: str | None = None) -> CancellationRecord:
        try:
            record = await self._cancel(request_id, cancelled_by, reason)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(
            "invoice_request_cancelled",
            request_id=str(record.request_id),
            invoice_number=record.invoice_number,
            had_invoice=record.invoice_id is not None,
        )
        return record

    async def _cancel(self, request_id, cancelled_by: str, reason: str | None) -> CancellationRecord:
        existing = await self.records.get_by_request(request_id)
        if existing is not None:
            raise ConflictError(f"invoice request {request_id} is already cancelled")

        request = await self.requests.get_for_update(request_id)
        if request is None:
            raise NotFoundError(f"invoice request {request_id} not found")
        if request.status == InvoiceRequestStatus.CANCELLED:
            raise ConflictError(f"invoice request {request_id} is already cancelled")

        invoice = request.invoice or await self.invoices.get_by_request(request.id)
        assignments = await self.assignments.list_for_request(request.id)

        record = CancellationRecord(
            request_id=request.id,
            invoice_id=invoice.id if invoice else None,
            invoice_number=request.invoice_number,
            tracking_code=request.tracking_code,
            state=CancellationState.CANCELLING,
            snapshot={
                "request": row_snapshot(request),
                "verification": row_snapshot(request.verification),
                "invoice": row_snapshot(invoice),
                "delivery_assignments": [row_snapshot(a) for a in assignments],
            },
            reason=reason,
            cancelled_by=cancelled_by,
        )
        await self.records.add(record)

        for assignment in assignments:
            await self.assignments.delete(assignment)
        if invoice is not None:
            await self.invoices.delete(invoice)
        await self.requests.delete(request)

        if request.booking_id is not None:
            await self.events.append(
                request.booking_id,
                "CANCELLED",
                {
                    "request_id": str(request.id),
                    "invoice_number": request.invoice_number,
                    "tracking_code": request.tracking_code,
                    "reason": reason,
                },
            )

        record.state = CancellationState.CANCELLED
        await self.session.flush()
        return record

    async def get_record(self, request_id: str | uuid.UUID) -> CancellationRecord:
        record = await self.records.get_by_request(request_id)
        if record is None:
            raise NotFoundError(f"no cancellation record for invoice request {request_id}")
        return record
