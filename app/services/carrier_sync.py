from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import CollaboratorError
from app.core.logging import get_logger
from app.models.carrier_sync import CarrierSyncTask
from app.models.enums import CarrierOperation, CarrierSyncStatus
from app.repositories.carrier_sync_repo import CarrierSyncRepository
from app.repositories.invoice_request_repo import InvoiceRequestRepository
from app.services.providers.carrier import CarrierClient, extract_uhawb

logger = get_logger(__name__)

MAX_SYNC_ATTEMPTS = 5


@dataclass
class RetrySummary:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    task_ids: list[uuid.UUID] = field(default_factory=list)


class CarrierSyncService:
    """Records carrier calls that failed after an invoice or verification was committed, and replays them."""

    def __init__(
        self,
        session: AsyncSession,
        client: CarrierClient | None = None,
        repo: CarrierSyncRepository | None = None,
        request_repo: InvoiceRequestRepository | None = None,
    ) -> None:
        self.session = session
        self.client = client or CarrierClient()
        self.repo = repo or CarrierSyncRepository(session)
        self.request_repo = request_repo or InvoiceRequestRepository(session)

    async def record_failure(
        self,
        operation: CarrierOperation,
        payload: dict,
        error: Exception,
        request_id: uuid.UUID | None = None,
        invoice_id: uuid.UUID | None = None,
    ) -> CarrierSyncTask | None:
        """Queue a failed carrier call for replay.

        Runs after the invoice or verification is committed; a storage
        failure here is logged, never raised.
        """
        task = CarrierSyncTask(
            request_id=request_id,
            invoice_id=invoice_id,
            operation=operation,
            payload=payload,
            status=CarrierSyncStatus.PENDING,
            attempts=1,
            last_error=str(error),
        )
        try:
            await self.repo.create(task)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(
                "carrier_sync_record_failed",
                operation=operation.value,
                request_id=str(request_id) if request_id else None,
                invoice_id=str(invoice_id) if invoice_id else None,
                error=str(exc),
            )
            return None
        logger.warning(
            "carrier_sync_failed",
            operation=operation.value,
            request_id=str(request_id) if request_id else None,
            invoice_id=str(invoice_id) if invoice_id else None,
            error=str(error),
        )
        return task

    async def _dispatch(self, task: CarrierSyncTask) -> dict:
        if task.operation == CarrierOperation.CREATE_SHIPMENT:
            return await self.client.create_shipment(task.payload)
        return await self.client.issue_invoice(task.payload)

    async def retry_pending(self, limit: int = 50) -> RetrySummary:
        summary = RetrySummary()
        for task in await self.repo.list_pending(limit):
            summary.attempted += 1
            summary.task_ids.append(task.id)
            try:
                response = await self._dispatch(task)
            except CollaboratorError as exc:
                task.attempts += 1
                task.last_error = str(exc)
                if task.attempts >= MAX_SYNC_ATTEMPTS:
                    task.status = CarrierSyncStatus.FAILED
                await self.repo.save(task)
                summary.failed += 1
                logger.warning("carrier_sync_retry_failed", task_id=str(task.id), attempts=task.attempts)
                continue

            if task.operation == CarrierOperation.CREATE_SHIPMENT and task.request_id is not None:
                uhawb = extract_uhawb(response)
                request = await self.request_repo.get(task.request_id)
                if request is not None and uhawb:
                    request.carrier_reference = uhawb
            task.status = CarrierSyncStatus.SUCCEEDED
            task.last_error = None
            await self.repo.save(task)
            summary.succeeded += 1
            logger.info("carrier_sync_retry_succeeded", task_id=str(task.id), operation=task.operation.value)
        return summary
