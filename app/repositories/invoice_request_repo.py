from __future__ import annotations

import uuid
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.enums import InvoiceRequestStatus
from app.models.invoice_request import InvoiceRequest


def _with_children(stmt):
    return stmt.options(
        selectinload(InvoiceRequest.verification),
        selectinload(InvoiceRequest.invoice),
        selectinload(InvoiceRequest.delivery_assignments),
    )


class InvoiceRequestRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, request: InvoiceRequest) -> InvoiceRequest:
        self.session.add(request)
        await self.session.commit()
        return await self.get(request.id)

    async def get(self, request_id: str | uuid.UUID) -> InvoiceRequest | None:
        value = uuid.UUID(str(request_id))
        result = await self.session.execute(_with_children(select(InvoiceRequest).where(InvoiceRequest.id == value)))
        return result.scalar_one_or_none()

    async def get_for_update(self, request_id: str | uuid.UUID) -> InvoiceRequest | None:
        """Load the request with a row lock held until the current transaction ends."""
        value = uuid.UUID(str(request_id))
        result = await self.session.execute(
            _with_children(select(InvoiceRequest).where(InvoiceRequest.id == value))
            .with_for_update(of=InvoiceRequest)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list(
        self,
        status: InvoiceRequestStatus | None = None,
        service_route: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[InvoiceRequest], int]:
        stmt = select(InvoiceRequest)
        if status is not None:
            stmt = stmt.where(InvoiceRequest.status == status)
        if service_route:
            stmt = stmt.where(InvoiceRequest.service_route == service_route)

        total = await self.session.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await self.session.execute(
            _with_children(stmt).order_by(InvoiceRequest.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), int(total or 0)

    async def delete(self, request: InvoiceRequest) -> None:
        """Remove the row; the verification goes with it through ON DELETE CASCADE."""
        await self.session.execute(delete(InvoiceRequest).where(InvoiceRequest.id == request.id))
        self.session.expunge(request)

    async def set_carrier_reference(self, request_id: uuid.UUID, reference: str) -> None:
        await self.session.execute(
            update(InvoiceRequest).where(InvoiceRequest.id == request_id).values(carrier_reference=reference)
        )
        await self.session.commit()
