from __future__ import annotations

import uuid
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import InvoiceStatus
from app.models.invoice import Invoice


class InvoiceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, invoice: Invoice) -> Invoice:
        self.session.add(invoice)
        await self.session.flush()
        await self.session.refresh(invoice)
        return invoice

    async def get(self, invoice_id: str | uuid.UUID) -> Invoice | None:
        value = uuid.UUID(str(invoice_id))
        result = await self.session.execute(select(Invoice).where(Invoice.id == value))
        return result.scalar_one_or_none()

    async def get_by_request(self, request_id: uuid.UUID) -> Invoice | None:
        result = await self.session.execute(select(Invoice).where(Invoice.request_id == request_id))
        return result.scalar_one_or_none()

    async def list(
        self,
        status: InvoiceStatus | None = None,
        client_id: uuid.UUID | None = None,
        service_route: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Invoice], int]:
        stmt = select(Invoice)
        if status is not None:
            stmt = stmt.where(Invoice.status == status)
        if client_id is not None:
            stmt = stmt.where(Invoice.client_id == client_id)
        if service_route:
            stmt = stmt.where(Invoice.service_route == service_route)

        total = await self.session.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await self.session.execute(stmt.order_by(Invoice.created_at.desc()).limit(limit).offset(offset))
        return list(result.scalars().all()), int(total or 0)

    async def delete(self, invoice: Invoice) -> None:
        await self.session.delete(invoice)
        await self.session.flush()
