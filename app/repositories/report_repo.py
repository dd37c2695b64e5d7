from __future__ import annotations

import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.report import Report


class ReportRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, report: Report) -> Report:
        self.session.add(report)
        await self.session.commit()
        return report

    async def list_for_invoice(self, invoice_id: uuid.UUID) -> list[Report]:
        result = await self.session.execute(
            select(Report).where(Report.invoice_id == invoice_id).order_by(Report.generated_at)
        )
        return list(result.scalars().all())
