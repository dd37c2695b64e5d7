from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.carrier_sync import CarrierSyncTask
from app.models.enums import CarrierSyncStatus


class CarrierSyncRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, task: CarrierSyncTask) -> CarrierSyncTask:
        self.session.add(task)
        await self.session.commit()
        return task

    async def list_pending(self, limit: int = 50) -> list[CarrierSyncTask]:
        result = await self.session.execute(
            select(CarrierSyncTask)
            .where(CarrierSyncTask.status == CarrierSyncStatus.PENDING)
            .order_by(CarrierSyncTask.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def save(self, task: CarrierSyncTask) -> CarrierSyncTask:
        self.session.add(task)
        await self.session.commit()
        return task


