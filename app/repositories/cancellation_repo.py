from __future__ import annotations

import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import BookingEvent
from app.models.cancellation import CancellationRecord
from app.models.delivery_assignment import DeliveryAssignment


class CancellationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_request(self, request_id: str | uuid.UUID) -> CancellationRecord | None:
        value = uuid.UUID(str(request_id))
        result = await self.session.execute(
            select(CancellationRecord).where(CancellationRecord.request_id == value)
        )
        return result.scalar_one_or_none()

    async def add(self, record: CancellationRecord) -> CancellationRecord:
        self.session.add(record)
        await self.session.flush()
        return record


class DeliveryAssignmentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_request(self, request_id: uuid.UUID) -> list[DeliveryAssignment]:
        result = await self.session.execute(
            select(DeliveryAssignment).where(DeliveryAssignment.request_id == request_id)
        )
        return list(result.scalars().all())

    async def delete(self, assignment: DeliveryAssignment) -> None:
        await self.session.delete(assignment)
        await self.session.flush()


class BookingEventRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def append(self, booking_id: uuid.UUID, event_type: str, payload: dict) -> BookingEvent:
        event = BookingEvent(booking_id=booking_id, event_type=event_type, payload=payload)
        self.session.add(event)
        await self.session.flush()
        return event
