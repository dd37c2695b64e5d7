from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.price_bracket import PriceBracket


class PriceBracketRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_route(self, route: str) -> list[PriceBracket]:
        result = await self.session.execute(
            select(PriceBracket).where(PriceBracket.route == route).order_by(PriceBracket.min_kg)
        )
        return list(result.scalars().all())

    async def replace(self, route: str, brackets: list[PriceBracket]) -> list[PriceBracket]:
        await self.session.execute(delete(PriceBracket).where(PriceBracket.route == route))
        self.session.add_all(brackets)
        await self.session.commit()
        return brackets
