from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import IdentifierKind
from app.models.identifier import IdentifierReservation


class IdentifierRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def reserve(self, kind: IdentifierKind, value: str) -> bool:
        """Insert the value under the unique (kind, value) index.

        Returns False when another transaction already holds it. The insert
        runs in a savepoint so a collision leaves the outer transaction usable.
        """
        try:
            async with self.session.begin_nested():
                self.session.add(IdentifierReservation(kind=kind, value=value))
        except IntegrityError:
            return False
        return True
