from __future__ import annotations

from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.services.response_cache import ResponseCache


async def get_db_session() -> AsyncSession:
    async for session in get_session():
        yield session


def get_response_cache() -> ResponseCache:
    return ResponseCache()


def get_actor(x_user: str | None = Header(default=None)) -> str:
    """Name recorded as created_by / verified_by; authentication happens upstream."""
    return (x_user or "").strip() or "system"
