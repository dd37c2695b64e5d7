from __future__ import annotations

import json
from typing import Any

from app.core.redis import redis_client


def _default(value: Any) -> str:
    # Decimal, UUID, date and enum values all serialize through their string form.
    return str(value)


async def redis_get_json(key: str) -> Any | None:
    value = await redis_client.client.get(key)
    if not value:
        return None
    return json.loads(value)


async def redis_set_json(key: str, payload: Any, ttl_seconds: int) -> None:
    await redis_client.client.set(key, json.dumps(payload, default=_default), ex=ttl_seconds)


async def redis_delete(*keys: str) -> int:
    if not keys:
        return 0
    return await redis_client.client.delete(*keys)


async def redis_track_key(index_key: str, key: str, ttl_seconds: int) -> None:
    await redis_client.client.sadd(index_key, key)
    await redis_client.client.expire(index_key, ttl_seconds)


async def redis_tracked_keys(index_key: str) -> set[str]:
    return set(await redis_client.client.smembers(index_key))
