from __future__ import annotations

import hashlib
import json
from typing import Any

import redis

from app.core.config import get_settings
from app.core.logging import get_logger
from app.services.providers.base import (
    redis_delete,
    redis_get_json,
    redis_set_json,
    redis_track_key,
    redis_tracked_keys,
)

logger = get_logger(__name__)

INVOICE_REQUESTS = "invoice_requests"
INVOICES = "invoices"


class ResponseCache:
    """Snapshot cache for list endpoints.

    Keys are derived from (namespace, filters, pagination). Every write path
    calls ``invalidate`` for the namespaces it touches; entries are never
    refreshed implicitly. Redis outages degrade to cache misses.
    """

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = ttl_seconds or get_settings().response_cache_ttl_seconds

    @staticmethod
    def key(namespace: str, filters: dict[str, Any], pagination: dict[str, Any]) -> str:
        raw = json.dumps({"filters": filters, "pagination": pagination}, sort_keys=True, default=str)
        return f"cache:{namespace}:{hashlib.sha1(raw.encode()).hexdigest()}"

    @staticmethod
    def index_key(namespace: str) -> str:
        return f"cache:{namespace}:keys"

    async def get(self, namespace: str, filters: dict[str, Any], pagination: dict[str, Any]) -> Any | None:
        try:
            return await redis_get_json(self.key(namespace, filters, pagination))
        except redis.RedisError:
            logger.warning("response_cache_unavailable", namespace=namespace)
            return None

    async def set(self, namespace: str, filters: dict[str, Any], pagination: dict[str, Any], value: Any) -> None:
        key = self.key(namespace, filters, pagination)
        try:
            await redis_set_json(key, value, self.ttl_seconds)
            await redis_track_key(self.index_key(namespace), key, self.ttl_seconds)
        except redis.RedisError:
            logger.warning("response_cache_unavailable", namespace=namespace)

    async def invalidate(self, *namespaces: str) -> None:
        for namespace in namespaces:
            index = self.index_key(namespace)
            try:
                keys = await redis_tracked_keys(index)
                await redis_delete(*keys, index)
            except redis.RedisError:
                logger.warning("response_cache_invalidation_failed", namespace=namespace)
