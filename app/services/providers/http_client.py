from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

# Client errors that a retry cannot fix.
NON_RETRYABLE_STATUSES = {400, 401}

DEFAULT_WAIT = wait_exponential(multiplier=1, min=1, max=8)


@dataclass
class CircuitBreaker:
    max_failures: int = 3
    reset_seconds: int = 30
    failures: int = 0
    last_failure_ts: float | None = None

    def allow(self) -> bool:
        if self.failures < self.max_failures:
            return True
        if self.last_failure_ts is None:
            return True
        if time.time() - self.last_failure_ts > self.reset_seconds:
            self.failures = 0
            self.last_failure_ts = None
            return True
        return False

    def record_failure(self) -> None:
        self.failures += 1
        self.last_failure_ts = time.time()

    def record_success(self) -> None:
        self.failures = 0
        self.last_failure_ts = None


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code not in NON_RETRYABLE_STATUSES
    return isinstance(exc, httpx.TransportError)


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
    attempts: int = 3,
    wait=DEFAULT_WAIT,
) -> dict:
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait,
        retry=retry_if_exception(is_retryable),
        reraise=True,
    ):
        with attempt:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            return response.json() if response.content else {}
    return {}
