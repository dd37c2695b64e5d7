from __future__ import annotations

import time
from typing import Any

import httpx

from app.core.config import Settings, get_settings
from app.core.errors import CollaboratorError
from app.core.logging import get_logger
from app.services.providers.http_client import DEFAULT_WAIT, CircuitBreaker, post_json

logger = get_logger(__name__)

AUTH_PATH = "/api/v1/auth/authenticate"
CREATE_SHIPMENT_PATH = "/api/v1/shipment/create"
ISSUE_INVOICE_PATH = "/api/v1/shipment/issueInvoice"
TOKEN_SAFETY_MARGIN_SECONDS = 60

_cb = CircuitBreaker()


class CarrierClient:
    """Client for the carrier platform's shipment and invoice endpoints.

    Every failure is raised as ``CollaboratorError("carrier", ...)``; callers
    decide whether it is fatal.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        breaker: CircuitBreaker | None = None,
        retry_wait=DEFAULT_WAIT,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._breaker = breaker or _cb
        self._retry_wait = retry_wait
        self._token: str | None = None
        self._token_expiry: float = 0

    @property
    def disabled(self) -> bool:
        return self.settings.carrier_api_disabled

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.carrier_api_base,
            timeout=self.settings.carrier_timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )

    async def authenticate(self, client: httpx.AsyncClient) -> str:
        if self._token and time.time() < self._token_expiry:
            return self._token
        if not self.settings.carrier_client_id or not self.settings.carrier_client_secret:
            raise CollaboratorError("carrier", "carrier credentials are not configured")

        payload = await post_json(
            client,
            AUTH_PATH,
            {"clientId": self.settings.carrier_client_id, "clientSecret": self.settings.carrier_client_secret},
            attempts=1,
        )
        token = payload.get("accessToken") if isinstance(payload, dict) else None
        if not token:
            raise CollaboratorError("carrier", "invalid authentication response from carrier API")
        expires_in = int(payload.get("expiresIn") or 3600)
        self._token = token
        self._token_expiry = time.time() + expires_in - TOKEN_SAFETY_MARGIN_SECONDS
        return token

    async def _post(self, operation: str, path: str, payload: dict[str, Any]) -> dict:
        if not self._breaker.allow():
            raise CollaboratorError("carrier", "carrier API circuit open")
        try:
            async with self._client() as client:
                token = await self.authenticate(client)
                result = await post_json(
                    client,
                    path,
                    payload,
                    headers={"Authorization": f"Bearer {token}"},
                    wait=self._retry_wait,
                )
        except httpx.HTTPStatusError as exc:
            self._breaker.record_failure()
            if exc.response.status_code == 401:
                self._token = None
            logger.warning("carrier_call_failed", operation=operation, status=exc.response.status_code)
            raise CollaboratorError(
                "carrier", f"{operation} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            self._breaker.record_failure()
            logger.warning("carrier_call_failed", operation=operation, error=str(exc))
            raise CollaboratorError("carrier", f"{operation} failed: {exc}") from exc
        except CollaboratorError:
            self._breaker.record_failure()
            raise
        except ValueError as exc:
            # 2xx with a body that is not JSON, e.g. a gateway error page.
            self._breaker.record_failure()
            logger.warning("carrier_call_failed", operation=operation, error="non-JSON response")
            raise CollaboratorError("carrier", f"{operation} returned a non-JSON response") from exc

        if not isinstance(result, dict):
            self._breaker.record_failure()
            logger.warning("carrier_call_failed", operation=operation, error="unexpected response shape")
            raise CollaboratorError("carrier", f"{operation} returned an unexpected response")

        self._breaker.record_success()
        logger.info("carrier_call_succeeded", operation=operation, tracking_number=payload.get("trackingNumber"))
        return result

    async def create_shipment(self, payload: dict[str, Any]) -> dict:
        if self.disabled:
            logger.info("carrier_disabled", operation="create_shipment")
            return {"data": {"uhawb": "N/A"}}
        return await self._post("create_shipment", CREATE_SHIPMENT_PATH, payload)

    async def issue_invoice(self, payload: dict[str, Any]) -> dict:
        if self.disabled:
            logger.info("carrier_disabled", operation="issue_invoice")
            return {"success": True, "message": "carrier API disabled"}
        return await self._post("issue_invoice", ISSUE_INVOICE_PATH, payload)


def extract_uhawb(response: dict) -> str | None:
    data = response.get("data") or {}
    value = data.get("uhawb") if isinstance(data, dict) else None
    if not value or value == "N/A":
        return None
    return str(value)
