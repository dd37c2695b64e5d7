from __future__ import annotations

import re
import secrets
import string
import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import ConflictError, ValidationError
from app.core.logging import get_logger
from app.models.enums import IdentifierKind
from app.repositories.identifier_repo import IdentifierRepository
from app.services.engine.types import ResolvedRoute

logger = get_logger(__name__)

ALPHABET = string.ascii_uppercase + string.digits
AWB_BODY_LENGTH = 12
AWB_PLAIN_LENGTH = 15


def random_token(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class TrackingCodeResult:
    value: str
    substituted: bool = False
    requested: str | None = None
    reason: str | None = None


class IdentifierGenerator:
    """Issues invoice numbers and AWB tracking codes.

    Every value is reserved in ``identifier_reservations`` before it is
    returned; reservations outlive the records that used them, so a value is
    never handed out twice even after cancellation.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        token_factory: Callable[[int], str] = random_token,
        repo: IdentifierRepository | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.repo = repo or IdentifierRepository(session)
        self._token = token_factory

    def awb_pattern(self, route: ResolvedRoute) -> re.Pattern[str]:
        if route.is_outbound:
            prefix = re.escape(self.settings.outbound_awb_prefix)
            return re.compile(rf"^{prefix}[A-Z0-9]{{{AWB_BODY_LENGTH}}}$")
        return re.compile(r"^[A-Z0-9][A-Z0-9-]*$")

    def _new_awb(self, route: ResolvedRoute) -> str:
        if route.is_outbound:
            return self.settings.outbound_awb_prefix + self._token(AWB_BODY_LENGTH)
        return self._token(AWB_PLAIN_LENGTH)

    async def invoice_number(self, requested: str | None = None) -> str:
        if requested and requested.strip():
            candidate = requested.strip().upper()
            if await self.repo.reserve(IdentifierKind.INVOICE_NUMBER, candidate):
                return candidate
            logger.warning("invoice_number_taken", requested=candidate)

        code = None
        for _ in range(self.settings.identifier_max_attempts):
            code = self._token(self.settings.invoice_number_length)
            if await self.repo.reserve(IdentifierKind.INVOICE_NUMBER, code):
                return code

        fallback = f"{code}-{str(int(time.time() * 1000))[-6:]}"
        if await self.repo.reserve(IdentifierKind.INVOICE_NUMBER, fallback):
            logger.warning("invoice_number_fallback", value=fallback)
            return fallback
        raise ConflictError("could not allocate a unique invoice number")

    async def tracking_code(self, route: ResolvedRoute, requested: str | None = None) -> TrackingCodeResult:
        supplied = requested.strip().upper() if requested and requested.strip() else None
        reason = None

        if supplied is not None:
            if not self.awb_pattern(route).match(supplied):
                reason = "invalid_format"
                if not self.settings.substitute_invalid_tracking_codes:
                    raise ValidationError(
                        "tracking_code",
                        f"tracking_code {supplied} does not match the format required for {route.code}",
                        rule="tracking_code_format",
                    )
            elif await self.repo.reserve(IdentifierKind.TRACKING_CODE, supplied):
                return TrackingCodeResult(value=supplied, requested=supplied)
            else:
                reason = "duplicate"
                if not self.settings.substitute_invalid_tracking_codes:
                    raise ConflictError(f"tracking_code {supplied} is already in use")

        for _ in range(self.settings.identifier_max_attempts):
            code = self._new_awb(route)
            if await self.repo.reserve(IdentifierKind.TRACKING_CODE, code):
                if supplied is not None:
                    logger.warning(
                        "tracking_code_substituted",
                        requested=supplied,
                        issued=code,
                        reason=reason,
                        route=route.code,
                    )
                return TrackingCodeResult(
                    value=code,
                    substituted=supplied is not None,
                    requested=supplied,
                    reason=reason,
                )
        raise ConflictError("could not allocate a unique tracking code")
