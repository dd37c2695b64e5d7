from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.models.enums import InvoiceRequestStatus, ShipmentClassification
from app.models.invoice_request import InvoiceRequest, ShipmentVerification
from app.repositories.invoice_request_repo import InvoiceRequestRepository
from app.services.engine.money import to_decimal
from app.services.engine.routing import resolve_route
from app.services.identifiers import IdentifierGenerator, TrackingCodeResult
from app.services.response_cache import INVOICE_REQUESTS, ResponseCache

logger = get_logger(__name__)

# Later statuses are reached only through verification, invoicing or cancellation.
CREATION_STATUSES = (InvoiceRequestStatus.DRAFT, InvoiceRequestStatus.SUBMITTED)


class InvoiceRequestService:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.repo = InvoiceRequestRepository(session)
        self.identifiers = IdentifierGenerator(session, self.settings)
        self.cache = cache or ResponseCache(self.settings.response_cache_ttl_seconds)

    async def create(self, data: dict[str, Any], created_by: str) -> tuple[InvoiceRequest, TrackingCodeResult]:
        """Register a shipment with freshly reserved identifiers and an empty verification."""
        try:
            status = data.get("status") or InvoiceRequestStatus.DRAFT
            if status not in CREATION_STATUSES:
                raise ValidationError(
                    "status",
                    f"a new invoice request must be DRAFT or SUBMITTED, not {getattr(status, 'value', status)}",
                    rule="creation_status",
                )
            status = InvoiceRequestStatus(status)
            route = resolve_route(data.get("service_route"))
            delivery_base = to_decimal(data.get("delivery_base_amount"), "delivery_base_amount", required=False)
            invoice_number = await self.identifiers.invoice_number()
            tracking = await self.identifiers.tracking_code(route, data.get("tracking_code"))

            request = InvoiceRequest(
                invoice_number=invoice_number,
                tracking_code=tracking.value,
                service_route=route.code,
                client_id=data.get("client_id"),
                booking_id=data.get("booking_id"),
                customer_name=data["customer_name"],
                customer_phone=data.get("customer_phone"),
                receiver_name=data["receiver_name"],
                receiver_company=data.get("receiver_company"),
                receiver_phone=data.get("receiver_phone"),
                origin_place=data["origin_place"],
                destination_place=data["destination_place"],
                shipment_type=data["shipment_type"],
                sender_delivery_option=data.get("sender_delivery_option"),
                insured=bool(data.get("insured", False)),
                delivery_base_amount=delivery_base,
                notes=data.get("notes"),
                created_by=created_by,
                status=status,
            )
            request.verification = ShipmentVerification(
                number_of_boxes=1,
                boxes=[],
                shipment_classification=ShipmentClassification.GENERAL.value if route.is_outbound else None,
            )
            request = await self.repo.create(request)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "invoice_request_created",
            request_id=str(request.id),
            invoice_number=request.invoice_number,
            tracking_code=request.tracking_code,
            route=route.code,
        )
        await self.cache.invalidate(INVOICE_REQUESTS)
        return request, tracking
