from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import CollaboratorError, ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.enums import CarrierOperation, InvoiceRequestStatus
from app.models.invoice_request import InvoiceRequest, ShipmentVerification
from app.repositories.invoice_request_repo import InvoiceRequestRepository
from app.services.carrier_payloads import shipment_payload
from app.services.carrier_sync import CarrierSyncService
from app.services.engine.money import to_decimal
from app.services.engine.routing import resolve_classification, resolve_route, validate_insurance
from app.services.engine.weights import resolve_weight
from app.services.providers.carrier import CarrierClient, extract_uhawb
from app.services.rates import RateTableProvider
from app.services.response_cache import INVOICE_REQUESTS, ResponseCache

logger = get_logger(__name__)

BOX_NUMERIC_FIELDS = ("length", "width", "height", "vm")


@dataclass
class VerificationOutcome:
    request: InvoiceRequest
    carrier_synced: bool


def _stored(data: dict[str, Any], key: str, current: Any) -> Any:
    return data[key] if key in data else current


def normalize_box(index: int, box: dict[str, Any], classification: str | None) -> dict[str, Any]:
    normalized = {
        "items": box.get("items") or "",
        "quantity": int(box.get("quantity") or 1),
        "classification": classification,
    }
    for name in BOX_NUMERIC_FIELDS:
        value = to_decimal(box.get(name), f"boxes[{index}].{name}", required=False)
        normalized[name] = str(value) if value is not None else None
    return normalized


class VerificationService:
    """Applies Operations' verification to a shipment under a row lock."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        carrier: CarrierClient | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.requests = InvoiceRequestRepository(session)
        self.rate_provider = RateTableProvider(session)
        self.carrier = carrier or CarrierClient(self.settings)
        self.sync = CarrierSyncService(session, self.carrier)
        self.cache = cache or ResponseCache(self.settings.response_cache_ttl_seconds)

    async def update(self, request_id: str | uuid.UUID, data: dict[str, Any], verified_by: str) -> VerificationOutcome:
        try:
            request = await self.requests.get_for_update(request_id)
            if request is None:
                raise NotFoundError(f"invoice request {request_id} not found")
            if request.status == InvoiceRequestStatus.CANCELLED:
                raise ConflictError(f"invoice request {request_id} is cancelled")
            if request.invoice is not None:
                raise ConflictError("verification is read-only once an invoice has been issued")

            verification = request.verification or ShipmentVerification(request_id=request.id, boxes=[])
            await self._apply(request, verification, data)
            verification.verified_by = verified_by
            verification.verified_at = datetime.now(timezone.utc)
            request.verification = verification
            request.status = InvoiceRequestStatus.VERIFIED
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        # Post-commit steps may roll back; keep the committed state readable.
        self.session.expunge(request)

        logger.info(
            "verification_updated",
            request_id=str(request.id),
            chargeable_weight=str(verification.chargeable_weight),
            weight_basis=verification.weight_basis.value,
            classification=verification.shipment_classification,
        )
        await self.cache.invalidate(INVOICE_REQUESTS)
        synced = await self._sync_shipment(request)
        return VerificationOutcome(request=request, carrier_synced=synced)

    async def _apply(self, request: InvoiceRequest, verification: ShipmentVerification, data: dict[str, Any]) -> None:
        route = resolve_route(request.service_route)
        raw_boxes = data["boxes"] if data.get("boxes") is not None else (verification.boxes or [])

        if "total_kg" in data or "chargeable_weight" in data:
            override = data.get("total_kg") if data.get("total_kg") is not None else data.get("chargeable_weight")
        else:
            override = verification.total_kg
        weight = resolve_weight(
            _stored(data, "actual_weight", verification.actual_weight),
            _stored(data, "volumetric_weight", verification.volumetric_weight),
            override,
        )

        classification = resolve_classification(
            route,
            _stored(data, "shipment_classification", verification.shipment_classification),
            [box.get("classification") for box in raw_boxes],
        )
        # Insurance is checked against the stored flag, never the payload.
        declared = validate_insurance(
            route, request.insured, _stored(data, "declared_value", verification.declared_value)
        )

        boxes = data.get("number_of_boxes") or len(raw_boxes) or verification.number_of_boxes or 1
        if int(boxes) < 1:
            raise ValidationError("number_of_boxes", "number_of_boxes must be at least 1", rule="min_boxes")

        verification.actual_weight = weight.actual_weight
        verification.volumetric_weight = weight.volumetric_weight
        verification.total_kg = weight.chargeable_weight if weight.overridden else None
        verification.chargeable_weight = weight.chargeable_weight
        verification.weight_basis = weight.weight_basis
        verification.number_of_boxes = int(boxes)
        verification.shipment_classification = classification.shipment_classification
        verification.boxes = [
            normalize_box(index, box, classification.box_classifications[index])
            for index, box in enumerate(raw_boxes)
        ]
        verification.declared_value = declared
        verification.total_vm = to_decimal(_stored(data, "total_vm", verification.total_vm), "total_vm", required=False)
        verification.volume_cbm = to_decimal(
            _stored(data, "volume_cbm", verification.volume_cbm), "volume_cbm", required=False
        )
        verification.rate = to_decimal(_stored(data, "rate", verification.rate), "rate", required=False)

        if data.get("rate_bracket"):
            verification.rate_bracket = data["rate_bracket"]
        else:
            table = await self.rate_provider.load()
            bracket = table.bracket_for(route.rate_key, weight.chargeable_weight)
            verification.rate_bracket = bracket.label if bracket else None

    async def _sync_shipment(self, request: InvoiceRequest) -> bool:
        if request.carrier_reference:
            return True
        payload = shipment_payload(request, request.verification, self.settings.carrier_currency)
        try:
            response = await self.carrier.create_shipment(payload)
        except CollaboratorError as exc:
            await self.sync.record_failure(CarrierOperation.CREATE_SHIPMENT, payload, exc, request_id=request.id)
            return False

        uhawb = extract_uhawb(response)
        if uhawb:
            try:
                await self.requests.set_carrier_reference(request.id, uhawb)
            except SQLAlchemyError as exc:
                await self.session.rollback()
                logger.error("carrier_reference_save_failed", request_id=str(request.id), uhawb=uhawb, error=str(exc))
            else:
                request.carrier_reference = uhawb
        return True
