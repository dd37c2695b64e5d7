from __future__ import annotations

from enum import Enum


class RouteKind(str, Enum):
    OUTBOUND = "OUTBOUND"
    INBOUND = "INBOUND"
    OTHER = "OTHER"


class ShipmentClassification(str, Enum):
    GENERAL = "GENERAL"
    COMMERCIAL = "COMMERCIAL"
    FLOMIC = "FLOMIC"
    PERSONAL = "PERSONAL"


class WeightBasis(str, Enum):
    ACTUAL = "ACTUAL"
    VOLUMETRIC = "VOLUMETRIC"


class InvoiceRequestStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    VERIFIED = "VERIFIED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class InvoiceStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class DeliveryOption(str, Enum):
    PICKUP = "pickup"
    DROP_OFF = "drop_off"


class CancellationState(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLING = "CANCELLING"
    CANCELLED = "CANCELLED"


class IdentifierKind(str, Enum):
    INVOICE_NUMBER = "INVOICE_NUMBER"
    TRACKING_CODE = "TRACKING_CODE"


class CarrierOperation(str, Enum):
    CREATE_SHIPMENT = "CREATE_SHIPMENT"
    ISSUE_INVOICE = "ISSUE_INVOICE"


class CarrierSyncStatus(str, Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
