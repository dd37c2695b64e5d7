from app.models.client import Client  # noqa: F401
from app.models.booking import BookingEvent, ShipmentBooking  # noqa: F401
from app.models.invoice_request import InvoiceRequest, ShipmentVerification  # noqa: F401
from app.models.invoice import Invoice  # noqa: F401
from app.models.delivery_assignment import DeliveryAssignment  # noqa: F401
from app.models.cancellation import CancellationRecord  # noqa: F401
from app.models.identifier import IdentifierReservation  # noqa: F401
from app.models.price_bracket import PriceBracket  # noqa: F401
from app.models.carrier_sync import CarrierSyncTask  # noqa: F401
from app.models.report import Report  # noqa: F401
from app.models.enums import (  # noqa: F401
    CancellationState,
    CarrierOperation,
    CarrierSyncStatus,
    DeliveryOption,
    IdentifierKind,
    InvoiceRequestStatus,
    InvoiceStatus,
    RouteKind,
    ShipmentClassification,
    WeightBasis,
)
