"""Pydantic schemas for request/response validation."""

from boda_backend.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingEventUpdate,
    BookingListResponse,
    BookingNotesUpdate,
    BookingRejectRequest,
    BookingResponse,
    BookingUIFlagsResponse,
    PaymentCreate,
    PaymentResponse,
    TransitionResponse,
)
from boda_backend.schemas.projection import SupplierViewResponse
from boda_backend.schemas.supplier import (
    BlockedDateCreate,
    BlockedDateResponse,
    EligibilityResponse,
    PackageCreate,
    PackageResponse,
    PackageUpdate,
    SupplierCreate,
    SupplierResponse,
    SupplierReviewUpdate,
    SupplierUpdate,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingEventUpdate",
    "BookingNotesUpdate",
    "BookingUIFlagsResponse",
    "BookingResponse",
    "BookingListResponse",
    "BookingRejectRequest",
    "BookingCancelRequest",
    "TransitionResponse",
    "PaymentCreate",
    "PaymentResponse",
    # Supplier
    "SupplierCreate",
    "SupplierUpdate",
    "SupplierReviewUpdate",
    "SupplierResponse",
    "EligibilityResponse",
    "PackageCreate",
    "PackageUpdate",
    "PackageResponse",
    "BlockedDateCreate",
    "BlockedDateResponse",
    # Projection
    "SupplierViewResponse",
]
