"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookingCreate(BaseModel):
    """Schema for a client requesting a booking."""

    supplier_id: UUID
    package_id: UUID
    event_date: date
    event_name: str | None = Field(None, max_length=200)
    event_location: str | None = Field(None, max_length=300)
    event_type: str | None = Field(None, max_length=60)
    event_time: str | None = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    guest_count: int | None = Field(None, ge=1, le=10000)
    selected_customizations: list[str] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("event_date")
    @classmethod
    def validate_event_date(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("event_date cannot be in the past")
        return v


class BookingEventUpdate(BaseModel):
    """Explicit supplier edit of the descriptive event fields."""

    event_date: date | None = None
    event_name: str | None = Field(None, max_length=200)
    event_location: str | None = Field(None, max_length=300)
    event_type: str | None = Field(None, max_length=60)
    event_time: str | None = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    guest_count: int | None = Field(None, ge=1, le=10000)


class BookingNotesUpdate(BaseModel):
    """Notes edit; each party may only touch its own notes and the shared notes."""

    notes: str | None = Field(None, max_length=2000)
    client_notes: str | None = Field(None, max_length=2000)
    supplier_notes: str | None = Field(None, max_length=2000)


class BookingUIFlagsResponse(BaseModel):
    """Permission flags computed for the requesting actor."""

    can_accept: bool
    can_decline: bool
    can_cancel: bool
    can_start: bool
    can_complete: bool
    can_message: bool
    can_view_details: bool
    show_payment_received: bool


class PaymentCreate(BaseModel):
    """Schema for recording a payment."""

    amount: int = Field(..., gt=0)
    method: str = Field(..., pattern="^(card|transfer|reference|cash)$")
    paid_at: datetime | None = None


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    amount: int
    method: str
    paid_at: datetime
    requires_reconciliation: bool


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_number: str
    client_id: str
    supplier_id: UUID

    # Event
    event_date: date
    event_name: str | None
    event_location: str | None
    event_type: str | None
    event_time: str | None
    guest_count: int | None

    # Package snapshot
    package_id: UUID | None
    package_name: str
    selected_customizations: list[str]

    # Money
    total_price: int
    paid_amount: int
    currency: str
    payments: list[PaymentResponse] = []

    # Status
    status: str

    # Lifecycle stamps
    confirmed_at: datetime | None
    confirmed_by: str | None
    started_at: datetime | None
    started_by: str | None
    completed_at: datetime | None
    completed_by: str | None
    cancelled_at: datetime | None
    cancelled_by: str | None
    cancelled_by_role: str | None
    cancellation_reason: str | None

    # Notes
    notes: str | None
    client_notes: str | None
    supplier_notes: str | None
    hidden_by_client: bool = False

    # Derived for the caller, never stored
    ui_flags: BookingUIFlagsResponse | None = None

    created_at: datetime
    updated_at: datetime


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int


class BookingRejectRequest(BaseModel):
    """Schema for a supplier declining a pending booking."""

    reason: str | None = Field(None, max_length=1000)


class BookingCancelRequest(BaseModel):
    """Schema for a supplier cancelling a confirmed booking.

    The reason is checked by the lifecycle action itself, after the booking,
    ownership and status checks.
    """

    reason: str | None = Field(None, max_length=1000)


class TransitionResponse(BaseModel):
    """Result of a lifecycle action."""

    success: bool = True
    previous_status: str
    booking: BookingResponse
