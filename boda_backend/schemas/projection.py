"""Supplier view (dashboard projection) schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from boda_backend.schemas.booking import BookingUIFlagsResponse


class BookingSummary(BaseModel):
    booking_id: UUID
    booking_number: str
    client_id: str
    event_name: str | None
    event_date: date
    event_location: str | None
    package_name: str
    status: str
    total_price: int
    paid_amount: int
    currency: str
    ui_flags: BookingUIFlagsResponse
    created_at: datetime


class EventSummary(BaseModel):
    booking_id: UUID
    event_name: str | None
    event_date: date
    event_time: str | None
    event_location: str | None
    status: str


class BlockedDateSummary(BaseModel):
    id: UUID
    date: date
    block_type: str
    reason: str | None
    booking_id: UUID | None
    can_unblock: bool


class DashboardStats(BaseModel):
    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int


class AccountFlags(BaseModel):
    is_active: bool
    is_verified: bool
    is_bookable: bool
    is_paused: bool


class SupplierViewResponse(BaseModel):
    """Point-read or pushed snapshot of a supplier's dashboard."""

    model_config = ConfigDict(from_attributes=True)

    supplier_id: UUID
    business_name: str
    pending_count: int
    confirmed_count: int
    pending_bookings: list[BookingSummary]
    confirmed_bookings: list[BookingSummary]
    recent_bookings: list[BookingSummary]
    upcoming_events: list[EventSummary]
    blocked_dates: list[BlockedDateSummary]
    dashboard_stats: DashboardStats
    account_flags: AccountFlags
    rebuilt_at: datetime
    source_version: str
    reason: str
