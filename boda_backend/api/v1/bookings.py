"""Booking endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from boda_backend.api.deps import get_current_actor, get_db
from boda_backend.core.exceptions import ValidationError
from boda_backend.core.security import Actor
from boda_backend.domain.booking_flags import compute_ui_flags
from boda_backend.domain.booking_state import BOOKING_STATUSES
from boda_backend.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingEventUpdate,
    BookingListResponse,
    BookingNotesUpdate,
    BookingRejectRequest,
    BookingResponse,
    PaymentCreate,
    TransitionResponse,
)
from boda_backend.services.booking_service import booking_response, booking_service
from boda_backend.services.transition_service import TransitionResult, transition_service

router = APIRouter()


def _transition_response(result: TransitionResult, actor: Actor) -> TransitionResponse:
    flags = compute_ui_flags(result.booking, actor, result.supplier.user_id)
    return TransitionResponse(
        success=True,
        previous_status=result.previous_status,
        booking=booking_response(result.booking, flags),
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    response: Response,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Request a booking. Repeating the same request returns the existing booking."""
    booking, created = await booking_service.create_booking(db, actor, booking_data)
    if not created:
        response.status_code = status.HTTP_200_OK
    flags = compute_ui_flags(booking, actor, None)
    return booking_response(booking, flags)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: list[str] | None = Query(default=None, alias="status"),
    event_date_from: date | None = None,
    event_date_to: date | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> BookingListResponse:
    """Bookings of the current supplier (or client), newest first."""
    if status_filter:
        unknown = set(status_filter) - BOOKING_STATUSES
        if unknown:
            raise ValidationError(f"Unknown booking status: {', '.join(sorted(unknown))}")

    rows, total = await booking_service.list_for_actor(
        db,
        actor,
        statuses=status_filter,
        event_date_from=event_date_from,
        event_date_to=event_date_to,
        page=page,
        page_size=page_size,
    )
    return BookingListResponse(
        bookings=[booking_response(booking, flags) for booking, flags in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Booking details with the caller's permission flags."""
    booking, flags = await booking_service.get_booking_details(db, booking_id, actor)
    return booking_response(booking, flags)


# ==================== SUPPLIER LIFECYCLE ====================


@router.post("/{booking_id}/confirm", response_model=TransitionResponse)
async def confirm_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TransitionResponse:
    """Accept a paid pending booking (supplier only)."""
    result = await transition_service.confirm(db, booking_id, actor)
    return _transition_response(result, actor)


@router.post("/{booking_id}/reject", response_model=TransitionResponse)
async def reject_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    request: BookingRejectRequest | None = None,
) -> TransitionResponse:
    """Decline a pending booking (supplier only)."""
    reason = request.reason if request else None
    result = await transition_service.reject(db, booking_id, actor, reason)
    return _transition_response(result, actor)


@router.post("/{booking_id}/start", response_model=TransitionResponse)
async def start_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TransitionResponse:
    """Mark a confirmed booking as in progress (supplier only)."""
    result = await transition_service.start(db, booking_id, actor)
    return _transition_response(result, actor)


@router.post("/{booking_id}/complete", response_model=TransitionResponse)
async def complete_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TransitionResponse:
    """Mark an in-progress booking as completed (supplier only)."""
    result = await transition_service.complete(db, booking_id, actor)
    return _transition_response(result, actor)


@router.post("/{booking_id}/cancel", response_model=TransitionResponse)
async def cancel_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    request: BookingCancelRequest | None = None,
) -> TransitionResponse:
    """Cancel a confirmed booking with a reason (supplier only)."""
    reason = request.reason if request else None
    result = await transition_service.cancel(db, booking_id, actor, reason)
    return _transition_response(result, actor)


# ==================== PAYMENTS & EDITS ====================


@router.post(
    "/{booking_id}/payments",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    booking_id: UUID,
    payment_data: PaymentCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Record a payment against the booking balance."""
    booking = await booking_service.record_payment(db, booking_id, actor, payment_data)
    return booking_response(booking, compute_ui_flags(booking, actor, None))


@router.patch("/{booking_id}/notes", response_model=BookingResponse)
async def update_notes(
    booking_id: UUID,
    notes_data: BookingNotesUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Edit the caller's own notes."""
    await booking_service.update_notes(db, booking_id, actor, notes_data)
    booking, flags = await booking_service.get_booking_details(db, booking_id, actor)
    return booking_response(booking, flags)


@router.patch("/{booking_id}/event", response_model=BookingResponse)
async def update_event_details(
    booking_id: UUID,
    event_data: BookingEventUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Edit descriptive event fields (supplier only, pending or confirmed)."""
    await booking_service.update_event_details(db, booking_id, actor, event_data)
    booking, flags = await booking_service.get_booking_details(db, booking_id, actor)
    return booking_response(booking, flags)


@router.post("/{booking_id}/hide", response_model=BookingResponse)
async def hide_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Hide a finished booking from the caller's own list (client only)."""
    await booking_service.hide_for_client(db, booking_id, actor)
    booking, flags = await booking_service.get_booking_details(db, booking_id, actor)
    return booking_response(booking, flags)
