"""Supplier lifecycle actions on bookings.

Every action follows the same order of checks:

1. the booking exists (``not-found``)
2. the actor owns the booking's supplier (``permission-denied``)
3. the action's status and payment guards hold (``failed-precondition``)

Nothing is written unless all three pass. Actions are not idempotent:
repeating one fails at step 3 because the status has already moved.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boda_backend.config import settings
from boda_backend.core.exceptions import AuthorizationError, OutcomeUnknown
from boda_backend.core.security import Actor
from boda_backend.domain.availability import block_type_for_status
from boda_backend.domain.booking_state import BookingAction, assert_action_allowed, get_action
from boda_backend.models.admin import Notification
from boda_backend.models.booking import BlockedDate, Booking
from boda_backend.models.supplier import Supplier
from boda_backend.services.audit_service import audit_service
from boda_backend.services.booking_store import booking_store
from boda_backend.services.notification_service import notification_service
from boda_backend.services.projection_service import projection_service

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    booking: Booking
    supplier: Supplier
    previous_status: str
    action: str
    notification: Notification | None = None


def _apply_stamps(booking: Booking, action: BookingAction, actor: Actor, reason: str | None) -> None:
    now = datetime.now(UTC)
    booking.status = action.target

    if action.name == "confirm":
        booking.confirmed_at = now
        booking.confirmed_by = actor.user_id
    elif action.name == "start":
        booking.started_at = now
        booking.started_by = actor.user_id
    elif action.name == "complete":
        booking.completed_at = now
        booking.completed_by = actor.user_id
    elif action.target == "cancelled":
        booking.cancelled_at = now
        booking.cancelled_by = actor.user_id
        booking.cancelled_by_role = "supplier"
        booking.cancellation_reason = reason


async def sync_blocked_date(db: AsyncSession, booking: Booking) -> BlockedDate | None:
    """Make the booking's calendar entry match its status."""
    result = await db.execute(select(BlockedDate).where(BlockedDate.booking_id == booking.id))
    block = result.scalar_one_or_none()
    block_type = block_type_for_status(booking.status)

    if block_type is None:
        if block is not None:
            await db.delete(block)
        return None

    if block is None:
        block = BlockedDate(
            supplier_id=booking.supplier_id,
            date=booking.event_date,
            booking_id=booking.id,
            block_type=block_type,
            reason=f"Booking {booking.booking_number}",
        )
        db.add(block)
    else:
        block.block_type = block_type
        block.date = booking.event_date
    return block


class TransitionService:
    """Runs the supplier actions of the booking state machine."""

    async def _authorize(self, db: AsyncSession, booking: Booking, actor: Actor) -> Supplier:
        supplier = await booking_store.get_supplier(db, booking.supplier_id)
        if supplier is None or supplier.user_id != actor.user_id:
            logger.info(
                f"Permission denied: user {actor.user_id} acted on booking {booking.id} "
                f"of supplier {booking.supplier_id}"
            )
            raise AuthorizationError("Only the supplier of this booking can perform this action")
        return supplier

    async def _run(
        self,
        db: AsyncSession,
        booking_id: UUID,
        action: BookingAction,
        actor: Actor,
        reason: str | None,
    ) -> TransitionResult:
        booking = await booking_store.get_for_update(db, booking_id)
        supplier = await self._authorize(db, booking, actor)
        assert_action_allowed(action, booking.status, booking.paid_amount, reason)

        previous_status = booking.status
        _apply_stamps(booking, action, actor, reason)
        await booking_store.apply_transition(db, booking)

        await sync_blocked_date(db, booking)
        await audit_service.log_booking_action(
            db,
            user_id=actor.user_id,
            action=f"booking_{action.name}",
            booking_id=booking.id,
            old_status=previous_status,
            new_status=booking.status,
            reason=reason,
        )
        notification = await notification_service.notify_booking_action(
            db,
            action=action.name,
            client_id=booking.client_id,
            booking_id=booking.id,
            booking_number=booking.booking_number,
            reason=reason,
        )
        await db.commit()

        logger.info(
            f"Booking {booking.id} status updated: {previous_status} → {booking.status} "
            f"by {actor.user_id}"
        )
        return TransitionResult(booking, supplier, previous_status, action.name, notification)

    async def perform(
        self,
        db: AsyncSession,
        booking_id: UUID,
        action_name: str,
        actor: Actor,
        reason: str | None = None,
    ) -> TransitionResult:
        """Run ``action_name`` on the booking as ``actor``.

        The write is bounded by ``settings.transition_timeout_seconds``. On
        expiry the write may or may not have committed, so the caller gets
        ``OutcomeUnknown`` and must re-read the booking.

        Raises:
            NotFoundError: booking does not exist
            AuthorizationError: actor does not own the booking's supplier
            PreconditionFailed: status or payment guard failed, or the
                booking was modified concurrently
            ValidationError: reason missing for cancel
            OutcomeUnknown: the bounded wait expired
        """
        action = get_action(action_name)
        if action.name == "reject" and not (reason and reason.strip()):
            reason = settings.default_rejection_reason
        elif reason is not None:
            reason = reason.strip()

        try:
            result = await asyncio.wait_for(
                self._run(db, booking_id, action, actor, reason),
                timeout=settings.transition_timeout_seconds,
            )
        except TimeoutError:
            logger.error(
                f"Transition '{action.name}' on booking {booking_id} exceeded "
                f"{settings.transition_timeout_seconds}s; outcome unknown"
            )
            raise OutcomeUnknown()

        if result.notification is not None:
            await notification_service.push_notification(result.notification)
        await projection_service.sync_supplier_view(db, result.booking.supplier_id)
        return result

    async def confirm(self, db: AsyncSession, booking_id: UUID, actor: Actor) -> TransitionResult:
        return await self.perform(db, booking_id, "confirm", actor)

    async def reject(
        self, db: AsyncSession, booking_id: UUID, actor: Actor, reason: str | None = None
    ) -> TransitionResult:
        return await self.perform(db, booking_id, "reject", actor, reason)

    async def start(self, db: AsyncSession, booking_id: UUID, actor: Actor) -> TransitionResult:
        return await self.perform(db, booking_id, "start", actor)

    async def complete(self, db: AsyncSession, booking_id: UUID, actor: Actor) -> TransitionResult:
        return await self.perform(db, booking_id, "complete", actor)

    async def cancel(
        self, db: AsyncSession, booking_id: UUID, actor: Actor, reason: str | None
    ) -> TransitionResult:
        return await self.perform(db, booking_id, "cancel", actor, reason)


transition_service = TransitionService()
