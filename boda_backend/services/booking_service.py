"""Booking creation, payments, notes and read access."""

import logging
from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boda_backend.config import settings
from boda_backend.core.exceptions import (
    AlreadyExists,
    AuthorizationError,
    DateNotAvailable,
    NotFoundError,
    PreconditionFailed,
    SupplierNotBookable,
    ValidationError,
)
from boda_backend.core.feature_flags import assert_feature_enabled
from boda_backend.core.security import Actor
from boda_backend.domain.availability import MANUAL_BLOCK_TYPES
from boda_backend.domain.booking_flags import BookingUIFlags, compute_ui_flags
from boda_backend.domain.booking_state import ACTIVE_STATUSES
from boda_backend.domain.payment_state import requires_reconciliation, validate_payment_amount
from boda_backend.domain.supplier_eligibility import evaluate_eligibility
from boda_backend.models.booking import BlockedDate, Booking, Payment
from boda_backend.models.supplier import Package, Supplier
from boda_backend.schemas.booking import (
    BookingCreate,
    BookingEventUpdate,
    BookingNotesUpdate,
    BookingResponse,
    BookingUIFlagsResponse,
    PaymentCreate,
)
from boda_backend.services.audit_service import audit_service
from boda_backend.services.booking_store import booking_store
from boda_backend.services.notification_service import notification_service
from boda_backend.services.projection_service import projection_service
from boda_backend.services.transition_service import sync_blocked_date
from boda_backend.utils.booking_number import generate_booking_number

logger = logging.getLogger(__name__)

EDITABLE_EVENT_STATUSES = {"pending", "confirmed"}
HIDEABLE_STATUSES = {"cancelled", "completed", "refunded"}


def booking_response(booking: Booking, flags: BookingUIFlags | None = None) -> BookingResponse:
    """Serialize a booking with the caller's flags attached."""
    response = BookingResponse.model_validate(booking)
    if flags is not None:
        response.ui_flags = BookingUIFlagsResponse(**flags.to_dict())
    return response


class BookingService:
    """Everything on a booking that is not a supplier lifecycle action."""

    # ==================== READS ====================

    async def get_booking_details(
        self, db: AsyncSession, booking_id: UUID, actor: Actor
    ) -> tuple[Booking, BookingUIFlags]:
        """Booking plus the flags of ``actor``.

        Raises:
            NotFoundError: booking does not exist
            AuthorizationError: actor is not the supplier owner, the client or an admin
        """
        booking = await booking_store.get(db, booking_id)
        supplier = await booking_store.get_supplier(db, booking.supplier_id)
        flags = compute_ui_flags(booking, actor, supplier.user_id if supplier else None)
        if not flags.can_view_details:
            raise AuthorizationError("You don't have permission to access this booking")
        return booking, flags

    async def list_for_actor(
        self,
        db: AsyncSession,
        actor: Actor,
        statuses: list[str] | None = None,
        event_date_from: date | None = None,
        event_date_to: date | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[tuple[Booking, BookingUIFlags]], int]:
        """Suppliers see their supplier's bookings, clients their own."""
        if actor.role == "supplier":
            supplier = await self._supplier_for_user(db, actor.user_id)
            bookings, total = await booking_store.list_by_supplier(
                db,
                supplier.id,
                statuses=statuses,
                event_date_from=event_date_from,
                event_date_to=event_date_to,
                page=page,
                page_size=page_size,
            )
            return [(b, compute_ui_flags(b, actor, supplier.user_id)) for b in bookings], total

        bookings, total = await booking_store.list_by_client(
            db, actor.user_id, statuses=statuses, page=page, page_size=page_size
        )
        return [(b, compute_ui_flags(b, actor, None)) for b in bookings], total

    async def _supplier_for_user(self, db: AsyncSession, user_id: str) -> Supplier:
        result = await db.execute(select(Supplier).where(Supplier.user_id == user_id))
        supplier = result.scalar_one_or_none()
        if supplier is None:
            raise NotFoundError("Supplier profile")
        return supplier

    async def _owned_booking(self, db: AsyncSession, booking_id: UUID, actor: Actor) -> tuple[Booking, Supplier]:
        booking = await booking_store.get_for_update(db, booking_id)
        supplier = await booking_store.get_supplier(db, booking.supplier_id)
        if supplier is None or supplier.user_id != actor.user_id:
            raise AuthorizationError("Only the supplier of this booking can perform this action")
        return booking, supplier

    # ==================== CREATE ====================

    async def _find_duplicate(
        self, db: AsyncSession, client_id: str, data: BookingCreate
    ) -> Booking | None:
        result = await db.execute(
            select(Booking)
            .where(
                Booking.client_id == client_id,
                Booking.supplier_id == data.supplier_id,
                Booking.package_id == data.package_id,
                Booking.event_date == data.event_date,
                Booking.status.in_(ACTIVE_STATUSES),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _assert_date_free(
        self,
        db: AsyncSession,
        supplier_id: UUID,
        event_date: date,
        exclude_booking_id: UUID | None = None,
    ) -> None:
        query = select(Booking.id).where(
            Booking.supplier_id == supplier_id,
            Booking.event_date == event_date,
            Booking.status.in_(ACTIVE_STATUSES),
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)
        if (await db.execute(query.limit(1))).scalar_one_or_none() is not None:
            raise AlreadyExists("A booking already exists for this date")

        block = await db.execute(
            select(BlockedDate.id)
            .where(
                BlockedDate.supplier_id == supplier_id,
                BlockedDate.date == event_date,
                BlockedDate.block_type.in_(MANUAL_BLOCK_TYPES),
            )
            .limit(1)
        )
        if block.scalar_one_or_none() is not None:
            raise DateNotAvailable("The supplier is not available on this date")

    def _price_customizations(self, package: Package, names: list[str]) -> int:
        total = 0
        seen = set()
        for name in names:
            if name in seen:
                raise ValidationError(f"Customization '{name}' selected more than once")
            seen.add(name)
            price = package.customization_price(name)
            if price is None:
                raise ValidationError(f"Package has no customization named '{name}'")
            total += price
        return total

    async def create_booking(
        self, db: AsyncSession, actor: Actor, data: BookingCreate
    ) -> tuple[Booking, bool]:
        """Create a pending booking for the client ``actor``.

        Returns:
            The booking and whether it was newly created; a repeated request
            returns the existing active booking.
        """
        assert_feature_enabled("bookings")
        if data.event_date < date.today():
            raise ValidationError("event_date cannot be in the past")

        existing = await self._find_duplicate(db, actor.user_id, data)
        if existing is not None:
            logger.info(f"Duplicate booking request by {actor.user_id}; returning {existing.id}")
            return await booking_store.get(db, existing.id), False

        supplier = await booking_store.get_supplier(db, data.supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier", str(data.supplier_id))

        eligibility = evaluate_eligibility(
            supplier.account_status, supplier.identity_verified, supplier.accepting_bookings
        )
        if not eligibility.eligible:
            logger.info(f"Supplier {supplier.id} not eligible: {eligibility.reasons}")
            raise SupplierNotBookable(eligibility.reasons)

        if supplier.user_id == actor.user_id:
            raise AuthorizationError("You cannot book your own services")

        package = await db.get(Package, data.package_id)
        if package is None:
            raise NotFoundError("Package", str(data.package_id))
        if package.supplier_id != supplier.id:
            raise AuthorizationError("This package does not belong to this supplier")
        if not package.is_active:
            raise PreconditionFailed("This package is no longer available")

        await self._assert_date_free(db, supplier.id, data.event_date)

        total_price = package.price + self._price_customizations(
            package, data.selected_customizations
        )

        booking = Booking(
            booking_number=await generate_booking_number(db),
            client_id=actor.user_id,
            supplier_id=supplier.id,
            event_date=data.event_date,
            event_name=data.event_name,
            event_location=data.event_location,
            event_type=data.event_type,
            event_time=data.event_time,
            guest_count=data.guest_count,
            package_id=package.id,
            package_name=package.name,
            selected_customizations=list(data.selected_customizations),
            total_price=total_price,
            paid_amount=0,
            currency=settings.default_currency,
            status="pending",
            notes=data.notes,
            payments=[],
        )
        db.add(booking)
        await db.flush()

        await sync_blocked_date(db, booking)
        await audit_service.log_booking_action(
            db,
            user_id=actor.user_id,
            action="booking_create",
            booking_id=booking.id,
            old_status=None,
            new_status="pending",
        )
        notification = await notification_service.create_notification(
            db,
            user_id=supplier.user_id,
            title="New booking request",
            body=f"A client requested {package.name} for {data.event_date.isoformat()}",
            notification_type=notification_service.BOOKING_REQUEST,
            booking_id=booking.id,
        )
        await db.commit()
        logger.info(f"Booking {booking.id} created: none → pending by {actor.user_id}")

        await notification_service.push_notification(notification)
        await projection_service.sync_supplier_view(db, supplier.id)
        return booking, True

    # ==================== PAYMENTS ====================

    async def record_payment(
        self, db: AsyncSession, booking_id: UUID, actor: Actor, data: PaymentCreate
    ) -> Booking:
        """Record a payment and keep ``paid_amount`` equal to the payment sum.

        A payment for a cancelled or refunded booking is kept but flagged for
        manual reconciliation; the booking status does not change.
        """
        assert_feature_enabled("payments")
        booking = await booking_store.get_for_update(db, booking_id)
        if actor.user_id != booking.client_id and not actor.is_admin:
            raise AuthorizationError("Only the client of this booking can record payments")

        validate_payment_amount(data.amount, booking.paid_amount, booking.total_price)

        flagged = requires_reconciliation(booking.status)
        if flagged:
            logger.warning(
                f"late_payment: booking={booking.id} status={booking.status} "
                f"amount={data.amount}; flagged for reconciliation"
            )

        payment = Payment(
            booking_id=booking.id,
            amount=data.amount,
            method=data.method,
            paid_at=data.paid_at or datetime.now(UTC),
            requires_reconciliation=flagged,
            recorded_by=actor.user_id,
        )
        booking.payments.append(payment)
        booking.paid_amount = booking.paid_amount + data.amount
        await booking_store.apply_transition(db, booking)

        await audit_service.log_payment_action(
            db,
            user_id=actor.user_id,
            payment_id=payment.id,
            booking_id=booking.id,
            amount=data.amount,
            requires_reconciliation=flagged,
        )
        supplier = await booking_store.get_supplier(db, booking.supplier_id)
        notification = None
        if supplier is not None:
            notification = await notification_service.create_notification(
                db,
                user_id=supplier.user_id,
                title="Payment received",
                body=f"Booking {booking.booking_number} received a payment of {data.amount} {booking.currency}",
                notification_type=notification_service.PAYMENT_RECEIVED,
                booking_id=booking.id,
            )
        await db.commit()
        logger.info(f"Payment of {data.amount} recorded for booking {booking.id}")

        if notification is not None:
            await notification_service.push_notification(notification)

        await projection_service.sync_supplier_view(db, booking.supplier_id)
        return booking

    # ==================== NOTES & EVENT DETAILS ====================

    async def update_notes(
        self, db: AsyncSession, booking_id: UUID, actor: Actor, data: BookingNotesUpdate
    ) -> Booking:
        """Each party edits only its own notes; the shared notes belong to the client."""
        booking = await booking_store.get_for_update(db, booking_id)
        supplier = await booking_store.get_supplier(db, booking.supplier_id)
        changes = data.model_dump(exclude_unset=True)

        if supplier is not None and actor.user_id == supplier.user_id:
            allowed = {"supplier_notes"}
        elif actor.user_id == booking.client_id:
            allowed = {"notes", "client_notes"}
        else:
            raise AuthorizationError("You don't have permission to access this booking")

        forbidden = set(changes) - allowed
        if forbidden:
            raise AuthorizationError(f"You cannot edit {', '.join(sorted(forbidden))}")

        for field, value in changes.items():
            setattr(booking, field, value)
        await booking_store.apply_transition(db, booking)
        await db.commit()
        return booking

    async def hide_for_client(self, db: AsyncSession, booking_id: UUID, actor: Actor) -> Booking:
        """Drop a finished booking from the client's own list. Nothing is deleted.

        Raises:
            NotFoundError: booking does not exist
            AuthorizationError: actor is not the booking's client
            PreconditionFailed: booking is still pending, confirmed or in progress
        """
        booking = await booking_store.get_for_update(db, booking_id)
        if actor.user_id != booking.client_id:
            raise AuthorizationError("Only the client of this booking can hide it")
        if booking.status not in HIDEABLE_STATUSES:
            raise PreconditionFailed(
                f"Only cancelled, completed or refunded bookings can be hidden "
                f"(current status: {booking.status})"
            )
        if booking.hidden_by_client:
            return booking

        booking.hidden_by_client = True
        booking.hidden_by_client_at = datetime.now(UTC)
        await booking_store.apply_transition(db, booking)
        await audit_service.log_action(
            db,
            user_id=actor.user_id,
            action="booking_hide",
            resource_type="booking",
            resource_id=booking.id,
            new_values={"hidden_by_client": True},
        )
        await db.commit()
        logger.info(f"Booking {booking.id} hidden by client {actor.user_id}")
        return booking

    async def update_event_details(
        self, db: AsyncSession, booking_id: UUID, actor: Actor, data: BookingEventUpdate
    ) -> Booking:
        """Supplier edit of the descriptive event fields."""
        booking, supplier = await self._owned_booking(db, booking_id, actor)
        if booking.status not in EDITABLE_EVENT_STATUSES:
            raise PreconditionFailed(
                f"Event details can only be edited while the booking is pending or confirmed "
                f"(current status: {booking.status})"
            )

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return booking

        new_date = changes.get("event_date")
        if new_date is not None and new_date != booking.event_date:
            if new_date < date.today():
                raise ValidationError("event_date cannot be in the past")
            await self._assert_date_free(db, supplier.id, new_date, exclude_booking_id=booking.id)

        old_values = {field: str(getattr(booking, field)) for field in changes}
        for field, value in changes.items():
            setattr(booking, field, value)
        await booking_store.apply_transition(db, booking)
        await sync_blocked_date(db, booking)

        await audit_service.log_action(
            db,
            user_id=actor.user_id,
            action="booking_event_update",
            resource_type="booking",
            resource_id=booking.id,
            old_values=old_values,
            new_values={field: str(value) for field, value in changes.items()},
        )
        await db.commit()

        await projection_service.sync_supplier_view(db, supplier.id)
        return booking


booking_service = BookingService()
