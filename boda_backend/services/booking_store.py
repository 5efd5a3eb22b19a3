"""Authoritative booking storage.

All lifecycle writes go through ``apply_transition``: the booking row is
versioned, so a write computed from a stale read fails instead of
overwriting a newer status.
"""

import logging
from collections.abc import Collection
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from boda_backend.core.exceptions import ConcurrentModification, NotFoundError
from boda_backend.models.booking import Booking
from boda_backend.models.supplier import Supplier

logger = logging.getLogger(__name__)


class BookingStore:
    """Reads and versioned writes of bookings."""

    async def get(self, db: AsyncSession, booking_id: UUID) -> Booking:
        """Load a booking with its payments.

        Raises:
            NotFoundError: no booking with this id
        """
        result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.payments))
            .where(Booking.id == booking_id)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_for_update(self, db: AsyncSession, booking_id: UUID) -> Booking:
        """Load a booking and lock its row until the transaction ends.

        ``populate_existing`` refreshes an instance already in the identity
        map so the checks always see the committed status.
        """
        result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.payments))
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_supplier(self, db: AsyncSession, supplier_id: UUID) -> Supplier | None:
        result = await db.execute(select(Supplier).where(Supplier.id == supplier_id))
        return result.scalar_one_or_none()

    async def list_by_supplier(
        self,
        db: AsyncSession,
        supplier_id: UUID,
        statuses: Collection[str] | None = None,
        event_date_from: date | None = None,
        event_date_to: date | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Booking], int]:
        """Page through a supplier's bookings, newest first.

        Args:
            statuses: Only bookings in one of these statuses
            event_date_from: Inclusive lower bound on the event date
            event_date_to: Inclusive upper bound on the event date
        """
        query = select(Booking).where(Booking.supplier_id == supplier_id)
        if statuses:
            query = query.where(Booking.status.in_(list(statuses)))
        if event_date_from:
            query = query.where(Booking.event_date >= event_date_from)
        if event_date_to:
            query = query.where(Booking.event_date <= event_date_to)
        return await self._paginate(db, query, page, page_size)

    async def list_by_client(
        self,
        db: AsyncSession,
        client_id: str,
        statuses: Collection[str] | None = None,
        page: int = 1,
        page_size: int = 20,
        include_hidden: bool = False,
    ) -> tuple[list[Booking], int]:
        """Page through a client's bookings, newest first, skipping the ones they hid."""
        query = select(Booking).where(Booking.client_id == client_id)
        if statuses:
            query = query.where(Booking.status.in_(list(statuses)))
        if not include_hidden:
            query = query.where(Booking.hidden_by_client.is_(False))
        return await self._paginate(db, query, page, page_size)

    async def _paginate(self, db, query, page: int, page_size: int) -> tuple[list[Booking], int]:
        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            query.options(selectinload(Booking.payments))
            .order_by(Booking.created_at.desc(), Booking.id)
            .offset(offset)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def apply_transition(self, db: AsyncSession, booking: Booking) -> Booking:
        """Write pending changes of ``booking`` guarded by its version.

        Raises:
            ConcurrentModification: the row changed since it was read
        """
        booking_id = booking.id
        try:
            await db.flush()
        except StaleDataError:
            logger.warning(f"Concurrent modification of booking {booking_id}; write rejected")
            await db.rollback()
            raise ConcurrentModification(str(booking_id))
        return booking


booking_store = BookingStore()
