"""Supplier view projection.

The view is always rebuilt from the booking store, never patched
incrementally, so rebuilding twice from the same data yields the same view.
All lists are stored already ordered and capped.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import UTC, date, datetime, timedelta
from typing import Any, Literal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boda_backend.config import settings
from boda_backend.domain.availability import can_unblock
from boda_backend.domain.booking_flags import supplier_flags
from boda_backend.models.booking import BlockedDate, Booking
from boda_backend.models.projection import SupplierView
from boda_backend.models.supplier import Supplier
from boda_backend.schemas.projection import SupplierViewResponse

logger = logging.getLogger(__name__)

RebuildReason = Literal["trigger", "backfill", "manual"]

CONFIRMED_LIST_STATUSES = ("confirmed", "inProgress")
UPCOMING_STATUSES = ("confirmed", "inProgress")


def _iso(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()


def booking_summary(booking: Booking) -> dict[str, Any]:
    """Supplier-side summary of one booking, with its flags."""
    return {
        "booking_id": str(booking.id),
        "booking_number": booking.booking_number,
        "client_id": booking.client_id,
        "event_name": booking.event_name,
        "event_date": _iso(booking.event_date),
        "event_location": booking.event_location,
        "package_name": booking.package_name,
        "status": booking.status,
        "total_price": booking.total_price,
        "paid_amount": booking.paid_amount,
        "currency": booking.currency,
        "ui_flags": supplier_flags(booking).to_dict(),
        "created_at": _iso(booking.created_at),
    }


def event_summary(booking: Booking) -> dict[str, Any]:
    return {
        "booking_id": str(booking.id),
        "event_name": booking.event_name,
        "event_date": _iso(booking.event_date),
        "event_time": booking.event_time,
        "event_location": booking.event_location,
        "status": booking.status,
    }


def blocked_date_summary(block: BlockedDate) -> dict[str, Any]:
    return {
        "id": str(block.id),
        "date": _iso(block.date),
        "block_type": block.block_type,
        "reason": block.reason,
        "booking_id": str(block.booking_id) if block.booking_id else None,
        "can_unblock": can_unblock(block.block_type),
    }


class ProjectionBroadcaster:
    """In-process fan-out of rebuilt views to live subscribers.

    Each subscriber gets a bounded queue; a slow subscriber loses its oldest
    snapshot rather than blocking publishers. Only the latest view matters.
    """

    def __init__(self, max_queue_size: int = 8) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, supplier_id: UUID) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers[str(supplier_id)].add(queue)
        logger.debug(f"Subscriber added for supplier view {supplier_id}")
        return queue

    def unsubscribe(self, supplier_id: UUID, queue: asyncio.Queue) -> None:
        key = str(supplier_id)
        self._subscribers[key].discard(queue)
        if not self._subscribers[key]:
            del self._subscribers[key]

    def subscriber_count(self, supplier_id: UUID) -> int:
        return len(self._subscribers.get(str(supplier_id), ()))

    @property
    def stream_count(self) -> int:
        return sum(len(queues) for queues in self._subscribers.values())

    def publish(self, supplier_id: UUID, payload: dict[str, Any]) -> int:
        """Queue ``payload`` for every subscriber of the supplier."""
        queues = list(self._subscribers.get(str(supplier_id), ()))
        for queue in queues:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(payload)
        return len(queues)


class ProjectionService:
    """Rebuilds and serves supplier views."""

    def __init__(self, broadcaster: ProjectionBroadcaster) -> None:
        self.broadcaster = broadcaster

    async def store_counts(self, db: AsyncSession, supplier_id: UUID) -> dict[str, int]:
        """Booking count per status, straight from the store."""
        result = await db.execute(
            select(Booking.status, func.count())
            .where(Booking.supplier_id == supplier_id)
            .group_by(Booking.status)
        )
        return {status: count for status, count in result.all()}

    async def _bookings(self, db: AsyncSession, query) -> list[Booking]:
        result = await db.execute(query)
        return list(result.scalars().all())

    async def rebuild_supplier_view(
        self,
        db: AsyncSession,
        supplier_id: UUID,
        reason: RebuildReason = "trigger",
    ) -> SupplierView | None:
        """Recompute the supplier's view from scratch and overwrite it.

        Returns:
            The stored view, or None if the supplier does not exist
        """
        supplier = await db.get(Supplier, supplier_id)
        if supplier is None:
            logger.info(f"[{reason}] Supplier not found, view not rebuilt: {supplier_id}")
            return None

        logger.info(f"[{reason}] Rebuilding supplier view for: {supplier_id}")
        today = date.today()
        base = select(Booking).where(Booking.supplier_id == supplier_id)

        counts = await self.store_counts(db, supplier_id)

        pending = await self._bookings(
            db,
            base.where(Booking.status == "pending")
            .order_by(Booking.created_at.desc(), Booking.id)
            .limit(settings.pending_bookings_limit),
        )
        confirmed = await self._bookings(
            db,
            base.where(Booking.status.in_(CONFIRMED_LIST_STATUSES))
            .order_by(Booking.event_date, Booking.created_at, Booking.id)
            .limit(settings.confirmed_bookings_limit),
        )
        recent = await self._bookings(
            db,
            base.order_by(Booking.created_at.desc(), Booking.id).limit(
                settings.recent_bookings_limit
            ),
        )
        upcoming = await self._bookings(
            db,
            base.where(
                Booking.status.in_(UPCOMING_STATUSES),
                Booking.event_date >= today,
            )
            .order_by(Booking.event_date, Booking.event_time, Booking.id)
            .limit(settings.upcoming_events_limit),
        )

        horizon = today + timedelta(days=settings.blocked_dates_horizon_days)
        blocks_result = await db.execute(
            select(BlockedDate)
            .where(
                BlockedDate.supplier_id == supplier_id,
                BlockedDate.date >= today,
                BlockedDate.date <= horizon,
            )
            .order_by(BlockedDate.date, BlockedDate.created_at, BlockedDate.id)
        )
        blocks = list(blocks_result.scalars().all())

        view = await db.get(SupplierView, supplier_id)
        if view is None:
            view = SupplierView(supplier_id=supplier_id)
            db.add(view)

        view.business_name = supplier.business_name
        view.pending_count = counts.get("pending", 0)
        view.confirmed_count = counts.get("confirmed", 0)
        view.pending_bookings = [booking_summary(b) for b in pending]
        view.confirmed_bookings = [booking_summary(b) for b in confirmed]
        view.recent_bookings = [booking_summary(b) for b in recent]
        view.upcoming_events = [event_summary(b) for b in upcoming]
        view.blocked_dates = [blocked_date_summary(b) for b in blocks]
        view.dashboard_stats = {
            "total_bookings": sum(counts.values()),
            "completed_bookings": counts.get("completed", 0),
            "cancelled_bookings": counts.get("cancelled", 0),
        }
        view.account_flags = {
            "is_active": supplier.account_status == "active",
            "is_verified": supplier.identity_verified,
            "is_bookable": supplier.is_eligible_for_bookings and supplier.accepting_bookings,
            "is_paused": not supplier.accepting_bookings,
        }
        view.rebuilt_at = datetime.now(UTC)
        view.source_version = settings.projection_version
        view.reason = reason

        await db.flush()
        logger.info(
            f"[{reason}] Supplier view rebuilt for: {supplier_id} "
            f"(pending={view.pending_count}, confirmed={view.confirmed_count})"
        )
        return view

    async def get_view(self, db: AsyncSession, supplier_id: UUID) -> SupplierView | None:
        """Stored view, built on first read."""
        view = await db.get(SupplierView, supplier_id)
        if view is None:
            view = await self.rebuild_supplier_view(db, supplier_id, reason="trigger")
        return view

    def to_payload(self, view: SupplierView) -> dict[str, Any]:
        return SupplierViewResponse.model_validate(view).model_dump(mode="json")

    async def sync_supplier_view(self, db: AsyncSession, supplier_id: UUID) -> SupplierView | None:
        """Rebuild, commit and publish after a committed source write.

        The source write is already durable; a failure here is logged and left
        to the drift check.
        """
        try:
            view = await self.rebuild_supplier_view(db, supplier_id, reason="trigger")
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Projection sync failed for supplier {supplier_id}: {e}")
            return None

        if view is not None:
            delivered = self.broadcaster.publish(supplier_id, self.to_payload(view))
            if delivered:
                logger.debug(f"Supplier view {supplier_id} pushed to {delivered} subscriber(s)")
        return view

    def _publish_all(self, views: list[SupplierView]) -> None:
        for view in views:
            self.broadcaster.publish(view.supplier_id, self.to_payload(view))

    async def rebuild_all(self, db: AsyncSession, reason: RebuildReason = "backfill") -> int:
        """Rebuild and commit every supplier's view, then publish. Returns the number rebuilt."""
        result = await db.execute(select(Supplier.id).order_by(Supplier.created_at))
        supplier_ids = list(result.scalars().all())

        views = []
        for supplier_id in supplier_ids:
            view = await self.rebuild_supplier_view(db, supplier_id, reason=reason)
            if view is not None:
                views.append(view)
        await db.commit()

        self._publish_all(views)
        logger.info(f"[{reason}] Rebuilt {len(views)} supplier view(s)")
        return len(views)

    async def check_drift(self, db: AsyncSession, supplier_id: UUID) -> bool:
        """Whether the stored counts disagree with the store."""
        view = await db.get(SupplierView, supplier_id)
        if view is None:
            return True
        counts = await self.store_counts(db, supplier_id)
        return (
            view.pending_count != counts.get("pending", 0)
            or view.confirmed_count != counts.get("confirmed", 0)
        )

    async def repair_drift(self, db: AsyncSession) -> list[UUID]:
        """Rebuild and commit every view whose counts drifted, then publish.

        Subscribers only ever see views that were stored. Returns the repaired ids.
        """
        result = await db.execute(select(Supplier.id))
        repaired = []
        views = []
        for supplier_id in result.scalars().all():
            if await self.check_drift(db, supplier_id):
                logger.warning(f"Projection drift detected for supplier {supplier_id}")
                view = await self.rebuild_supplier_view(db, supplier_id, reason="backfill")
                if view is not None:
                    views.append(view)
                repaired.append(supplier_id)
        if repaired:
            await db.commit()

        self._publish_all(views)
        return repaired


projection_broadcaster = ProjectionBroadcaster()
projection_service = ProjectionService(projection_broadcaster)
