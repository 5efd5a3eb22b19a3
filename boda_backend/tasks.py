"""Celery background tasks."""

import asyncio
import logging
from datetime import date, timedelta

from celery import shared_task
from sqlalchemy import delete, select

from boda_backend.core.immutability import register_immutability_enforcement
from boda_backend.database import engine, get_db_context
from boda_backend.domain.availability import MANUAL_BLOCK_TYPES
from boda_backend.models.booking import BlockedDate, Booking, Payment
from boda_backend.services.projection_service import projection_service

logger = logging.getLogger(__name__)

register_immutability_enforcement()


def run_async(coro):
    """Run async function in sync context.

    Each task gets a fresh event loop, so pooled connections are released
    before the loop closes.
    """

    async def _runner():
        try:
            return await coro
        finally:
            await engine.dispose()

    return asyncio.run(_runner())


# ==================== PROJECTION TASKS ====================


@shared_task(bind=True, max_retries=3)
def backfill_supplier_views(self):
    """Rebuild every supplier view from the booking store."""
    try:
        rebuilt = run_async(_backfill_supplier_views())
        return {"status": "success", "rebuilt": rebuilt}
    except Exception as exc:
        logger.error(f"Supplier view backfill failed: {exc}")
        raise self.retry(exc=exc, countdown=300)


async def _backfill_supplier_views() -> int:
    async with get_db_context() as db:
        return await projection_service.rebuild_all(db, reason="backfill")


# ==================== CALENDAR TASKS ====================


@shared_task(bind=True, max_retries=3)
def cleanup_past_manual_blocks(self):
    """Delete manual blocks whose date has passed.

    Booking-derived blocks are left alone; they follow their booking.
    """
    try:
        deleted = run_async(_cleanup_past_manual_blocks())
        return {"status": "success", "deleted": deleted}
    except Exception as exc:
        logger.error(f"Blocked date cleanup failed: {exc}")
        raise self.retry(exc=exc, countdown=300)


async def _cleanup_past_manual_blocks(today: date | None = None) -> int:
    cutoff = (today or date.today()) - timedelta(days=1)
    async with get_db_context() as db:
        result = await db.execute(
            delete(BlockedDate).where(
                BlockedDate.date <= cutoff,
                BlockedDate.block_type.in_(MANUAL_BLOCK_TYPES),
                BlockedDate.booking_id.is_(None),
            )
        )
        deleted = result.rowcount or 0
    logger.info(f"Removed {deleted} past manual block(s)")
    return deleted


# ==================== PAYMENT TASKS ====================


@shared_task
def report_unreconciled_payments():
    """Log payments that arrived after their booking was cancelled or refunded."""
    entries = run_async(_unreconciled_payments())
    return {"status": "success", "count": len(entries), "payments": entries}


async def _unreconciled_payments() -> list[dict]:
    async with get_db_context() as db:
        result = await db.execute(
            select(Payment, Booking.booking_number, Booking.status)
            .join(Booking, Booking.id == Payment.booking_id)
            .where(Payment.requires_reconciliation.is_(True))
            .order_by(Payment.paid_at)
        )
        entries = [
            {
                "payment_id": str(payment.id),
                "booking_number": booking_number,
                "booking_status": status,
                "amount": payment.amount,
                "method": payment.method,
                "paid_at": payment.paid_at.isoformat(),
            }
            for payment, booking_number, status in result.all()
        ]

    for entry in entries:
        logger.warning(
            f"Unreconciled payment {entry['payment_id']} of {entry['amount']} on "
            f"{entry['booking_status']} booking {entry['booking_number']}"
        )
    return entries
