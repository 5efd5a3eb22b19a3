"""Booking audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boda_backend.models.admin import AuditLog


class AuditService:
    """Service for append-only audit logging."""

    # Closed vocabulary of audit actions
    AUDITED_ACTIONS = frozenset(
        {
            "booking_create",
            "booking_confirm",
            "booking_reject",
            "booking_start",
            "booking_complete",
            "booking_cancel",
            "booking_event_update",
            "booking_hide",
            "payment_record",
            "supplier_review",
        }
    )

    async def log_action(
        self,
        db: AsyncSession,
        user_id: str,
        action: str,
        resource_type: str,
        resource_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Stage an immutable audit entry in the caller's transaction.

        Raises ValueError for an action outside ``AUDITED_ACTIONS``.
        """
        if action not in self.AUDITED_ACTIONS:
            raise ValueError(f"Unknown audit action '{action}'")
        audit = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
        )
        db.add(audit)
        return audit

    async def log_booking_action(
        self,
        db: AsyncSession,
        user_id: str,
        action: str,
        booking_id: UUID,
        old_status: str | None,
        new_status: str,
        reason: str | None = None,
    ) -> AuditLog:
        """Log a booking status change."""
        new_values: dict[str, Any] = {"status": new_status}
        if reason:
            new_values["reason"] = reason

        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="booking",
            resource_id=booking_id,
            old_values={"status": old_status} if old_status else None,
            new_values=new_values,
        )

    async def log_payment_action(
        self,
        db: AsyncSession,
        user_id: str,
        payment_id: UUID,
        booking_id: UUID,
        amount: int,
        requires_reconciliation: bool = False,
    ) -> AuditLog:
        """Log a recorded payment."""
        return await self.log_action(
            db=db,
            user_id=user_id,
            action="payment_record",
            resource_type="payment",
            resource_id=payment_id,
            new_values={
                "booking_id": str(booking_id),
                "amount": amount,
                "requires_reconciliation": requires_reconciliation,
            },
        )

    async def history(self, db: AsyncSession, resource_id: UUID) -> list[AuditLog]:
        """Audit entries for one resource, oldest first."""
        result = await db.execute(
            select(AuditLog)
            .where(AuditLog.resource_id == resource_id)
            .order_by(AuditLog.created_at, AuditLog.id)
        )
        return list(result.scalars().all())


audit_service = AuditService()
