"""Write-time invariants enforced with SQLAlchemy events.

- Booking parties and the package snapshot never change after creation.
- A supplier's category cannot change once set.
- A package's category always equals its supplier's category.
- Audit log entries are append-only.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import event, inspect, select

from boda_backend.core.exceptions import CategoryLockViolation, PreconditionFailed

logger = logging.getLogger(__name__)

BOOKING_IMMUTABLE_FIELDS = (
    "client_id",
    "supplier_id",
    "booking_number",
    "package_id",
    "package_name",
    "selected_customizations",
)

_registered = False


class ImmutabilityViolationError(PreconditionFailed):
    """Raised when attempting to modify an immutable field or record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def _changed(target, attr: str) -> bool:
    history = inspect(target).attrs[attr].history
    return bool(history.deleted) and history.has_changes()


def _supplier_category(connection, supplier_id) -> str | None:
    from boda_backend.models.supplier import Supplier

    return connection.execute(
        select(Supplier.category).where(Supplier.id == supplier_id)
    ).scalar_one_or_none()


def _check_package_category(connection, target) -> None:
    category = _supplier_category(connection, target.supplier_id)
    if category is None:
        raise CategoryLockViolation("Set the supplier category before creating packages")
    if target.category != category:
        logger.warning(
            f"category_lock_rejected: package={target.id} supplier={target.supplier_id} "
            f"package_category={target.category} supplier_category={category}"
        )
        raise CategoryLockViolation(
            f"Package category '{target.category}' must match the supplier category '{category}'"
        )


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners.

    Must be called after models are imported but before session use.
    Calling it again is a no-op.
    """
    global _registered
    if _registered:
        return

    from boda_backend.models.admin import AuditLog
    from boda_backend.models.booking import Booking
    from boda_backend.models.supplier import Package, Supplier

    # ============ Booking: parties and package snapshot ============

    @event.listens_for(Booking, "before_update")
    def prevent_booking_snapshot_update(mapper, connection, target):
        """Reject changes to party ids and the purchased package snapshot."""
        for attr in BOOKING_IMMUTABLE_FIELDS:
            if _changed(target, attr):
                _log_immutability_violation("Booking", f"UPDATE {attr} of", str(target.id))
                raise ImmutabilityViolationError("Booking", f"change {attr} of", str(target.id))

    # ============ Supplier: category lock ============

    @event.listens_for(Supplier, "before_update")
    def prevent_category_change(mapper, connection, target):
        """A category can be set once and never changed."""
        history = inspect(target).attrs["category"].history
        previous = history.deleted[0] if history.deleted else None
        if previous is not None and history.has_changes():
            _log_immutability_violation("Supplier", "UPDATE category of", str(target.id))
            raise CategoryLockViolation(
                f"Supplier category is locked to '{previous}' and cannot be changed"
            )

    # ============ Package: must match supplier category ============

    @event.listens_for(Package, "before_insert")
    def check_package_category_insert(mapper, connection, target):
        _check_package_category(connection, target)

    @event.listens_for(Package, "before_update")
    def check_package_category_update(mapper, connection, target):
        _check_package_category(connection, target)

    # ============ AuditLog: Append-Only ============

    @event.listens_for(AuditLog, "before_update")
    def prevent_audit_update(mapper, connection, target):
        """Prevent updates to AuditLog (append-only)."""
        _log_immutability_violation("AuditLog", "UPDATE", str(target.id))
        raise ImmutabilityViolationError("AuditLog", "UPDATE", str(target.id))

    @event.listens_for(AuditLog, "before_delete")
    def prevent_audit_delete(mapper, connection, target):
        """Prevent deletion of AuditLog (append-only)."""
        _log_immutability_violation("AuditLog", "DELETE", str(target.id))
        raise ImmutabilityViolationError("AuditLog", "DELETE", str(target.id))

    _registered = True
    logger.info("Immutability enforcement registered for bookings, suppliers and packages")
