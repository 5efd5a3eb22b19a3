"""Authorization flags for a booking, as seen by one actor.

Flags are derived on every read and never stored on the booking.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from boda_backend.core.security import Actor

logger = logging.getLogger(__name__)


class BookingFacts(Protocol):
    id: Any
    status: str
    client_id: str | None
    supplier_id: Any
    paid_amount: int
    total_price: int


@dataclass(frozen=True)
class BookingUIFlags:
    """Permission set for the requesting actor."""

    can_accept: bool = False
    can_decline: bool = False
    can_cancel: bool = False
    can_start: bool = False
    can_complete: bool = False
    can_message: bool = False
    can_view_details: bool = False
    show_payment_received: bool = False

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


NO_ACCESS = BookingUIFlags()


def is_payment_satisfied(booking: BookingFacts) -> bool:
    """Whether the booking has any recorded payment.

    ``paid_amount > 0`` with ``total_price == 0`` is inconsistent data; it
    still counts as paid so the supplier is not blocked, but it is logged.
    """
    if booking.paid_amount <= 0:
        return False
    if booking.total_price <= 0:
        logger.warning(
            f"payment_anomaly: booking={booking.id} paid_amount={booking.paid_amount} "
            f"total_price={booking.total_price}"
        )
    return True


def supplier_flags(booking: BookingFacts) -> BookingUIFlags:
    """Flags for the supplier that owns the booking."""
    status = booking.status
    return BookingUIFlags(
        can_accept=status == "pending" and is_payment_satisfied(booking),
        can_decline=status == "pending",
        can_cancel=status == "confirmed",
        can_start=status == "confirmed",
        can_complete=status == "inProgress",
        can_message=bool(booking.client_id),
        can_view_details=True,
        show_payment_received=booking.paid_amount > 0,
    )


def client_flags(booking: BookingFacts) -> BookingUIFlags:
    """Flags for the client; supplier actions are never offered."""
    return BookingUIFlags(
        can_message=True,
        can_view_details=True,
        show_payment_received=booking.paid_amount > 0,
    )


def admin_flags(booking: BookingFacts) -> BookingUIFlags:
    """Read-only view for operators; lifecycle actions stay with the supplier."""
    return BookingUIFlags(
        can_view_details=True,
        show_payment_received=booking.paid_amount > 0,
    )


def compute_ui_flags(
    booking: BookingFacts | None,
    actor: Actor,
    supplier_user_id: str | None,
) -> BookingUIFlags:
    """Compute flags for ``actor``.

    Args:
        booking: The booking, or None if the reference did not resolve
        actor: Requesting identity
        supplier_user_id: Auth id of the user owning the booking's supplier
    """
    if booking is None:
        return NO_ACCESS
    if supplier_user_id is not None and actor.user_id == supplier_user_id:
        return supplier_flags(booking)
    if booking.client_id and actor.user_id == booking.client_id:
        return client_flags(booking)
    if actor.is_admin:
        return admin_flags(booking)
    return NO_ACCESS
