"""Booking state machine.

States: pending → confirmed → inProgress → completed
           ↓          ↓
       cancelled  cancelled

``disputed`` and ``refunded`` exist in the status enum but are set outside
the supplier lifecycle; no supplier action reaches or leaves them.
"""

from dataclasses import dataclass
from enum import Enum

from boda_backend.core.exceptions import InvalidBookingStatus, PaymentRequired, ValidationError


class BookingStatus(str, Enum):
    """Closed set of booking statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"
    REFUNDED = "refunded"


BOOKING_STATUSES = {s.value for s in BookingStatus}
TERMINAL_STATUSES = {"completed", "cancelled", "refunded"}
ACTIVE_STATUSES = {"pending", "confirmed", "inProgress"}


@dataclass(frozen=True)
class BookingAction:
    """A named supplier action and the single edge it may take."""

    name: str
    source: str
    target: str
    requires_payment: bool = False
    requires_reason: bool = False


BOOKING_ACTIONS: dict[str, BookingAction] = {
    "confirm": BookingAction("confirm", "pending", "confirmed", requires_payment=True),
    "reject": BookingAction("reject", "pending", "cancelled"),
    "start": BookingAction("start", "confirmed", "inProgress"),
    "complete": BookingAction("complete", "inProgress", "completed"),
    "cancel": BookingAction("cancel", "confirmed", "cancelled", requires_reason=True),
}

BOOKING_TRANSITIONS: dict[str, set[str]] = {status: set() for status in BOOKING_STATUSES}
for _action in BOOKING_ACTIONS.values():
    BOOKING_TRANSITIONS[_action.source].add(_action.target)

_FAILURE_MESSAGES = {
    "confirm": "Only pending bookings can be confirmed (current status: {status})",
    "reject": "Only pending bookings can be rejected (current status: {status})",
    "start": "Only confirmed bookings can be started (current status: {status})",
    "complete": "Only bookings in progress can be completed (current status: {status})",
    "cancel": "Only confirmed bookings can be cancelled (current status: {status})",
}


def get_action(name: str) -> BookingAction:
    """Look up an action by name."""
    try:
        return BOOKING_ACTIONS[name]
    except KeyError:
        raise ValidationError(f"Unknown booking action: {name}")


def is_terminal_status(status: str) -> bool:
    return status in TERMINAL_STATUSES


def allowed_actions(status: str) -> list[str]:
    """Names of the actions whose source status is ``status``."""
    return [a.name for a in BOOKING_ACTIONS.values() if a.source == status]


def assert_booking_transition(current: str, target: str) -> None:
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidBookingStatus(
            f"Invalid booking transition: {current} → {target}"
        )


def assert_action_allowed(
    action: BookingAction,
    status: str,
    paid_amount: int,
    reason: str | None = None,
) -> None:
    """Check the status and payment guards of ``action``.

    Raises:
        InvalidBookingStatus: status is not the action's source
        PaymentRequired: confirm on a booking with no payment
        ValidationError: reason missing where one is required
    """
    if status != action.source:
        raise InvalidBookingStatus(_FAILURE_MESSAGES[action.name].format(status=status))

    if action.requires_payment and paid_amount <= 0:
        raise PaymentRequired(
            "Payment required before acceptance: the client has not paid for this booking yet"
        )

    if action.requires_reason and not (reason and reason.strip()):
        raise ValidationError("A cancellation reason is required")

    assert_booking_transition(status, action.target)
