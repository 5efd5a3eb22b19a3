"""Blocked date types and how the booking lifecycle drives them."""

from boda_backend.core.exceptions import PreconditionFailed, ValidationError

MANUAL_BLOCK_TYPES = {"blocked", "unavailable"}
BOOKING_BLOCK_TYPES = {"reserved", "requested"}
BLOCK_TYPES = MANUAL_BLOCK_TYPES | BOOKING_BLOCK_TYPES

_BLOCK_TYPE_BY_STATUS = {
    "pending": "requested",
    "confirmed": "reserved",
    "inProgress": "reserved",
    "completed": "reserved",
}


def block_type_for_status(status: str) -> str | None:
    """Block type a booking in ``status`` should hold, or None to drop it."""
    return _BLOCK_TYPE_BY_STATUS.get(status)


def can_unblock(block_type: str) -> bool:
    return block_type in MANUAL_BLOCK_TYPES


def assert_manual_block_type(block_type: str) -> None:
    if block_type not in MANUAL_BLOCK_TYPES:
        raise ValidationError(
            f"Block type must be one of {sorted(MANUAL_BLOCK_TYPES)}, got '{block_type}'"
        )


def assert_can_delete(block_type: str) -> None:
    if not can_unblock(block_type):
        raise PreconditionFailed(
            "This date is held by a booking and is released only when the booking leaves that state"
        )
