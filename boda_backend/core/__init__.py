"""Core utilities and security modules."""

from boda_backend.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ConcurrentModification,
    InvalidBookingStatus,
    NotFoundError,
    OutcomeUnknown,
    PaymentRequired,
    PreconditionFailed,
    ServiceUnavailable,
    ValidationError,
)
from boda_backend.core.security import (
    Actor,
    actor_from_token,
    create_actor_token,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ConcurrentModification",
    "InvalidBookingStatus",
    "NotFoundError",
    "OutcomeUnknown",
    "PaymentRequired",
    "PreconditionFailed",
    "ServiceUnavailable",
    "ValidationError",
    "Actor",
    "actor_from_token",
    "create_actor_token",
]
