"""Custom application exceptions.

Every exception carries a stable ``code`` that clients pattern-match on.
Messages of authorization and precondition errors are specific and safe to
show to users; infrastructure failures never expose diagnostic detail.
"""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    code: str = "internal"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred. Please try again.",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": {"code": self.code, "message": self.detail}}


class ValidationError(AppException):
    """Invalid input data."""

    code = "invalid-argument"

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    code = "not-found"

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    code = "unauthenticated"

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Actor is not allowed to act on the resource. Never retried."""

    code = "permission-denied"

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class PreconditionFailed(AppException):
    """Requested operation is invalid for the current state."""

    code = "failed-precondition"

    def __init__(self, detail: str = "This operation is not allowed in the current state") -> None:
        super().__init__(status_code=status.HTTP_412_PRECONDITION_FAILED, detail=detail)


class InvalidBookingStatus(PreconditionFailed):
    """Booking status does not allow the requested action."""

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(detail=detail)


class PaymentRequired(PreconditionFailed):
    """Booking has no recorded payment."""

    def __init__(self, detail: str = "Payment required before acceptance") -> None:
        super().__init__(detail=detail)


class ConcurrentModification(PreconditionFailed):
    """Another request changed the booking between read and write."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(
            detail=f"Booking {booking_id} was modified by another request. Reload it before trying again."
        )


class SupplierNotBookable(PreconditionFailed):
    """Supplier cannot receive bookings right now."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = reasons
        super().__init__(detail="Supplier is not accepting bookings: " + "; ".join(reasons))


class DateNotAvailable(PreconditionFailed):
    """Selected event date is taken or blocked."""

    def __init__(self, detail: str = "The selected date is not available") -> None:
        super().__init__(detail=detail)


class CategoryLockViolation(PreconditionFailed):
    """Write would break the supplier category lock."""

    def __init__(self, detail: str = "Supplier category is locked") -> None:
        super().__init__(detail=detail)


class AlreadyExists(AppException):
    """Duplicate resource."""

    code = "already-exists"

    def __init__(self, detail: str = "This resource already exists") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class OutcomeUnknown(AppException):
    """Operation did not finish within the bounded wait.

    The write may or may not have been committed; the caller must re-read
    the booking instead of resubmitting.
    """

    code = "deadline-exceeded"

    def __init__(self, detail: str = "The request timed out and its outcome is unknown. Refresh before retrying.") -> None:
        super().__init__(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=detail)


class ServiceUnavailable(AppException):
    """Transient infrastructure failure; safe for the caller to retry."""

    code = "unavailable"

    def __init__(self, detail: str = "Service temporarily unavailable. Please try again.") -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class FeatureDisabled(ServiceUnavailable):
    """A feature switched off by operators."""

    def __init__(self, feature: str, detail: str | None = None) -> None:
        self.feature = feature
        super().__init__(detail or f"{feature.capitalize()} are temporarily unavailable. Please try again later.")


class RateLimitExceeded(AppException):
    """Rate limit exceeded exception."""

    code = "resource-exhausted"

    def __init__(self, detail: str = "Too many requests. Please try again later.") -> None:
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)
