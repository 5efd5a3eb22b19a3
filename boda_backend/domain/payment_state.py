"""Payment rules for booking balances."""

from boda_backend.core.exceptions import ValidationError

# Payments that arrive while the booking sits in one of these statuses are
# kept but flagged for manual reconciliation; nothing is refunded here.
RECONCILIATION_STATUSES = {"cancelled", "refunded"}


def validate_payment_amount(amount: int, paid_amount: int, total_price: int) -> None:
    """Validate a new payment against the booking balance.

    Raises:
        ValidationError: non-positive amount or overpayment
    """
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    if total_price > 0 and paid_amount + amount > total_price:
        remaining = max(total_price - paid_amount, 0)
        raise ValidationError(
            f"Payment of {amount} exceeds the remaining balance of {remaining}"
        )


def requires_reconciliation(booking_status: str) -> bool:
    return booking_status in RECONCILIATION_STATUSES


def payment_status(paid_amount: int, total_price: int) -> str:
    """Summarise a balance as unpaid, partially_paid or paid."""
    if paid_amount <= 0:
        return "unpaid"
    if total_price > 0 and paid_amount < total_price:
        return "partially_paid"
    return "paid"
