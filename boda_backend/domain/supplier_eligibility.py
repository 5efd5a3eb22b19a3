"""Supplier eligibility gate for new bookings."""

from dataclasses import dataclass, field

ACCOUNT_STATUSES = {"pendingReview", "active", "needsClarification", "rejected", "suspended"}

_STATUS_REASONS = {
    "pendingReview": "Supplier registration is awaiting review",
    "needsClarification": "Supplier registration needs clarification",
    "rejected": "Supplier registration was rejected",
    "suspended": "Supplier account is suspended",
}


@dataclass
class EligibilityResult:
    eligible: bool
    reasons: list[str] = field(default_factory=list)


def is_eligible_for_bookings(account_status: str, identity_verified: bool) -> bool:
    """Active account with completed verification."""
    return account_status == "active" and identity_verified


def evaluate_eligibility(
    account_status: str,
    identity_verified: bool,
    accepting_bookings: bool,
) -> EligibilityResult:
    """Collect every reason a supplier cannot take a new booking."""
    reasons: list[str] = []
    if account_status != "active":
        reasons.append(_STATUS_REASONS.get(account_status, f"Account status is {account_status}"))
    if not identity_verified:
        reasons.append("Identity verification pending")
    if not accepting_bookings:
        reasons.append("Supplier has paused new bookings")
    return EligibilityResult(eligible=not reasons, reasons=reasons)
