"""Tests for the booking state machine table."""

import pytest

from boda_backend.core.exceptions import (
    InvalidBookingStatus,
    PaymentRequired,
    ValidationError,
)
from boda_backend.domain.booking_state import (
    BOOKING_ACTIONS,
    BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    allowed_actions,
    assert_action_allowed,
    assert_booking_transition,
    get_action,
    is_terminal_status,
)


def test_status_set_is_closed():
    assert BOOKING_STATUSES == {
        "pending",
        "confirmed",
        "inProgress",
        "completed",
        "cancelled",
        "disputed",
        "refunded",
    }


def test_transition_graph_matches_action_table():
    expected = {
        "pending": {"confirmed", "cancelled"},
        "confirmed": {"inProgress", "cancelled"},
        "inProgress": {"completed"},
        "completed": set(),
        "cancelled": set(),
        "disputed": set(),
        "refunded": set(),
    }
    assert BOOKING_TRANSITIONS == expected


def test_every_action_target_is_a_known_status():
    for action in BOOKING_ACTIONS.values():
        assert action.source in BOOKING_STATUSES
        assert action.target in BOOKING_STATUSES


@pytest.mark.parametrize("status", ["disputed", "refunded"])
def test_no_supplier_action_reaches_or_leaves_disputed_and_refunded(status):
    assert allowed_actions(status) == []
    assert all(a.target != status for a in BOOKING_ACTIONS.values())


@pytest.mark.parametrize("status", ["completed", "cancelled", "refunded"])
def test_terminal_statuses(status):
    assert is_terminal_status(status)
    assert allowed_actions(status) == []


def test_allowed_actions_per_status():
    assert sorted(allowed_actions("pending")) == ["confirm", "reject"]
    assert sorted(allowed_actions("confirmed")) == ["cancel", "start"]
    assert allowed_actions("inProgress") == ["complete"]


def test_unknown_action_is_invalid_argument():
    with pytest.raises(ValidationError):
        get_action("archive")


def test_confirm_requires_payment():
    with pytest.raises(PaymentRequired) as exc_info:
        assert_action_allowed(get_action("confirm"), "pending", paid_amount=0)
    assert exc_info.value.code == "failed-precondition"
    assert "Payment required before acceptance" in exc_info.value.detail


def test_confirm_with_any_payment_passes():
    assert_action_allowed(get_action("confirm"), "pending", paid_amount=1)


@pytest.mark.parametrize(
    "action,status",
    [
        ("confirm", "confirmed"),
        ("reject", "confirmed"),
        ("start", "pending"),
        ("complete", "confirmed"),
        ("cancel", "pending"),
        ("cancel", "inProgress"),
        ("start", "disputed"),
    ],
)
def test_wrong_source_status_is_rejected(action, status):
    with pytest.raises(InvalidBookingStatus) as exc_info:
        assert_action_allowed(get_action(action), status, paid_amount=10, reason="x")
    assert status in exc_info.value.detail


def test_status_guard_wins_over_payment_guard():
    with pytest.raises(InvalidBookingStatus):
        assert_action_allowed(get_action("confirm"), "cancelled", paid_amount=0)


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_cancel_requires_non_blank_reason(reason):
    with pytest.raises(ValidationError):
        assert_action_allowed(get_action("cancel"), "confirmed", paid_amount=0, reason=reason)


def test_reject_does_not_require_reason():
    assert_action_allowed(get_action("reject"), "pending", paid_amount=0)


def test_direct_transition_check():
    assert_booking_transition("confirmed", "inProgress")
    with pytest.raises(InvalidBookingStatus):
        assert_booking_transition("pending", "completed")
