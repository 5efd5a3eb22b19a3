"""Tests for recording payments against bookings."""

import logging
from datetime import UTC, datetime

import pytest
from sqlalchemy import select

from boda_backend.config import settings
from boda_backend.core.exceptions import AuthorizationError, FeatureDisabled, ValidationError
from boda_backend.domain.payment_state import payment_status, validate_payment_amount
from boda_backend.models.admin import Notification
from boda_backend.schemas.booking import PaymentCreate
from boda_backend.services.audit_service import audit_service
from boda_backend.services.booking_service import booking_service
from boda_backend.services.transition_service import transition_service
from boda_backend.tasks import _unreconciled_payments

from tests.conftest import SUPPLIER_USER, make_booking


def test_validate_payment_amount():
    validate_payment_amount(500, paid_amount=0, total_price=1000)
    validate_payment_amount(500, paid_amount=500, total_price=1000)
    with pytest.raises(ValidationError):
        validate_payment_amount(0, paid_amount=0, total_price=1000)
    with pytest.raises(ValidationError):
        validate_payment_amount(501, paid_amount=500, total_price=1000)


def test_free_booking_accepts_any_payment():
    validate_payment_amount(10, paid_amount=0, total_price=0)


@pytest.mark.parametrize(
    "paid,total,expected",
    [(0, 1000, "unpaid"), (400, 1000, "partially_paid"), (1000, 1000, "paid"), (5, 0, "paid")],
)
def test_payment_status(paid, total, expected):
    assert payment_status(paid, total) == expected


async def test_paid_amount_equals_sum_of_payments(db, supplier, package, client_actor):
    booking = await make_booking(db, supplier, package)

    await booking_service.record_payment(
        db, booking.id, client_actor, PaymentCreate(amount=30_000, method="transfer")
    )
    updated = await booking_service.record_payment(
        db, booking.id, client_actor, PaymentCreate(amount=20_000, method="card")
    )

    assert updated.paid_amount == 50_000
    assert sum(p.amount for p in updated.payments) == updated.paid_amount
    assert all(not p.requires_reconciliation for p in updated.payments)


async def test_payment_unlocks_confirm(db, supplier, package, client_actor, supplier_actor):
    booking = await make_booking(db, supplier, package)

    await booking_service.record_payment(
        db, booking.id, client_actor, PaymentCreate(amount=1, method="reference")
    )
    result = await transition_service.confirm(db, booking.id, supplier_actor)

    assert result.booking.status == "confirmed"


async def test_overpayment_is_rejected(db, supplier, package, client_actor):
    booking = await make_booking(db, supplier, package)

    with pytest.raises(ValidationError):
        await booking_service.record_payment(
            db, booking.id, client_actor, PaymentCreate(amount=package.price + 1, method="card")
        )


async def test_only_client_records_payment(db, supplier, package, supplier_actor):
    booking = await make_booking(db, supplier, package)

    with pytest.raises(AuthorizationError):
        await booking_service.record_payment(
            db, booking.id, supplier_actor, PaymentCreate(amount=100, method="cash")
        )


async def test_payments_switched_off(db, supplier, package, client_actor, monkeypatch):
    booking = await make_booking(db, supplier, package)
    monkeypatch.setattr(settings, "feature_payments_enabled", False)

    with pytest.raises(FeatureDisabled) as exc_info:
        await booking_service.record_payment(
            db, booking.id, client_actor, PaymentCreate(amount=100, method="card")
        )

    assert exc_info.value.code == "unavailable"
    assert "Payments are temporarily unavailable" in exc_info.value.detail
    await db.refresh(booking)
    assert booking.paid_amount == 0


async def test_late_payment_is_flagged(db, supplier, package, client_actor, caplog):
    booking = await make_booking(db, supplier, package, status="cancelled")
    paid_at = datetime(2026, 1, 5, 10, 0, tzinfo=UTC)

    with caplog.at_level(logging.WARNING, logger="boda_backend.services.booking_service"):
        updated = await booking_service.record_payment(
            db,
            booking.id,
            client_actor,
            PaymentCreate(amount=5_000, method="transfer", paid_at=paid_at),
        )

    assert updated.status == "cancelled"
    assert updated.paid_amount == 5_000
    assert updated.payments[0].requires_reconciliation is True
    assert "late_payment" in caplog.text


async def test_payment_is_audited_and_supplier_notified(db, supplier, package, client_actor):
    booking = await make_booking(db, supplier, package)

    updated = await booking_service.record_payment(
        db, booking.id, client_actor, PaymentCreate(amount=100, method="card")
    )

    payment = updated.payments[0]
    entries = await audit_service.history(db, payment.id)
    assert [e.action for e in entries] == ["payment_record"]
    assert entries[0].new_values["booking_id"] == str(booking.id)

    result = await db.execute(select(Notification).where(Notification.user_id == SUPPLIER_USER))
    assert [n.notification_type for n in result.scalars().all()] == ["payment_received"]


async def test_unreconciled_payment_report(db, session_factory, supplier, package, client_actor, monkeypatch):
    from contextlib import asynccontextmanager

    import boda_backend.tasks as tasks

    @asynccontextmanager
    async def test_db_context():
        async with session_factory() as session:
            yield session

    monkeypatch.setattr(tasks, "get_db_context", test_db_context)

    booking = await make_booking(db, supplier, package, status="refunded")
    await booking_service.record_payment(
        db, booking.id, client_actor, PaymentCreate(amount=700, method="cash")
    )

    entries = await _unreconciled_payments()

    assert len(entries) == 1
    assert entries[0]["booking_number"] == booking.booking_number
    assert entries[0]["booking_status"] == "refunded"
    assert entries[0]["amount"] == 700
