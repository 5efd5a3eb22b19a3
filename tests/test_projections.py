"""Tests for the supplier dashboard view."""

import asyncio
from datetime import date, timedelta

import pytest
from sqlalchemy import select

from boda_backend.config import settings
from boda_backend.models.booking import BlockedDate
from boda_backend.models.projection import SupplierView
from boda_backend.services.projection_service import ProjectionBroadcaster, projection_service
from boda_backend.services.transition_service import transition_service

from tests.conftest import OTHER_SUPPLIER_USER, future, make_booking, make_package, make_supplier


async def test_counts_come_from_store_not_capped_lists(db, supplier, package, monkeypatch):
    monkeypatch.setattr(settings, "pending_bookings_limit", 2)
    for days in range(10, 15):
        await make_booking(db, supplier, package, event_date=future(days))
    await make_booking(db, supplier, package, status="confirmed", paid_amount=1, event_date=future(20))
    await make_booking(db, supplier, package, status="inProgress", paid_amount=1, event_date=future(21))

    view = await projection_service.rebuild_supplier_view(db, supplier.id)

    assert view.pending_count == 5
    assert len(view.pending_bookings) == 2
    # confirmed_count covers confirmed only; the list also shows inProgress
    assert view.confirmed_count == 1
    assert [b["status"] for b in view.confirmed_bookings] == ["confirmed", "inProgress"]
    assert view.dashboard_stats["total_bookings"] == 7
    assert view.source_version == settings.projection_version
    assert view.reason == "trigger"


async def test_list_ordering(db, supplier, package):
    late = await make_booking(db, supplier, package, status="confirmed", paid_amount=1, event_date=future(40))
    early = await make_booking(db, supplier, package, status="confirmed", paid_amount=1, event_date=future(10))
    first_pending = await make_booking(db, supplier, package, event_date=future(50))
    second_pending = await make_booking(db, supplier, package, event_date=future(51))

    view = await projection_service.rebuild_supplier_view(db, supplier.id)

    assert [b["booking_id"] for b in view.confirmed_bookings] == [str(early.id), str(late.id)]
    assert [b["booking_id"] for b in view.pending_bookings] == [
        str(second_pending.id),
        str(first_pending.id),
    ]
    assert view.recent_bookings[0]["booking_id"] == str(second_pending.id)


async def test_upcoming_events_cap_and_filter(db, supplier, package):
    for days in range(1, 8):
        await make_booking(db, supplier, package, status="confirmed", paid_amount=1, event_date=future(days))
    await make_booking(db, supplier, package, status="pending", event_date=future(30))
    await make_booking(
        db, supplier, package, status="confirmed", paid_amount=1, event_date=date.today() - timedelta(days=3)
    )

    view = await projection_service.rebuild_supplier_view(db, supplier.id)

    assert len(view.upcoming_events) == settings.upcoming_events_limit
    event_dates = [e["event_date"] for e in view.upcoming_events]
    assert event_dates == sorted(event_dates)
    assert event_dates[0] == future(1).isoformat()
    assert all(e["status"] in ("confirmed", "inProgress") for e in view.upcoming_events)


async def test_recent_bookings_cap(db, supplier, package):
    for days in range(1, 14):
        await make_booking(db, supplier, package, event_date=future(days))

    view = await projection_service.rebuild_supplier_view(db, supplier.id)

    assert len(view.recent_bookings) == settings.recent_bookings_limit


async def test_summaries_carry_supplier_flags(db, supplier, package):
    await make_booking(db, supplier, package, paid_amount=100, event_date=future(5))
    await make_booking(db, supplier, package, paid_amount=0, event_date=future(6))

    view = await projection_service.rebuild_supplier_view(db, supplier.id)

    accept = {b["paid_amount"]: b["ui_flags"]["can_accept"] for b in view.pending_bookings}
    assert accept == {100: True, 0: False}
    assert all(b["ui_flags"]["can_decline"] for b in view.pending_bookings)


async def test_rebuild_is_idempotent(db, supplier, package):
    await make_booking(db, supplier, package, event_date=future(5))
    await make_booking(db, supplier, package, status="confirmed", paid_amount=1, event_date=future(6))

    first = await projection_service.rebuild_supplier_view(db, supplier.id)
    snapshot = projection_service.to_payload(first)
    second = await projection_service.rebuild_supplier_view(db, supplier.id, reason="manual")
    again = projection_service.to_payload(second)

    for payload in (snapshot, again):
        payload.pop("rebuilt_at")
        payload.pop("reason")
    assert snapshot == again

    rows = await db.execute(select(SupplierView).where(SupplierView.supplier_id == supplier.id))
    assert len(rows.scalars().all()) == 1


async def test_blocked_dates_and_account_flags(db, supplier, package):
    db.add(BlockedDate(supplier_id=supplier.id, date=future(3), block_type="unavailable"))
    db.add(BlockedDate(supplier_id=supplier.id, date=future(90), block_type="blocked"))
    await db.commit()
    booking = await make_booking(db, supplier, package, event_date=future(4))

    view = await projection_service.rebuild_supplier_view(db, supplier.id)

    assert [(b["block_type"], b["can_unblock"]) for b in view.blocked_dates] == [
        ("unavailable", True),
        ("requested", False),
    ]
    assert view.blocked_dates[1]["booking_id"] == str(booking.id)
    assert view.account_flags == {
        "is_active": True,
        "is_verified": True,
        "is_bookable": True,
        "is_paused": False,
    }


async def test_missing_supplier_returns_none(db):
    import uuid

    assert await projection_service.rebuild_supplier_view(db, uuid.uuid4()) is None


async def test_transition_refreshes_view(db, supplier, package, supplier_actor):
    booking = await make_booking(db, supplier, package, paid_amount=100)
    await projection_service.rebuild_supplier_view(db, supplier.id)
    await db.commit()

    await transition_service.confirm(db, booking.id, supplier_actor)

    view = await db.get(SupplierView, supplier.id)
    await db.refresh(view)
    assert view.pending_count == 0
    assert view.confirmed_count == 1
    assert view.confirmed_bookings[0]["booking_id"] == str(booking.id)


async def test_view_is_pushed_to_subscribers(db, supplier, package, supplier_actor):
    booking = await make_booking(db, supplier, package, paid_amount=100)
    queue = projection_service.broadcaster.subscribe(supplier.id)
    try:
        await transition_service.confirm(db, booking.id, supplier_actor)
        payload = await asyncio.wait_for(queue.get(), timeout=1)
    finally:
        projection_service.broadcaster.unsubscribe(supplier.id, queue)

    assert payload["supplier_id"] == str(supplier.id)
    assert payload["confirmed_count"] == 1


async def test_drift_is_repaired(db, supplier, package):
    other = await make_supplier(db, user_id=OTHER_SUPPLIER_USER, business_name="Flores & Co")
    await make_package(db, other)
    await projection_service.rebuild_all(db)
    await db.commit()

    # A write that bypassed the sync leaves the stored view behind.
    await make_booking(db, supplier, package)
    assert await projection_service.check_drift(db, supplier.id)
    assert not await projection_service.check_drift(db, other.id)

    repaired = await projection_service.repair_drift(db)
    await db.commit()

    assert repaired == [supplier.id]
    view = await db.get(SupplierView, supplier.id)
    assert view.pending_count == 1
    assert view.reason == "backfill"


async def test_repaired_view_is_stored_before_it_is_pushed(db, session_factory, supplier, package):
    await projection_service.rebuild_supplier_view(db, supplier.id)
    await db.commit()
    await make_booking(db, supplier, package)
    queue = projection_service.broadcaster.subscribe(supplier.id)
    try:
        await projection_service.repair_drift(db)
        pushed = queue.get_nowait()
    finally:
        projection_service.broadcaster.unsubscribe(supplier.id, queue)

    async with session_factory() as other:
        stored = await other.get(SupplierView, supplier.id)
    assert pushed["pending_count"] == stored.pending_count == 1


async def test_failed_repair_pushes_nothing(db, supplier, package, monkeypatch):
    await make_booking(db, supplier, package)
    queue = projection_service.broadcaster.subscribe(supplier.id)

    async def failing_commit():
        raise RuntimeError("connection lost")

    monkeypatch.setattr(db, "commit", failing_commit)
    try:
        with pytest.raises(RuntimeError):
            await projection_service.repair_drift(db)
        assert queue.empty()
    finally:
        projection_service.broadcaster.unsubscribe(supplier.id, queue)
        monkeypatch.undo()
        await db.rollback()


def test_broadcaster_drops_oldest_when_full():
    async def scenario():
        broadcaster = ProjectionBroadcaster(max_queue_size=2)
        supplier_id = "supplier"
        queue = broadcaster.subscribe(supplier_id)
        for n in range(3):
            assert broadcaster.publish(supplier_id, {"n": n}) == 1
        received = [queue.get_nowait()["n"], queue.get_nowait()["n"]]
        broadcaster.unsubscribe(supplier_id, queue)
        return received, broadcaster.subscriber_count(supplier_id)

    received, remaining = asyncio.run(scenario())
    assert received == [1, 2]
    assert remaining == 0


def test_publish_without_subscribers():
    assert ProjectionBroadcaster().publish("nobody", {}) == 0
