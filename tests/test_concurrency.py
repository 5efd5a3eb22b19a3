"""Per-booking single writer: stale writes are rejected, never merged."""

import pytest

from boda_backend.core.exceptions import ConcurrentModification
from boda_backend.services.booking_store import booking_store
from boda_backend.services.transition_service import transition_service

from tests.conftest import make_booking


async def test_stale_version_is_rejected(db, session_factory, supplier, package):
    booking = await make_booking(db, supplier, package, paid_amount=100)

    async with session_factory() as first, session_factory() as second:
        mine = await booking_store.get(first, booking.id)
        theirs = await booking_store.get(second, booking.id)
        assert mine.version == theirs.version

        mine.status = "confirmed"
        await booking_store.apply_transition(first, mine)
        await first.commit()

        theirs.status = "cancelled"
        with pytest.raises(ConcurrentModification) as exc_info:
            await booking_store.apply_transition(second, theirs)

    assert exc_info.value.code == "failed-precondition"
    assert "modified by another request" in exc_info.value.detail

    await db.refresh(booking)
    assert booking.status == "confirmed"


async def test_version_increments_on_every_write(db, supplier, package, supplier_actor):
    booking = await make_booking(db, supplier, package, paid_amount=100)
    initial = booking.version

    await transition_service.confirm(db, booking.id, supplier_actor)
    await transition_service.start(db, booking.id, supplier_actor)

    await db.refresh(booking)
    assert booking.version == initial + 2


async def test_second_action_sees_committed_status(db, session_factory, supplier, package, supplier_actor):
    booking = await make_booking(db, supplier, package, paid_amount=100)

    async with session_factory() as other:
        # Loaded before the confirm; the action must not act on this stale copy.
        await booking_store.get(other, booking.id)
        await transition_service.confirm(db, booking.id, supplier_actor)

        result = await transition_service.start(other, booking.id, supplier_actor)

    assert result.previous_status == "confirmed"
    assert result.booking.status == "inProgress"
