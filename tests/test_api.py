"""HTTP and WebSocket tests through the FastAPI application."""

import asyncio
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from starlette.websockets import WebSocketDisconnect

from boda_backend.config import settings
from boda_backend.models.booking import BlockedDate

from tests.conftest import (
    CLIENT_USER,
    OTHER_SUPPLIER_USER,
    SUPPLIER_USER,
    auth_headers,
    future,
    make_booking,
    make_package,
    make_supplier,
)

SUPPLIER_HEADERS = auth_headers(SUPPLIER_USER, "supplier")
CLIENT_HEADERS = auth_headers(CLIENT_USER, "client")


def _assert_error(response, status_code: int, code: str) -> dict:
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    return body["error"]


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


async def test_missing_token_is_unauthenticated(client):
    response = await client.get(f"/api/v1/bookings/{uuid.uuid4()}")
    _assert_error(response, 401, "unauthenticated")


async def test_bad_token_is_unauthenticated(client):
    response = await client.get(
        f"/api/v1/bookings/{uuid.uuid4()}", headers={"Authorization": "Bearer not-a-jwt"}
    )
    _assert_error(response, 401, "unauthenticated")


async def test_unknown_booking_is_not_found(client):
    response = await client.post(f"/api/v1/bookings/{uuid.uuid4()}/confirm", headers=SUPPLIER_HEADERS)
    _assert_error(response, 404, "not-found")


async def test_confirm_unpaid_is_failed_precondition(client, db, supplier, package):
    booking = await make_booking(db, supplier, package)

    response = await client.post(f"/api/v1/bookings/{booking.id}/confirm", headers=SUPPLIER_HEADERS)

    error = _assert_error(response, 412, "failed-precondition")
    assert "Payment required before acceptance" in error["message"]


async def test_other_supplier_is_permission_denied(client, db, supplier, package):
    booking = await make_booking(db, supplier, package, paid_amount=100)

    response = await client.post(
        f"/api/v1/bookings/{booking.id}/confirm",
        headers=auth_headers(OTHER_SUPPLIER_USER, "supplier"),
    )

    _assert_error(response, 403, "permission-denied")


async def test_cancel_without_reason_is_invalid_argument(client, db, supplier, package):
    booking = await make_booking(db, supplier, package, status="confirmed", paid_amount=100)

    missing = await client.post(f"/api/v1/bookings/{booking.id}/cancel", headers=SUPPLIER_HEADERS, json={})
    blank = await client.post(
        f"/api/v1/bookings/{booking.id}/cancel", headers=SUPPLIER_HEADERS, json={"reason": "   "}
    )
    no_body = await client.post(f"/api/v1/bookings/{booking.id}/cancel", headers=SUPPLIER_HEADERS)

    _assert_error(missing, 422, "invalid-argument")
    _assert_error(blank, 422, "invalid-argument")
    _assert_error(no_body, 422, "invalid-argument")


async def test_cancel_checks_booking_then_owner_then_status(client, db, supplier, package):
    confirmed = await make_booking(db, supplier, package, status="confirmed", paid_amount=100)
    pending = await make_booking(db, supplier, package, event_date=future(45))

    unknown = await client.post(
        f"/api/v1/bookings/{uuid.uuid4()}/cancel", headers=SUPPLIER_HEADERS, json={}
    )
    stranger = await client.post(
        f"/api/v1/bookings/{confirmed.id}/cancel",
        headers=auth_headers(OTHER_SUPPLIER_USER, "supplier"),
        json={},
    )
    not_confirmed = await client.post(
        f"/api/v1/bookings/{pending.id}/cancel", headers=SUPPLIER_HEADERS, json={}
    )

    _assert_error(unknown, 404, "not-found")
    _assert_error(stranger, 403, "permission-denied")
    _assert_error(not_confirmed, 412, "failed-precondition")


async def test_reject_without_body(client, db, supplier, package):
    booking = await make_booking(db, supplier, package)

    response = await client.post(f"/api/v1/bookings/{booking.id}/reject", headers=SUPPLIER_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["previous_status"] == "pending"
    assert body["booking"]["status"] == "cancelled"
    assert body["booking"]["cancellation_reason"] == "Rejected by supplier"


async def test_booking_flow(client, db, supplier, package):
    payload = {
        "supplier_id": str(supplier.id),
        "package_id": str(package.id),
        "event_date": future(20).isoformat(),
        "event_time": "16:30",
        "selected_customizations": ["Drone"],
    }
    created = await client.post("/api/v1/bookings", headers=CLIENT_HEADERS, json=payload)
    assert created.status_code == 201, created.text
    booking = created.json()
    assert booking["total_price"] == 120_000
    assert booking["ui_flags"]["can_accept"] is False

    repeat = await client.post("/api/v1/bookings", headers=CLIENT_HEADERS, json=payload)
    assert repeat.status_code == 200
    assert repeat.json()["id"] == booking["id"]

    paid = await client.post(
        f"/api/v1/bookings/{booking['id']}/payments",
        headers=CLIENT_HEADERS,
        json={"amount": 60_000, "method": "transfer"},
    )
    assert paid.status_code == 201, paid.text
    assert paid.json()["paid_amount"] == 60_000

    details = await client.get(f"/api/v1/bookings/{booking['id']}", headers=SUPPLIER_HEADERS)
    assert details.json()["ui_flags"]["can_accept"] is True

    confirmed = await client.post(f"/api/v1/bookings/{booking['id']}/confirm", headers=SUPPLIER_HEADERS)
    assert confirmed.status_code == 200
    assert confirmed.json()["booking"]["status"] == "confirmed"
    assert confirmed.json()["booking"]["ui_flags"]["can_start"] is True

    again = await client.post(f"/api/v1/bookings/{booking['id']}/confirm", headers=SUPPLIER_HEADERS)
    _assert_error(again, 412, "failed-precondition")

    view = await client.get(f"/api/v1/suppliers/{supplier.id}/view", headers=SUPPLIER_HEADERS)
    assert view.status_code == 200
    assert view.json()["pending_count"] == 0
    assert view.json()["confirmed_count"] == 1


async def test_date_conflict_is_already_exists(client, db, supplier, package):
    await make_booking(db, supplier, package, client_id="someone", event_date=future(20))

    response = await client.post(
        "/api/v1/bookings",
        headers=CLIENT_HEADERS,
        json={
            "supplier_id": str(supplier.id),
            "package_id": str(package.id),
            "event_date": future(20).isoformat(),
        },
    )

    _assert_error(response, 409, "already-exists")


async def test_switched_off_bookings_are_unavailable(client, supplier, package, monkeypatch):
    monkeypatch.setattr(settings, "feature_bookings_enabled", False)

    response = await client.post(
        "/api/v1/bookings",
        headers=CLIENT_HEADERS,
        json={
            "supplier_id": str(supplier.id),
            "package_id": str(package.id),
            "event_date": future(20).isoformat(),
        },
    )

    error = _assert_error(response, 503, "unavailable")
    assert "New bookings" in error["message"]


async def test_client_hides_finished_booking(client, db, supplier, package):
    booking = await make_booking(db, supplier, package, status="completed", paid_amount=1)

    hidden = await client.post(f"/api/v1/bookings/{booking.id}/hide", headers=CLIENT_HEADERS)
    assert hidden.status_code == 200
    assert hidden.json()["hidden_by_client"] is True

    listed = await client.get("/api/v1/bookings", headers=CLIENT_HEADERS)
    assert listed.json()["total"] == 0

    by_supplier = await client.post(f"/api/v1/bookings/{booking.id}/hide", headers=SUPPLIER_HEADERS)
    _assert_error(by_supplier, 403, "permission-denied")


async def test_list_rejects_unknown_status(client, supplier):
    response = await client.get("/api/v1/bookings?status=expired", headers=SUPPLIER_HEADERS)
    _assert_error(response, 422, "invalid-argument")


async def test_list_supplier_bookings(client, db, supplier, package):
    await make_booking(db, supplier, package, event_date=future(3))
    await make_booking(db, supplier, package, status="confirmed", paid_amount=1, event_date=future(4))

    response = await client.get(
        "/api/v1/bookings",
        headers=SUPPLIER_HEADERS,
        params={"status": ["pending", "confirmed"], "page_size": 1},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert len(body["bookings"]) == 1


async def test_client_cannot_read_supplier_view(client, supplier):
    response = await client.get(f"/api/v1/suppliers/{supplier.id}/view", headers=CLIENT_HEADERS)
    _assert_error(response, 403, "permission-denied")


async def test_booking_held_date_cannot_be_unblocked(client, db, supplier, package):
    booking = await make_booking(db, supplier, package, status="confirmed", paid_amount=1)
    block = (await db.execute(select(BlockedDate).where(BlockedDate.booking_id == booking.id))).scalar_one()

    response = await client.delete(
        f"/api/v1/suppliers/{supplier.id}/blocked-dates/{block.id}", headers=SUPPLIER_HEADERS
    )

    _assert_error(response, 412, "failed-precondition")


async def test_manual_block_roundtrip(client, supplier):
    created = await client.post(
        f"/api/v1/suppliers/{supplier.id}/blocked-dates",
        headers=SUPPLIER_HEADERS,
        json={"date": future(8).isoformat(), "reason": "Family trip"},
    )
    assert created.status_code == 201
    assert created.json()["can_unblock"] is True

    deleted = await client.delete(
        f"/api/v1/suppliers/{supplier.id}/blocked-dates/{created.json()['id']}",
        headers=SUPPLIER_HEADERS,
    )
    assert deleted.status_code == 204


async def test_supplier_onboarding(client):
    headers = auth_headers("new-supplier", "supplier")
    created = await client.post(
        "/api/v1/suppliers", headers=headers, json={"business_name": "Som & Luz", "category": "music"}
    )
    assert created.status_code == 201
    supplier_id = created.json()["id"]
    assert created.json()["is_eligible_for_bookings"] is False

    eligibility = await client.get(f"/api/v1/suppliers/{supplier_id}/eligibility")
    assert eligibility.json()["eligible"] is False

    review = await client.patch(
        f"/api/v1/suppliers/{supplier_id}/review",
        headers=headers,
        json={"account_status": "active", "identity_verified": True},
    )
    _assert_error(review, 403, "permission-denied")

    review = await client.patch(
        f"/api/v1/suppliers/{supplier_id}/review",
        headers=auth_headers("ops", "admin"),
        json={"account_status": "active", "identity_verified": True},
    )
    assert review.status_code == 200
    assert review.json()["is_eligible_for_bookings"] is True

    locked = await client.patch(
        f"/api/v1/suppliers/{supplier_id}", headers=headers, json={"category": "catering"}
    )
    _assert_error(locked, 412, "failed-precondition")


def test_supplier_view_stream(override_db, session_factory):
    async def seed():
        async with session_factory() as session:
            supplier = await make_supplier(session)
            package = await make_package(session, supplier)
            await make_booking(session, supplier, package)
            return supplier.id

    supplier_id = asyncio.run(seed())
    token = SUPPLIER_HEADERS["Authorization"].removeprefix("Bearer ")

    with TestClient(override_db) as client:
        with client.websocket_connect(
            f"/api/v1/suppliers/{supplier_id}/view/stream?token={token}"
        ) as websocket:
            snapshot = websocket.receive_json()
            assert snapshot["supplier_id"] == str(supplier_id)
            assert snapshot["pending_count"] == 1

            rebuilt = client.post(
                f"/api/v1/suppliers/{supplier_id}/view/rebuild", headers=SUPPLIER_HEADERS
            )
            assert rebuilt.status_code == 200

            pushed = websocket.receive_json()
            assert pushed["reason"] == "manual"
            assert pushed["pending_count"] == 1


def test_supplier_view_stream_refuses_strangers(override_db, session_factory):
    async def seed():
        async with session_factory() as session:
            supplier = await make_supplier(session)
            return supplier.id

    supplier_id = asyncio.run(seed())
    token = auth_headers(OTHER_SUPPLIER_USER, "supplier")["Authorization"].removeprefix("Bearer ")

    with TestClient(override_db) as client:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(
                f"/api/v1/suppliers/{supplier_id}/view/stream?token={token}"
            ):
                pass
    assert exc_info.value.code == 1008
