#!/usr/bin/env python3
"""
Supplier booking lifecycle flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Tokens are minted locally with the backend's JWT secret, so run it against
a development server that shares the same .env.

Usage:
    python scripts/flow_confirm_booking.py --event-date 2027-06-12
    python scripts/flow_confirm_booking.py --event-date 2027-06-12 --skip-complete

Flow:
    1. Register supplier profile
    2. Approve and verify supplier (as admin)
    3. Create package
    4. Create booking (as client)
    5. Try to confirm before payment (expected failure)
    6. Record payment (as client)
    7. Confirm booking (as supplier)
    8. Start service
    9. Complete booking
    10. Read supplier dashboard view
"""

import argparse
import json
import sys
import uuid

import httpx

from boda_backend.core.security import create_actor_token

BASE_URL = "http://localhost:8000"


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=10.0)
    elif method in ("POST", "PATCH"):
        response = httpx.request(method, url, headers=headers, json=data or {}, timeout=10.0)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    data = result["data"]
    if fields:
        data = {k: data.get(k) for k in fields if k in data}
    print(json.dumps(data, indent=2, default=str))
    return True


def transition(token: str, booking_id: str, action: str, body: dict | None = None) -> dict:
    result = api_request(token, "POST", f"/api/v1/bookings/{booking_id}/{action}", body)
    if result["status"] >= 400:
        print_result(result)
        sys.exit(1)
    booking = result["data"]["booking"]
    print(f"{result['data']['previous_status']} -> {booking['status']}")
    return booking


def main():
    parser = argparse.ArgumentParser(description="Supplier booking lifecycle flow")
    parser.add_argument("--event-date", required=True, help="Event date (YYYY-MM-DD)")
    parser.add_argument("--price", type=int, default=150_000, help="Package price (smallest unit)")
    parser.add_argument("--category", default="photography", help="Supplier category")
    parser.add_argument("--skip-complete", action="store_true", help="Stop after confirmation")
    args = parser.parse_args()

    supplier_user = f"supplier-{uuid.uuid4().hex[:8]}"
    client_user = f"client-{uuid.uuid4().hex[:8]}"
    supplier_token = create_actor_token(supplier_user, role="supplier")
    client_token = create_actor_token(client_user, role="client")
    admin_token = create_actor_token("flow-admin", role="admin")

    # Step 1: Register supplier
    print_step(1, "Register supplier profile")
    supplier_result = api_request(supplier_token, "POST", "/api/v1/suppliers", {
        "business_name": "Flow Studio",
        "category": args.category,
    })
    if not print_result(supplier_result, ["id", "business_name", "category", "account_status"]):
        sys.exit(1)
    supplier_id = supplier_result["data"]["id"]

    # Step 2: Approve supplier
    print_step(2, "Approve and verify supplier (as admin)")
    review_result = api_request(admin_token, "PATCH", f"/api/v1/suppliers/{supplier_id}/review", {
        "account_status": "active",
        "identity_verified": True,
    })
    if not print_result(review_result, ["id", "account_status", "is_eligible_for_bookings"]):
        sys.exit(1)

    # Step 3: Create package
    print_step(3, "Create package")
    package_result = api_request(supplier_token, "POST", f"/api/v1/suppliers/{supplier_id}/packages", {
        "name": "Full day coverage",
        "price": args.price,
        "includes": ["8 hours", "Online gallery"],
        "customizations": [{"name": "Drone", "price": 25_000}],
    })
    if not print_result(package_result, ["id", "name", "price", "category"]):
        sys.exit(1)
    package_id = package_result["data"]["id"]

    # Step 4: Create booking
    print_step(4, "Create booking (as client)")
    booking_result = api_request(client_token, "POST", "/api/v1/bookings", {
        "supplier_id": supplier_id,
        "package_id": package_id,
        "event_date": args.event_date,
        "event_name": "Flow wedding",
        "selected_customizations": ["Drone"],
    })
    if not print_result(booking_result, ["id", "booking_number", "total_price", "status"]):
        sys.exit(1)
    booking_id = booking_result["data"]["id"]
    total_price = booking_result["data"]["total_price"]

    # Step 5: Confirm without payment
    print_step(5, "Confirm before payment (expected to fail)")
    early = api_request(supplier_token, "POST", f"/api/v1/bookings/{booking_id}/confirm")
    print(f"Status: {early['status']} -> {early['data'].get('error', {}).get('code')}")

    # Step 6: Record payment
    print_step(6, "Record payment (as client)")
    payment_result = api_request(client_token, "POST", f"/api/v1/bookings/{booking_id}/payments", {
        "amount": total_price,
        "method": "transfer",
    })
    if not print_result(payment_result, ["id", "paid_amount", "status"]):
        sys.exit(1)

    # Step 7: Confirm
    print_step(7, "Confirm booking (as supplier)")
    transition(supplier_token, booking_id, "confirm")

    if not args.skip_complete:
        print_step(8, "Start service")
        transition(supplier_token, booking_id, "start")

        print_step(9, "Complete booking")
        transition(supplier_token, booking_id, "complete")

    # Step 10: Dashboard view
    print_step(10, "Read supplier dashboard view")
    view_result = api_request(supplier_token, "GET", f"/api/v1/suppliers/{supplier_id}/view")
    if not print_result(view_result, ["pending_count", "confirmed_count", "dashboard_stats", "rebuilt_at", "source_version"]):
        sys.exit(1)

    print("\n" + "="*60)
    print("FLOW COMPLETE")
    print("="*60)
    print(f"Supplier: {supplier_id}")
    print(f"Booking:  {booking_result['data']['booking_number']}")


if __name__ == "__main__":
    main()
