"""
tests/integration/test_dashboard.py — Integration tests for the user dashboard endpoint.

Endpoints covered:
  POST /users/:id/dashboard → 200 (per-trip summaries + per-currency totals)

Verified:
  - One summary per trip the user is active in
  - Balances in different currencies are reported separately
  - Trips where the user is inactive are skipped
"""

from __future__ import annotations

from .conftest import (
    ALICE,
    BOB,
    expense_payload,
    member_payload,
    post_json,
    trip_payload,
)


def _usd_trip() -> dict:
    """Bob pays 60 split with Alice → Alice -30 USD."""
    return trip_payload(
        trip_id=2,
        currency="USD",
        members=[member_payload(ALICE, "Alice"), member_payload(BOB, "Bob")],
        expenses=[expense_payload(5, BOB, "60.00", {ALICE: "30.00", BOB: "30.00"})],
        settlements=[],
    )


def _left_trip() -> dict:
    """Alice left this trip; it must not show up."""
    return trip_payload(
        trip_id=3,
        currency="EUR",
        members=[member_payload(ALICE, "Alice", is_active=False), member_payload(BOB, "Bob")],
        expenses=[],
        settlements=[],
    )


def test_dashboard(client):
    status, body = post_json(client, f"/api/v1/users/{ALICE}/dashboard", {
        "trips": [trip_payload(), _usd_trip(), _left_trip()],
    })

    assert status == 200
    data = body["data"]
    assert data["user_id"] == ALICE
    assert [t["trip_id"] for t in data["trips"]] == [1, 2]
    assert data["currencies"] == [
        {
            "currency": "PHP",
            "balance": "30.00",
            "total_spent": "90.00",
            "total_owed": "0.00",
            "trip_count": 1,
        },
        {
            "currency": "USD",
            "balance": "-30.00",
            "total_spent": "0.00",
            "total_owed": "30.00",
            "trip_count": 1,
        },
    ]


def test_dashboard_no_trips(client):
    status, body = post_json(client, f"/api/v1/users/{ALICE}/dashboard", {"trips": []})

    assert status == 200
    assert body["data"] == {"user_id": ALICE, "trips": [], "currencies": []}


def test_dashboard_requires_trips(client):
    status, body = post_json(client, f"/api/v1/users/{ALICE}/dashboard", {})
    assert status == 400
    assert body["error"]["code"] == "MISSING_FIELD"
