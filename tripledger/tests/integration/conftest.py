"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
  - The app is stateless (every request carries its trip snapshot), so no
    cleanup is needed between tests.

Helper functions (not fixtures) are provided to build request payloads:
  - member_payload(...)      → one member dict
  - expense_payload(...)     → one stored expense dict
  - settlement_payload(...)  → one stored settlement dict
  - trip_payload(...)        → a full snapshot dict
  - post_json(client, ...)   → (status_code, body)

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest

from tripledger.app import create_app


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once for the entire test session."""
    return create_app("testing")


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

ALICE, BOB, CAROL = 1, 2, 3


def member_payload(user_id: int, name: str, is_active: bool = True) -> dict:
    return {"user_id": user_id, "display_name": name, "is_active": is_active}


def expense_payload(
    expense_id: int,
    paid_by: int,
    amount: str,
    shares: dict[int, str],
    created_at: str = "2024-03-01T12:00:00+00:00",
    split_type: str = "Custom",
    description: str = "",
) -> dict:
    return {
        "id": expense_id,
        "amount": amount,
        "paid_by_user_id": paid_by,
        "split_type": split_type,
        "description": description or f"expense {expense_id}",
        "created_at": created_at,
        "splits": [
            {"user_id": uid, "amount": share, "is_paid": uid == paid_by}
            for uid, share in shares.items()
        ],
    }


def settlement_payload(
    settlement_id: int,
    from_user: int,
    to_user: int,
    amount: str,
    settlement_date: str = "2024-03-02T12:00:00+00:00",
    notes: str | None = None,
) -> dict:
    return {
        "id": settlement_id,
        "from_user_id": from_user,
        "to_user_id": to_user,
        "amount": amount,
        "settlement_date": settlement_date,
        "notes": notes,
    }


def trip_payload(
    members: list[dict] | None = None,
    expenses: list[dict] | None = None,
    settlements: list[dict] | None = None,
    trip_id: int = 1,
    currency: str | None = "PHP",
) -> dict:
    """
    Defaults to the three-person trip used across the suite:
      Alice pays 90, split 30 / 30 / 30; Bob later pays Alice 30.
      Final balances: Alice +30, Bob 0, Carol -30.
    """
    if members is None:
        members = [
            member_payload(ALICE, "Alice"),
            member_payload(BOB, "Bob"),
            member_payload(CAROL, "Carol"),
        ]
    if expenses is None:
        expenses = [
            expense_payload(
                1, ALICE, "90.00",
                {ALICE: "30.00", BOB: "30.00", CAROL: "30.00"},
                split_type="Equal",
                description="Island hopping",
            ),
        ]
    if settlements is None:
        settlements = [settlement_payload(1, BOB, ALICE, "30.00")]

    payload = {
        "trip_id": trip_id,
        "name": f"Trip {trip_id}",
        "members": members,
        "expenses": expenses,
        "settlements": settlements,
    }
    if currency is not None:
        payload["currency"] = currency
    return payload


def post_json(client, url: str, body) -> tuple[int, dict]:
    """POSTs `body` as JSON and returns (status_code, parsed JSON body)."""
    resp = client.post(url, json=body)
    return resp.status_code, resp.get_json()
