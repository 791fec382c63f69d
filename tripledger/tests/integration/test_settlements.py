"""
tests/integration/test_settlements.py — Integration tests for the settlement check endpoint.

Endpoints covered:
  POST /trips/settlements/check → 200 (validate a payment before recording it)

Verified:
  - Paying the outstanding debt → 200, no warnings
  - OVERPAYMENT warning (200) — a payment above the current debt is still valid
  - SELF_SETTLEMENT (422)     — from_user_id cannot equal to_user_id
  - USER_NOT_FOUND (404)      — both parties must be trip members
  - Amount precision enforced by the schema (400)

Notes:
  - Nothing is recorded. The caller stores the settlement after a
    successful check and includes it in later snapshots.
"""

from __future__ import annotations

from .conftest import ALICE, BOB, CAROL, post_json, trip_payload

URL = "/api/v1/trips/settlements/check"


def _check(client, from_user: int, to_user: int, amount: str, **extra):
    body = {
        "trip": trip_payload(),
        "from_user_id": from_user,
        "to_user_id": to_user,
        "amount": amount,
        **extra,
    }
    return post_json(client, URL, body)


def test_exact_payment(client):
    status, body = _check(client, CAROL, ALICE, "30.00", notes="GCash")

    assert status == 200
    assert body["data"] == {
        "trip_id": 1,
        "from_user_id": CAROL,
        "to_user_id": ALICE,
        "amount": "30.00",
        "notes": "GCash",
        "outstanding_debt": "30.00",
    }
    assert body["warnings"] == []


def test_overpayment_warns_but_succeeds(client):
    status, body = _check(client, CAROL, ALICE, "50.00")

    assert status == 200
    assert [w["code"] for w in body["warnings"]] == ["OVERPAYMENT"]


def test_prepayment_after_settling(client):
    """Bob already paid his 30; anything more is a pre-payment."""
    status, body = _check(client, BOB, ALICE, "5.00")

    assert status == 200
    assert body["data"]["outstanding_debt"] == "0.00"
    assert body["warnings"][0]["code"] == "OVERPAYMENT"


def test_self_settlement(client):
    status, body = _check(client, ALICE, ALICE, "10.00")
    assert status == 422
    assert body["error"]["code"] == "SELF_SETTLEMENT"


def test_unknown_recipient(client):
    status, body = _check(client, CAROL, 99, "10.00")
    assert status == 404
    assert body["error"]["code"] == "USER_NOT_FOUND"
    assert body["error"]["field"] == "to_user_id"


def test_amount_precision(client):
    status, body = _check(client, CAROL, ALICE, "10.001")
    assert status == 400
    assert body["error"]["code"] == "INVALID_AMOUNT_PRECISION"


def test_non_positive_amount(client):
    status, body = _check(client, CAROL, ALICE, "0")
    assert status == 400
    assert body["error"]["field"] == "amount"
