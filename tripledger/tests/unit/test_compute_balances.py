"""
tests/unit/test_compute_balances.py — Unit tests for balance_service.compute_trip_balances
                                      and balance_service.get_balance_response.

What this file proves:
  - Payer is credited the full expense amount they fronted
  - Each split participant is debited their split portion
  - Settlements are netted: the sender gains credit, the recipient loses it
  - Every active member appears in the result even if their balance is zero
  - An inactive user still referenced by an expense keeps an entry
  - The balance sum is zero for any consistent snapshot
  - get_balance_response refuses to answer (500) when splits do not reconcile

Unit test constraints:
  - No Flask application context. Snapshots are built from plain records.
  - All monetary amounts are Decimal. No float anywhere.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from tripledger.app.errors import AppError, ErrorCode
from tripledger.app.models.expense import SplitType
from tripledger.app.services.balance_service import (
    compute_trip_balances,
    get_balance_response,
)

from .conftest import equal_expense, expense, member, settlement, snapshot

A, B, C, D = 1, 2, 3, 4


def _balances(snap):
    return compute_trip_balances(snap.members, snap.expenses, snap.settlements)


def _assert_zero_sum(balances: dict[int, Decimal]) -> None:
    total = sum(balances.values(), Decimal("0"))
    assert abs(total) <= Decimal("0.01"), f"balances sum to {total}"


# ── Tests: compute_trip_balances ───────────────────────────────────────────

def test_two_members_equal_split():
    """A pays 100 split equally with B → {A: +50, B: -50}."""
    snap = snapshot(
        [member(A), member(B)],
        [equal_expense(1, A, "100.00", [A, B])],
    )
    assert _balances(snap) == {A: Decimal("50"), B: Decimal("-50")}


def test_settlement_reduces_both_sides():
    """
    A pays 90 split among A, B, C; B then pays A 30.
    Expense: A +60, B -30, C -30. Settlement: A +30, B 0.
    """
    snap = snapshot(
        [member(A), member(B), member(C)],
        [equal_expense(1, A, "90.00", [A, B, C])],
        [settlement(1, B, A, "30.00")],
    )
    assert _balances(snap) == {A: Decimal("30"), B: Decimal("0"), C: Decimal("-30")}


def test_payer_credited_split_participants_debited():
    snap = snapshot(
        [member(A), member(B)],
        [expense(1, A, "100.00", {A: "60.00", B: "40.00"})],
    )
    assert _balances(snap) == {A: Decimal("40.00"), B: Decimal("-40.00")}


def test_payer_without_split_is_credited_in_full():
    snap = snapshot(
        [member(A), member(B), member(C)],
        [expense(1, A, "60.00", {B: "30.00", C: "30.00"}, split_type=SplitType.PAID_FOR)],
    )
    assert _balances(snap) == {A: Decimal("60.00"), B: Decimal("-30.00"), C: Decimal("-30.00")}


def test_members_without_activity_appear_with_zero():
    snap = snapshot(
        [member(A), member(B), member(C)],
        [expense(1, A, "10.00", {A: "5.00", B: "5.00"})],
    )
    assert _balances(snap)[C] == Decimal("0")


def test_inactive_member_without_activity_is_omitted():
    snap = snapshot([member(A), member(B, active=False)])
    assert _balances(snap) == {A: Decimal("0")}


def test_inactive_member_with_history_keeps_entry():
    snap = snapshot(
        [member(A), member(B, active=False)],
        [expense(1, A, "40.00", {A: "20.00", B: "20.00"})],
    )
    balances = _balances(snap)
    assert balances[B] == Decimal("-20.00")
    _assert_zero_sum(balances)


def test_empty_trip():
    assert _balances(snapshot([])) == {}


def test_zero_sum_over_mixed_history():
    snap = snapshot(
        [member(A), member(B), member(C), member(D)],
        [
            equal_expense(1, A, "100.00", [A, B, C]),
            equal_expense(2, B, "57.31", [A, B, C, D]),
            expense(3, C, "20.00", {D: "20.00"}),
            expense(4, D, "75.50", {A: "25.50", B: "25.00", C: "25.00"}),
        ],
        [settlement(1, B, A, "12.00"), settlement(2, D, C, "5.55")],
    )
    _assert_zero_sum(_balances(snap))


def test_does_not_mutate_inputs():
    exp = expense(1, A, "10.00", {A: "5.00", B: "5.00"})
    snap = snapshot([member(A), member(B)], [exp])
    _balances(snap)
    _balances(snap)
    assert snap.expenses == (exp,)


# ── Tests: get_balance_response ────────────────────────────────────────────

def test_response_includes_names_and_simplified_debts():
    snap = snapshot(
        [member(A, "Alice"), member(B, "Bob")],
        [equal_expense(1, A, "100.00", [A, B])],
        currency="PHP",
    )
    result = get_balance_response(snap)

    assert result["trip_id"] == 1
    assert result["currency"] == "PHP"
    assert result["balance_sum"] == Decimal("0")
    assert {b["name"]: b["balance"] for b in result["balances"]} == {
        "Alice": Decimal("50"),
        "Bob": Decimal("-50"),
    }
    assert result["simplified_debts"] == [{
        "from_user_id": B,
        "from_name": "Bob",
        "to_user_id": A,
        "to_name": "Alice",
        "amount": Decimal("50.00"),
    }]


def test_unreconciled_splits_raise_integrity_error():
    """Splits short of the expense amount by 1.00 break the zero-sum rule."""
    snap = snapshot(
        [member(A), member(B)],
        [expense(1, A, "100.00", {A: "50.00", B: "49.00"})],
    )
    with pytest.raises(AppError) as exc_info:
        get_balance_response(snap)
    assert exc_info.value.code == ErrorCode.BALANCE_INTEGRITY
    assert exc_info.value.http_status == 500
