"""
services/split_service.py — Split allocation for a single expense.

Given an expense amount, a split type and the trip's members, computes each
participant's owed share. Persisting the result is the caller's job: this
module performs no I/O and holds no state.

Policies (one handler per SplitType, dispatched through _HANDLERS):
  Equal       — every ACTIVE member pays amount / n.
  PaidFor     — the payer covered the listed users; each pays amount / n.
                A listed user is selected when their request amount is > 0.
  Custom      — caller supplies exact amounts; they must reconcile with the
                expense amount to within 0.01.
  Percentage  — caller supplies percentages; they must sum to 100 to within
                0.01 (exclusive). Amounts are rounded to 2 dp and the
                leftover cents go to the largest remainders, so the
                splits sum to the expense amount exactly.

Equal and PaidFor shares are NOT rounded here. apportion_cents() turns them
into 2-dp amounts that still add up to the expense when they are sent out.

Layer rules:
  - No Flask imports. Receives plain values and records, returns records.
  - Raises ValidationError for every rejected input; never returns partial
    results.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from decimal import ROUND_DOWN, Decimal

from tripledger.app.errors import ErrorCode, NotFoundError, ValidationError
from tripledger.app.models.expense import Expense, ExpenseSplit, SplitType
from tripledger.app.models.trip import Member, TripSnapshot

logger = logging.getLogger(__name__)

_TOLERANCE = Decimal("0.01")
_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


# ── Private helpers ────────────────────────────────────────────────────────

def _coerce_split_type(split_type: SplitType | str) -> SplitType:
    """Accepts a SplitType or its wire value; rejects anything else."""
    if isinstance(split_type, SplitType):
        return split_type
    try:
        return SplitType(split_type)
    except ValueError:
        valid = ", ".join(t.value for t in SplitType)
        raise ValidationError(
            ErrorCode.INVALID_SPLIT_TYPE,
            f"'{split_type}' is not a valid split type. Valid values: {valid}.",
            field="split_type",
        ) from None


def _validate_amount(amount: Decimal) -> None:
    if amount is None or amount <= Decimal("0"):
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT,
            "Expense amount must be greater than zero.",
            field="amount",
        )


def _require_explicit_splits(
        explicit_splits: list[dict] | None,
        split_type: SplitType,
) -> list[dict]:
    if explicit_splits is None:
        raise ValidationError(
            ErrorCode.MISSING_SPLITS,
            f"splits are required when split_type is '{split_type.value}'.",
            field="splits",
        )
    if not explicit_splits:
        raise ValidationError(
            ErrorCode.NO_PARTICIPANTS,
            "At least one participant is required.",
            field="splits",
        )

    user_ids = [s["user_id"] for s in explicit_splits]
    if len(user_ids) != len(set(user_ids)):
        raise ValidationError(
            ErrorCode.DUPLICATE_SPLIT_USER,
            "The same user_id appears more than once in the splits array.",
            field="splits",
        )
    return explicit_splits


def _validate_participants_are_active(
        user_ids: Iterable[int],
        active_ids: set[int],
) -> None:
    """Raises SPLIT_USER_NOT_MEMBER naming the first user who is not an active member."""
    for user_id in user_ids:
        if user_id not in active_ids:
            raise ValidationError(
                ErrorCode.SPLIT_USER_NOT_MEMBER,
                f"User {user_id} is not an active member of this trip.",
                field="splits",
            )


def _divide_evenly(
        amount: Decimal,
        participant_ids: list[int],
        paid_by_user_id: int,
) -> list[ExpenseSplit]:
    share = amount / Decimal(len(participant_ids))
    return [
        ExpenseSplit(
            user_id=user_id,
            amount=share,
            is_paid=(user_id == paid_by_user_id),
        )
        for user_id in participant_ids
    ]


# ── Policy handlers ────────────────────────────────────────────────────────

def _allocate_equal(
        amount: Decimal,
        active_ids: list[int],
        paid_by_user_id: int,
        explicit_splits: list[dict] | None,
) -> list[ExpenseSplit]:
    if not active_ids:
        raise ValidationError(
            ErrorCode.NO_PARTICIPANTS,
            "The trip has no active members to split the expense between.",
        )
    return _divide_evenly(amount, active_ids, paid_by_user_id)


def _allocate_paid_for(
        amount: Decimal,
        active_ids: list[int],
        paid_by_user_id: int,
        explicit_splits: list[dict] | None,
) -> list[ExpenseSplit]:
    splits = _require_explicit_splits(explicit_splits, SplitType.PAID_FOR)

    # Only users flagged with a positive amount were paid for.
    paid_for_ids = [
        s["user_id"] for s in splits
        if s.get("amount") is not None and s["amount"] > Decimal("0")
    ]
    if not paid_for_ids:
        raise ValidationError(
            ErrorCode.NO_PARTICIPANTS,
            "Must specify at least one person this was paid for.",
            field="splits",
        )

    _validate_participants_are_active(paid_for_ids, set(active_ids))
    return _divide_evenly(amount, paid_for_ids, paid_by_user_id)


def _allocate_custom(
        amount: Decimal,
        active_ids: list[int],
        paid_by_user_id: int,
        explicit_splits: list[dict] | None,
) -> list[ExpenseSplit]:
    splits = _require_explicit_splits(explicit_splits, SplitType.CUSTOM)
    _validate_participants_are_active((s["user_id"] for s in splits), set(active_ids))

    total = sum((s.get("amount") or Decimal("0") for s in splits), Decimal("0"))
    if abs(total - amount) > _TOLERANCE:
        raise ValidationError(
            ErrorCode.SPLIT_SUM_MISMATCH,
            f"Split amounts ({total}) do not equal expense amount ({amount}).",
            field="splits",
        )

    return [
        ExpenseSplit(
            user_id=s["user_id"],
            amount=s.get("amount") or Decimal("0"),
            percentage=s.get("percentage"),
            is_paid=(s["user_id"] == paid_by_user_id),
        )
        for s in splits
    ]


def _allocate_percentage(
        amount: Decimal,
        active_ids: list[int],
        paid_by_user_id: int,
        explicit_splits: list[dict] | None,
) -> list[ExpenseSplit]:
    splits = _require_explicit_splits(explicit_splits, SplitType.PERCENTAGE)

    for s in splits:
        if s.get("percentage") is None:
            raise ValidationError(
                ErrorCode.MISSING_PERCENTAGE,
                f"Split for user {s['user_id']} has no percentage.",
                field="splits",
            )

    _validate_participants_are_active((s["user_id"] for s in splits), set(active_ids))

    # Exclusive bound: 99.99 and 100.01 are both rejected.
    total_percentage = sum((s["percentage"] for s in splits), Decimal("0"))
    if abs(total_percentage - _HUNDRED) >= _TOLERANCE:
        raise ValidationError(
            ErrorCode.PERCENTAGE_SUM_MISMATCH,
            f"Percentages must equal 100% (got {total_percentage}%).",
            field="splits",
        )

    # Shares are taken of the stated total so they cover `amount` exactly
    # even when the percentages are a hair off 100.
    amounts = apportion_cents(
        amount,
        [amount * s["percentage"] / total_percentage for s in splits],
    )
    return [
        ExpenseSplit(
            user_id=s["user_id"],
            amount=share,
            percentage=s["percentage"],
            is_paid=(s["user_id"] == paid_by_user_id),
        )
        for s, share in zip(splits, amounts)
    ]


_HANDLERS: dict[SplitType, Callable[..., list[ExpenseSplit]]] = {
    SplitType.EQUAL:      _allocate_equal,
    SplitType.PAID_FOR:   _allocate_paid_for,
    SplitType.CUSTOM:     _allocate_custom,
    SplitType.PERCENTAGE: _allocate_percentage,
}


# ── Public service functions ───────────────────────────────────────────────

def apportion_cents(total: Decimal, shares: list[Decimal]) -> list[Decimal]:
    """
    Rounds `shares` to 2 dp so that they add up to `total` (a 2-dp amount).

    Every share is rounded down, then the leftover cents are handed out one
    at a time to the shares that lost the most in rounding. Equal remainders
    keep input order.

    Example: total 0.10, shares 0.025 × 4 → [0.03, 0.03, 0.02, 0.02]
    """
    floored = [share.quantize(_CENT, rounding=ROUND_DOWN) for share in shares]
    leftover = int((total - sum(floored, Decimal("0"))) / _CENT)

    by_remainder = sorted(
        range(len(shares)),
        key=lambda i: shares[i] - floored[i],
        reverse=True,
    )
    for i in by_remainder[:max(leftover, 0)]:
        floored[i] += _CENT
    return floored


def allocate_splits(
        amount: Decimal,
        split_type: SplitType | str,
        members: Iterable[Member],
        paid_by_user_id: int,
        explicit_splits: list[dict] | None = None,
) -> list[ExpenseSplit]:
    """
    Computes the splits for one expense.

    Args:
        amount:          Positive Decimal expense amount.
        split_type:      SplitType or its wire value ("Equal", "PaidFor", ...).
        members:         Every member of the trip. Only active ones may be
                         assigned a split.
        paid_by_user_id: The payer. Used to set ExpenseSplit.is_paid.
        explicit_splits: [{"user_id": int, "amount": Decimal | None,
                           "percentage": Decimal | None}, ...]
                         Required for PaidFor, Custom and Percentage;
                         ignored for Equal.

    Returns:
        List of ExpenseSplit (expense_id unset). Amounts sum to `amount`
        within 0.01.

    Raises:
        ValidationError — INVALID_SPLIT_TYPE, INVALID_AMOUNT, MISSING_SPLITS,
        MISSING_PERCENTAGE, NO_PARTICIPANTS, DUPLICATE_SPLIT_USER,
        SPLIT_USER_NOT_MEMBER, SPLIT_SUM_MISMATCH, PERCENTAGE_SUM_MISMATCH.
    """
    split_type = _coerce_split_type(split_type)
    _validate_amount(amount)

    active_ids = [m.user_id for m in members if m.is_active]
    splits = _HANDLERS[split_type](amount, active_ids, paid_by_user_id, explicit_splits)

    logger.debug(
        "Allocated %s expense of %s across %d participant(s)",
        split_type.value, amount, len(splits),
    )
    return splits


def reassign_participants(
        expense: Expense,
        participant_ids: list[int],
        members: Iterable[Member],
) -> tuple[SplitType, list[ExpenseSplit]]:
    """
    Re-divides an existing expense evenly among a new participant set.

    The old splits are discarded by the caller and replaced with the result.
    The split type becomes Equal when every active member participates and
    Custom otherwise.
    """
    if not participant_ids:
        raise ValidationError(
            ErrorCode.NO_PARTICIPANTS,
            "At least one participant is required.",
            field="participant_ids",
        )
    if len(participant_ids) != len(set(participant_ids)):
        raise ValidationError(
            ErrorCode.DUPLICATE_SPLIT_USER,
            "The same user_id appears more than once in participant_ids.",
            field="participant_ids",
        )

    active_ids = [m.user_id for m in members if m.is_active]
    _validate_participants_are_active(participant_ids, set(active_ids))

    splits = [
        ExpenseSplit(
            user_id=s.user_id,
            amount=s.amount,
            is_paid=s.is_paid,
            expense_id=expense.id,
        )
        for s in _divide_evenly(expense.amount, participant_ids, expense.paid_by_user_id)
    ]
    split_type = (
        SplitType.EQUAL if len(participant_ids) == len(active_ids) else SplitType.CUSTOM
    )
    return split_type, splits


def reassign_expense_participants(
        snapshot: TripSnapshot,
        expense_id: int,
        participant_ids: list[int],
) -> tuple[Expense, SplitType, list[ExpenseSplit]]:
    """
    Looks up expense_id in the snapshot and re-divides it among participant_ids.

    Raises:
        NotFoundError(EXPENSE_NOT_FOUND) — the expense is not in the snapshot.
    """
    expense = next((e for e in snapshot.expenses if e.id == expense_id), None)
    if expense is None:
        raise NotFoundError(
            ErrorCode.EXPENSE_NOT_FOUND,
            f"Expense {expense_id} does not exist in trip {snapshot.trip_id}.",
        )

    split_type, splits = reassign_participants(expense, participant_ids, snapshot.members)
    return expense, split_type, splits
