"""
services/balance_service.py — Balance computation for a trip snapshot.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The canonical formula must not be reimplemented elsewhere in the codebase.

Two views are produced from the same records:
  compute_trip_balances()  — final signed balance per member (snapshot view).
  compute_member_ledger()  — one member's chronological transaction feed with
                             a running total (ledger view).

Sign convention: positive = the trip owes this member money,
                 negative = this member owes the trip.

Layer rules:
  - No Flask imports. No HTTP knowledge.
  - Receives already-materialised records; never fetches anything.
  - Reads splits as stored on each expense. Allocation happened when the
    expense was recorded (split_service.py) and is not redone here.
  - Performs no division.

Zero-sum guarantee:
  Every mutation below is a paired credit/debit, so sum(balances) == 0
  whenever each expense's splits reconcile with its amount.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal
from itertools import accumulate

from tripledger.app.errors import AppError, ErrorCode, NotFoundError
from tripledger.app.models.expense import Expense, SplitType
from tripledger.app.models.ledger import (
    CurrencyBalance,
    LedgerEntry,
    MemberLedger,
    TransactionType,
    TripSummary,
)
from tripledger.app.models.settlement import Settlement
from tripledger.app.models.trip import Member, TripSnapshot
from tripledger.app.services.settlement_service import suggest_settlements

logger = logging.getLogger(__name__)

_TOLERANCE = Decimal("0.01")
_ZERO = Decimal("0")


# ── Snapshot balances ──────────────────────────────────────────────────────

def compute_trip_balances(
        members: Iterable[Member],
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement],
) -> dict[int, Decimal]:
    """
    Canonical balance computation for a trip.

    Returns {user_id: net_balance} for every active member.

    Algorithm:
      1. Start every active member at zero.
      2. Credit each payer for the full expense amount they fronted and
         debit each split participant for their share.
      3. Net settlements: paying reduces what you owe (+), receiving reduces
         what you are owed (-).
      4. No normalisation or rounding.

    A user who is no longer active but still appears in an expense or
    settlement keeps an entry, otherwise the map would stop summing to zero.
    """
    balances: dict[int, Decimal] = defaultdict(Decimal)

    for member in members:
        if member.is_active:
            balances[member.user_id] = _ZERO

    for expense in expenses:
        balances[expense.paid_by_user_id] += expense.amount
        for split in expense.splits:
            balances[split.user_id] -= split.amount

    for settlement in settlements:
        balances[settlement.from_user_id] += settlement.amount
        balances[settlement.to_user_id] -= settlement.amount

    return dict(balances)


def get_balance_response(snapshot: TripSnapshot) -> dict:
    """
    Builds the full balance payload for one trip.

    Computes balances, enriches them with display names, runs debt
    simplification and asserts the zero-sum invariant before responding.

    Raises:
        AppError(BALANCE_INTEGRITY, 500) — the snapshot's balances do not sum
        to zero within 0.01, meaning some expense's splits do not reconcile.
    """
    balances = compute_trip_balances(
        snapshot.members, snapshot.expenses, snapshot.settlements
    )
    names = {m.user_id: m.display_name for m in snapshot.members}

    balance_sum = sum(balances.values(), _ZERO)
    if abs(balance_sum) > _TOLERANCE:
        raise AppError(
            ErrorCode.BALANCE_INTEGRITY,
            f"Balance integrity check failed: sum was {balance_sum} (expected 0.00). "
            f"Trip {snapshot.trip_id} has inconsistent financial data.",
            500,
        )

    return {
        "trip_id": snapshot.trip_id,
        "currency": snapshot.currency,
        "balances": [
            {
                "user_id": user_id,
                "name": names.get(user_id, f"user_{user_id}"),
                "balance": balance,
            }
            for user_id, balance in balances.items()
        ],
        "simplified_debts": [
            {
                "from_user_id": s.from_user_id,
                "from_name": names.get(s.from_user_id, f"user_{s.from_user_id}"),
                "to_user_id": s.to_user_id,
                "to_name": names.get(s.to_user_id, f"user_{s.to_user_id}"),
                "amount": s.amount,
            }
            for s in suggest_settlements(balances)
        ],
        "balance_sum": balance_sum,
    }


# ── Member ledger ──────────────────────────────────────────────────────────

def _require_member(members: Iterable[Member], user_id: int) -> Member:
    member = next((m for m in members if m.user_id == user_id), None)
    if member is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} is not a member of this trip.",
        )
    return member


def _paid_for_note(expense: Expense, user_id: int, names: dict[int, str]) -> str | None:
    if expense.split_type != SplitType.PAID_FOR:
        return None
    if expense.paid_by_user_id == user_id:
        covered = [names.get(s.user_id, f"user_{s.user_id}") for s in expense.splits]
        return f"Paid for: {', '.join(covered)}" if covered else None
    payer = names.get(expense.paid_by_user_id, f"user_{expense.paid_by_user_id}")
    return f"{payer} paid for you"


def _expense_entry(expense: Expense, user_id: int, names: dict[int, str]) -> LedgerEntry:
    split = expense.split_for(user_id)
    owes = split.amount if split is not None else _ZERO
    is_payer = expense.paid_by_user_id == user_id
    paid = expense.amount if is_payer else _ZERO

    return LedgerEntry(
        transaction_type=TransactionType.EXPENSE,
        date=expense.created_at,
        description=expense.description,
        amount=paid - owes,
        transaction_id=expense.id,
        total_amount=expense.amount,
        is_user_payer=is_payer,
        expense_id=expense.id,
        paid_by_user_id=expense.paid_by_user_id,
        notes=_paid_for_note(expense, user_id, names),
    )


def _settlement_entry(
        settlement: Settlement,
        user_id: int,
        names: dict[int, str],
) -> LedgerEntry:
    is_paying = settlement.from_user_id == user_id
    if is_paying:
        counterpart = names.get(settlement.to_user_id, f"user_{settlement.to_user_id}")
        description = f"Payment to {counterpart}"
    else:
        counterpart = names.get(settlement.from_user_id, f"user_{settlement.from_user_id}")
        description = f"Payment from {counterpart}"

    return LedgerEntry(
        transaction_type=TransactionType.PAYMENT if is_paying else TransactionType.RECEIPT,
        date=settlement.settlement_date,
        description=description,
        amount=settlement.amount if is_paying else -settlement.amount,
        transaction_id=settlement.id,
        total_amount=settlement.amount,
        is_user_payer=is_paying,
        settlement_id=settlement.id,
        from_user_id=settlement.from_user_id,
        to_user_id=settlement.to_user_id,
        notes=settlement.notes,
    )


def _ordering_key(entry: LedgerEntry) -> tuple:
    """
    Sort key for the newest-first ledger.

    Same-date events are ranked settlement above expense, then by entity id,
    so the order is deterministic.
    """
    return (entry.date, 1 if entry.is_settlement else 0, entry.transaction_id)


def compute_member_ledger(
        member_id: int,
        members: Iterable[Member],
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement],
        my_expenses_only: bool = False,
) -> MemberLedger:
    """
    Builds one member's chronological ledger for a trip.

    Included transactions:
      default mode          — every expense the member paid or has a split
                              in, and every settlement they sent or received.
      my_expenses_only=True — only expenses the member paid and settlements
                              they sent.

    Signed amounts:
      expense    = (expense.amount if member paid else 0) - member's split
      settlement = +amount when the member paid, -amount when they received

    The returned transactions are newest first. Each carries the running
    balance accumulated oldest-first up to and including itself;
    net_balance is the final running total.

    Raises:
        NotFoundError(USER_NOT_FOUND) — member_id is not in `members`.
    """
    members = list(members)
    member = _require_member(members, member_id)
    names = {m.user_id: m.display_name for m in members}

    if my_expenses_only:
        relevant_expenses = [e for e in expenses if e.paid_by_user_id == member_id]
        relevant_settlements = [s for s in settlements if s.from_user_id == member_id]
    else:
        relevant_expenses = [
            e for e in expenses
            if e.paid_by_user_id == member_id or e.split_for(member_id) is not None
        ]
        relevant_settlements = [
            s for s in settlements
            if member_id in (s.from_user_id, s.to_user_id)
        ]

    entries = [_expense_entry(e, member_id, names) for e in relevant_expenses]
    entries += [_settlement_entry(s, member_id, names) for s in relevant_settlements]

    newest_first = sorted(entries, key=_ordering_key, reverse=True)
    oldest_first = newest_first[::-1]

    running_totals = list(accumulate(e.amount for e in oldest_first))
    annotated = [
        replace(entry, running_balance=total)
        for entry, total in zip(oldest_first, running_totals)
    ]

    logger.debug(
        "Built ledger for user %s with %d transaction(s)", member_id, len(annotated)
    )
    return MemberLedger(
        user_id=member.user_id,
        display_name=member.display_name,
        net_balance=running_totals[-1] if running_totals else _ZERO,
        transactions=tuple(reversed(annotated)),
    )


# ── Trip and dashboard summaries ───────────────────────────────────────────

def summarize_trip(
        snapshot: TripSnapshot,
        member_id: int,
        default_currency: str = "PHP",
) -> TripSummary:
    """
    One member's headline figures for a trip: total spent, their share,
    what they paid and their balance after settlements.
    """
    _require_member(snapshot.members, member_id)

    total_spent = sum((e.amount for e in snapshot.expenses), _ZERO)
    your_share = sum(
        (s.amount for e in snapshot.expenses for s in e.splits if s.user_id == member_id),
        _ZERO,
    )
    amount_paid = sum(
        (e.amount for e in snapshot.expenses if e.paid_by_user_id == member_id),
        _ZERO,
    )

    balance = amount_paid - your_share
    for settlement in snapshot.settlements:
        if settlement.from_user_id == member_id:
            balance += settlement.amount
        elif settlement.to_user_id == member_id:
            balance -= settlement.amount

    return TripSummary(
        trip_id=snapshot.trip_id,
        currency=snapshot.currency or default_currency,
        member_count=len(snapshot.active_members()),
        total_spent=total_spent,
        your_share=your_share,
        amount_paid=amount_paid,
        your_balance=balance,
    )


def summarize_by_currency(
        member_id: int,
        snapshots: Iterable[TripSnapshot],
        default_currency: str = "PHP",
) -> list[CurrencyBalance]:
    """
    Groups a member's trip balances by trip currency.

    Amounts in different currencies are never converted or added together.
    Only trips where the member is active are counted. Currencies are
    ordered by trip count, most trips first.
    """
    totals: dict[str, dict] = {}

    for snapshot in snapshots:
        member = snapshot.member(member_id)
        if member is None or not member.is_active:
            continue

        summary = summarize_trip(snapshot, member_id, default_currency)
        bucket = totals.setdefault(summary.currency, {
            "balance": _ZERO,
            "total_spent": _ZERO,
            "total_owed": _ZERO,
            "trip_count": 0,
        })
        bucket["balance"] += summary.your_balance
        bucket["total_spent"] += summary.amount_paid
        if summary.your_balance < _ZERO:
            bucket["total_owed"] += abs(summary.your_balance)
        bucket["trip_count"] += 1

    result = [
        CurrencyBalance(currency=currency, **figures)
        for currency, figures in totals.items()
    ]
    return sorted(result, key=lambda c: c.trip_count, reverse=True)
