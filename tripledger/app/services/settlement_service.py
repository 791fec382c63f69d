"""
services/settlement_service.py — Settlement suggestions and settlement checks.

suggest_settlements() reduces a set of signed balances to a short list of
payments that would close every debt (greedy largest-debtor /
largest-creditor matching).

check_settlement() validates a payment a member is about to record and
reports an OVERPAYMENT warning when it exceeds what is currently owed
between the two parties. Overpayment is valid (pre-payment); it warns but
does not block.

Layer rules:
  - No Flask imports. Pure Python over records.
  - Never mutates the balances passed in.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal

from tripledger.app.errors import ErrorCode, NotFoundError, ValidationError, WarningCode
from tripledger.app.models.settlement import SettlementSuggestion
from tripledger.app.models.trip import TripSnapshot

_TOLERANCE = Decimal("0.01")
_CENT = Decimal("0.01")
_ZERO = Decimal("0")


def suggest_settlements(balances: dict[int, Decimal]) -> list[SettlementSuggestion]:
    """
    Greedy minimum cash flow debt simplification.

    Args:
        balances: {user_id: signed_balance}; positive = owed money,
                  negative = owes money. MUST sum to zero. Unbalanced input
                  is a contract violation: it does not raise, the surplus
                  simply stays unmatched.

    Algorithm:
      1. Debtors (balance < -0.01) most negative first; creditors
         (balance > 0.01) largest first. Equal balances keep input order.
      2. Match debtor i with creditor j for min(remaining debt, remaining
         credit), emit it rounded to 2 dp (half-even) and reduce both sides.
      3. Move past a party once their remainder drops below 0.01.
      4. Stop when either side runs out.

    Produces at most len(debtors) + len(creditors) - 1 suggestions.
    """
    debtors = sorted(
        [(uid, -bal) for uid, bal in balances.items() if bal < -_TOLERANCE],
        key=lambda x: x[1],
        reverse=True,
    )
    creditors = sorted(
        [(uid, bal) for uid, bal in balances.items() if bal > _TOLERANCE],
        key=lambda x: x[1],
        reverse=True,
    )

    suggestions: list[SettlementSuggestion] = []
    i = j = 0

    while i < len(debtors) and j < len(creditors):
        debtor_id, debt = debtors[i]
        creditor_id, credit = creditors[j]

        amount = min(debt, credit)
        suggestions.append(SettlementSuggestion(
            from_user_id=debtor_id,
            to_user_id=creditor_id,
            amount=amount.quantize(_CENT, rounding=ROUND_HALF_EVEN),
        ))

        debtors[i] = (debtor_id, debt - amount)
        creditors[j] = (creditor_id, credit - amount)

        if debtors[i][1] < _TOLERANCE:
            i += 1
        if creditors[j][1] < _TOLERANCE:
            j += 1

    return suggestions


def compute_bilateral_debt(
        snapshot: TripSnapshot,
        debtor_id: int,
        creditor_id: int,
) -> Decimal:
    """
    Outstanding debt from debtor_id to creditor_id alone.

    Formula:
      debt = debtor's splits on expenses the creditor paid
           - creditor's splits on expenses the debtor paid
           - settlements already paid debtor -> creditor
           + settlements already paid creditor -> debtor

    Returns the debt, or Decimal("0") if the debtor owes nothing.
    """
    debt = _ZERO

    for expense in snapshot.expenses:
        if expense.paid_by_user_id == creditor_id:
            split = expense.split_for(debtor_id)
            if split is not None:
                debt += split.amount
        elif expense.paid_by_user_id == debtor_id:
            split = expense.split_for(creditor_id)
            if split is not None:
                debt -= split.amount

    for settlement in snapshot.settlements:
        if (settlement.from_user_id, settlement.to_user_id) == (debtor_id, creditor_id):
            debt -= settlement.amount
        elif (settlement.from_user_id, settlement.to_user_id) == (creditor_id, debtor_id):
            debt += settlement.amount

    return debt if debt > _ZERO else _ZERO


def check_settlement(
        snapshot: TripSnapshot,
        from_user_id: int,
        to_user_id: int,
        amount: Decimal,
) -> list[dict]:
    """
    Validates a settlement before the caller records it.

    Raises:
        ValidationError(INVALID_AMOUNT)   — amount is not positive.
        ValidationError(SELF_SETTLEMENT)  — from and to are the same user.
        NotFoundError(USER_NOT_FOUND)     — either user is not a trip member.

    Returns:
        A list of warning dicts. Empty when there is nothing to flag.
        Example: [{"code": "OVERPAYMENT", "message": "..."}]
    """
    if amount <= _ZERO:
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT,
            "Settlement amount must be greater than zero.",
            field="amount",
        )

    if from_user_id == to_user_id:
        raise ValidationError(
            ErrorCode.SELF_SETTLEMENT,
            "Cannot settle with yourself.",
            field="to_user_id",
        )

    for field_name, user_id in (("from_user_id", from_user_id), ("to_user_id", to_user_id)):
        if snapshot.member(user_id) is None:
            raise NotFoundError(
                ErrorCode.USER_NOT_FOUND,
                f"User {user_id} is not a member of trip {snapshot.trip_id}.",
                field=field_name,
            )

    warnings: list[dict] = []
    current_debt = compute_bilateral_debt(snapshot, from_user_id, to_user_id)

    if amount > current_debt:
        warnings.append({
            "code": WarningCode.OVERPAYMENT,
            "message": (
                f"Settlement of {amount} exceeds current outstanding debt of "
                f"{current_debt.quantize(_CENT, rounding=ROUND_HALF_UP)} from user "
                f"{from_user_id} to user {to_user_id}. Pre-payment is still valid."
            ),
        })

    return warnings
