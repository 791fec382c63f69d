"""
routes/serializers.py — Record → JSON-ready dict helpers shared by the routes.

Pure data-shaping. No validation.

Monetary values are quantized to 2 dp (ROUND_HALF_UP) on the way out. The
services keep Equal and PaidFor shares at full precision; only the wire
representation is rounded. Split amounts go through apportion_cents so the
amounts a caller stores add up to the reported total. DecimalJSONProvider
then renders them as strings.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from tripledger.app.models.expense import ExpenseSplit, SplitType
from tripledger.app.models.ledger import CurrencyBalance, LedgerEntry, MemberLedger, TripSummary
from tripledger.app.models.settlement import SettlementSuggestion
from tripledger.app.services.split_service import apportion_cents

_CENT = Decimal("0.01")


def money(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def serialize_split(split: ExpenseSplit, amount: Decimal) -> dict:
    return {
        "user_id": split.user_id,
        "expense_id": split.expense_id,
        "amount": amount,
        "percentage": split.percentage,
        "is_paid": split.is_paid,
    }


def serialize_allocation(split_type: SplitType, splits: list[ExpenseSplit]) -> dict:
    total = money(sum((s.amount for s in splits), Decimal("0")))
    amounts = apportion_cents(total, [s.amount for s in splits])
    return {
        "split_type": split_type.value,
        "splits": [serialize_split(s, a) for s, a in zip(splits, amounts)],
        "total": total,
    }


def serialize_balance_response(result: dict) -> dict:
    """Rounds the amounts of balance_service.get_balance_response()."""
    return {
        **result,
        "balances": [
            {**b, "balance": money(b["balance"])} for b in result["balances"]
        ],
        "simplified_debts": [
            {**d, "amount": money(d["amount"])} for d in result["simplified_debts"]
        ],
        "balance_sum": money(result["balance_sum"]),
    }


def serialize_suggestion(suggestion: SettlementSuggestion) -> dict:
    return {
        "from_user_id": suggestion.from_user_id,
        "to_user_id": suggestion.to_user_id,
        "amount": money(suggestion.amount),
    }


def serialize_ledger_entry(entry: LedgerEntry) -> dict:
    return {
        "transaction_type": entry.transaction_type.value,
        "transaction_id": entry.transaction_id,
        "date": entry.date.isoformat(),
        "description": entry.description,
        "amount": money(entry.amount),
        "total_amount": money(entry.total_amount),
        "running_balance": money(entry.running_balance),
        "is_user_payer": entry.is_user_payer,
        "is_settlement": entry.is_settlement,
        "expense_id": entry.expense_id,
        "settlement_id": entry.settlement_id,
        "paid_by_user_id": entry.paid_by_user_id,
        "from_user_id": entry.from_user_id,
        "to_user_id": entry.to_user_id,
        "notes": entry.notes,
    }


def serialize_member_ledger(ledger: MemberLedger) -> dict:
    return {
        "user_id": ledger.user_id,
        "display_name": ledger.display_name,
        "net_balance": money(ledger.net_balance),
        "transactions": [serialize_ledger_entry(e) for e in ledger.transactions],
    }


def serialize_trip_summary(summary: TripSummary) -> dict:
    return {
        "trip_id": summary.trip_id,
        "currency": summary.currency,
        "member_count": summary.member_count,
        "total_spent": money(summary.total_spent),
        "your_share": money(summary.your_share),
        "amount_paid": money(summary.amount_paid),
        "your_balance": money(summary.your_balance),
    }


def serialize_currency_balance(balance: CurrencyBalance) -> dict:
    return {
        "currency": balance.currency,
        "balance": money(balance.balance),
        "total_spent": money(balance.total_spent),
        "total_owed": money(balance.total_owed),
        "trip_count": balance.trip_count,
    }
