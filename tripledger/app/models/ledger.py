"""
models/ledger.py — Derived balance views.

None of these are stored. They are rebuilt from a TripSnapshot on every
query by balance_service.py.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


class TransactionType(str, enum.Enum):
    EXPENSE = "Expense"
    PAYMENT = "Payment"   # the member paid a settlement
    RECEIPT = "Receipt"   # the member received a settlement


@dataclass(frozen=True)
class LedgerEntry:
    """
    One row of a member's chronological ledger.

    `amount` is signed from the member's point of view: positive moves the
    balance towards "owed to me", negative towards "I owe".
    `running_balance` is the member's net position after this entry.
    """

    transaction_type: TransactionType
    date: datetime
    description: str
    amount: Decimal
    transaction_id: int
    total_amount: Decimal
    is_user_payer: bool
    expense_id: int | None = None
    settlement_id: int | None = None
    paid_by_user_id: int | None = None
    from_user_id: int | None = None
    to_user_id: int | None = None
    notes: str | None = None
    running_balance: Decimal = Decimal("0")

    @property
    def is_settlement(self) -> bool:
        return self.settlement_id is not None


@dataclass(frozen=True)
class MemberLedger:
    user_id: int
    display_name: str
    net_balance: Decimal
    transactions: tuple[LedgerEntry, ...]


@dataclass(frozen=True)
class TripSummary:
    trip_id: int
    currency: str
    member_count: int
    total_spent: Decimal
    your_share: Decimal
    amount_paid: Decimal
    your_balance: Decimal


@dataclass(frozen=True)
class CurrencyBalance:
    currency: str
    balance: Decimal
    total_spent: Decimal
    total_owed: Decimal
    trip_count: int
