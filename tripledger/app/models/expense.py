"""
models/expense.py — Expense and ExpenseSplit records.

Read-only records handed to the core by the persistence layer. No business
logic. No imports from services or routes.

Key design points:
  - `amount` is a Decimal — never float.
  - An expense and its splits are created together; splits are replaced
    wholesale whenever the amount, participant set or split type changes.
    The records are frozen so an edit always produces new objects.
  - SplitType is a closed enum. Unknown tags are rejected at the boundary.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


class SplitType(str, enum.Enum):
    """Wire values match the stored tags: Equal, Custom, Percentage, PaidFor."""
    EQUAL      = "Equal"
    CUSTOM     = "Custom"
    PERCENTAGE = "Percentage"
    PAID_FOR   = "PaidFor"


@dataclass(frozen=True)
class ExpenseSplit:
    """One member's share of one expense."""

    user_id: int
    amount: Decimal
    percentage: Decimal | None = None
    is_paid: bool = False
    expense_id: int | None = None


@dataclass(frozen=True)
class Expense:
    id: int
    trip_id: int
    amount: Decimal
    paid_by_user_id: int
    split_type: SplitType
    created_at: datetime
    description: str = ""
    category: str | None = None
    splits: tuple[ExpenseSplit, ...] = field(default_factory=tuple)

    def split_for(self, user_id: int) -> ExpenseSplit | None:
        """Returns the split belonging to user_id, or None if they have no share."""
        return next((s for s in self.splits if s.user_id == user_id), None)
