"""
models/settlement.py — Settlement and SettlementSuggestion records.

A Settlement is a real-world payment recorded after the fact. It is created
or deleted, never mutated. A SettlementSuggestion is derived on every query
by the settlement service and has no identity of its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class Settlement:
    id: int
    trip_id: int
    from_user_id: int
    to_user_id: int
    amount: Decimal
    settlement_date: datetime
    notes: str | None = None


@dataclass(frozen=True)
class SettlementSuggestion:
    from_user_id: int
    to_user_id: int
    amount: Decimal
