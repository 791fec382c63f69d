"""
models/trip.py — Member and TripSnapshot records.

The core never queries a store. The caller hands it one TripSnapshot per
call, fully materialised and already consistent (the persistence layer's
transaction isolation is what makes it consistent). Nothing in the core
re-fetches mid-computation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tripledger.app.models.expense import Expense
from tripledger.app.models.settlement import Settlement


@dataclass(frozen=True)
class Member:
    """
    A trip participant.

    is_active=False means the member was soft-removed: they keep their
    history but may not be assigned new splits.
    """

    user_id: int
    display_name: str
    is_active: bool = True


@dataclass(frozen=True)
class TripSnapshot:
    trip_id: int
    members: tuple[Member, ...] = field(default_factory=tuple)
    expenses: tuple[Expense, ...] = field(default_factory=tuple)
    settlements: tuple[Settlement, ...] = field(default_factory=tuple)
    name: str = ""
    currency: str | None = None

    def active_members(self) -> list[Member]:
        return [m for m in self.members if m.is_active]

    def member(self, user_id: int) -> Member | None:
        return next((m for m in self.members if m.user_id == user_id), None)
