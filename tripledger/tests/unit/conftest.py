"""
tests/unit/conftest.py — Record builders shared by the unit tests.

Plain functions (not fixtures) so they can be called with arbitrary
arguments, the same way the integration helpers are.

All amounts are given as strings and converted to Decimal here.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from tripledger.app.models.expense import Expense, ExpenseSplit, SplitType
from tripledger.app.models.settlement import Settlement
from tripledger.app.models.trip import Member, TripSnapshot

BASE_DATE = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def day(n: int) -> datetime:
    """BASE_DATE shifted by n days."""
    return BASE_DATE + timedelta(days=n)


def member(user_id: int, name: str | None = None, active: bool = True) -> Member:
    return Member(user_id=user_id, display_name=name or f"user{user_id}", is_active=active)


def expense(
    expense_id: int,
    paid_by: int,
    amount: str,
    shares: dict[int, str],
    when: datetime | None = None,
    split_type: SplitType = SplitType.CUSTOM,
    description: str = "",
    trip_id: int = 1,
) -> Expense:
    """An expense whose stored splits are exactly `shares` ({user_id: amount})."""
    return Expense(
        id=expense_id,
        trip_id=trip_id,
        amount=Decimal(amount),
        paid_by_user_id=paid_by,
        split_type=split_type,
        created_at=when or BASE_DATE,
        description=description or f"expense {expense_id}",
        splits=tuple(
            ExpenseSplit(
                user_id=uid,
                amount=Decimal(share),
                is_paid=(uid == paid_by),
                expense_id=expense_id,
            )
            for uid, share in shares.items()
        ),
    )


def equal_expense(
    expense_id: int,
    paid_by: int,
    amount: str,
    participants: list[int],
    when: datetime | None = None,
    trip_id: int = 1,
) -> Expense:
    """An Equal expense divided at full precision among `participants`."""
    share = Decimal(amount) / Decimal(len(participants))
    return expense(
        expense_id, paid_by, amount,
        {uid: str(share) for uid in participants},
        when=when,
        split_type=SplitType.EQUAL,
        trip_id=trip_id,
    )


def settlement(
    settlement_id: int,
    from_user: int,
    to_user: int,
    amount: str,
    when: datetime | None = None,
    notes: str | None = None,
    trip_id: int = 1,
) -> Settlement:
    return Settlement(
        id=settlement_id,
        trip_id=trip_id,
        from_user_id=from_user,
        to_user_id=to_user,
        amount=Decimal(amount),
        settlement_date=when or BASE_DATE,
        notes=notes,
    )


def snapshot(
    members: list[Member],
    expenses: list[Expense] = (),
    settlements: list[Settlement] = (),
    trip_id: int = 1,
    currency: str | None = None,
) -> TripSnapshot:
    return TripSnapshot(
        trip_id=trip_id,
        members=tuple(members),
        expenses=tuple(expenses),
        settlements=tuple(settlements),
        name=f"trip {trip_id}",
        currency=currency,
    )
