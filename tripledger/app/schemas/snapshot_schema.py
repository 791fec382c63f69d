"""
schemas/snapshot_schema.py — Marshmallow schemas for trip snapshots.

A snapshot is the read-only view of one trip that the persistence layer hands
to the core: members, expenses (with their stored splits) and settlements.
TripSnapshotSchema().load(payload) returns a frozen TripSnapshot.

Validation responsibility:
  - This file: field types, required fields, split type enum, positive
    2-dp amounts on expenses and settlements, timestamp parsing, one
    member per user_id.
  - services/: everything that needs to look at more than one record
    (membership, sums, balances).

Naive timestamps are taken to be UTC so expense and settlement dates can be
ordered against each other.

Unknown keys are ignored: callers typically forward their own richer records
(avatars, roles, invite tokens) and the core only reads what it needs.

Schemas inherit from marshmallow.Schema and need no Flask application context.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    post_load,
    validate,
    validates_schema,
)

from tripledger.app.errors import ErrorCode
from tripledger.app.models.expense import Expense, ExpenseSplit, SplitType
from tripledger.app.models.settlement import Settlement
from tripledger.app.models.trip import Member, TripSnapshot


# ── Shared validators ─────────────────────────────────────────────────────

def _validate_monetary_amount(value: Decimal) -> None:
    """
    Validates a monetary Decimal value:
      - Must be strictly greater than zero.
      - Must have at most 2 decimal places.

    Input with more than 2 decimal places is REJECTED with
    INVALID_AMOUNT_PRECISION, never rounded.
    """
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")

    # Decimal("10.123").as_tuple().exponent == -3 → 3 dp → REJECT
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


_positive_id = validate.Range(min=1, error="Identifiers must be positive integers.")


def _reject_duplicate_members(members: list[Member]) -> None:
    user_ids = [m.user_id for m in members]
    if len(user_ids) != len(set(user_ids)):
        raise ValidationError({"members": [ErrorCode.DUPLICATE_SPLIT_USER]})


# ── Record schemas ─────────────────────────────────────────────────────────

class MemberSchema(Schema):

    class Meta:
        unknown = EXCLUDE

    user_id = fields.Int(required=True, strict=True, validate=_positive_id)
    display_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    is_active = fields.Bool(load_default=True)

    @post_load
    def make_member(self, data: dict, **kwargs) -> Member:
        return Member(**data)


class StoredSplitSchema(Schema):
    """
    A split already allocated and stored with its expense.

    Equal and PaidFor shares are stored at full precision, so the amount is
    not limited to 2 dp here. It may be zero (a Custom split can assign a
    participant nothing).
    """

    class Meta:
        unknown = EXCLUDE

    user_id = fields.Int(required=True, strict=True, validate=_positive_id)
    amount = fields.Decimal(
        required=True,
        validate=validate.Range(min=Decimal("0"), error="Split amount must not be negative."),
    )
    percentage = fields.Decimal(load_default=None, allow_none=True)
    is_paid = fields.Bool(load_default=False)


class ExpenseRecordSchema(Schema):

    class Meta:
        unknown = EXCLUDE

    id = fields.Int(required=True, strict=True, validate=_positive_id)
    trip_id = fields.Int(load_default=None, allow_none=True, strict=True)
    description = fields.Str(load_default="")
    amount = fields.Decimal(required=True, validate=_validate_monetary_amount)
    paid_by_user_id = fields.Int(required=True, strict=True, validate=_positive_id)
    split_type = fields.Enum(
        SplitType,
        load_default=SplitType.EQUAL,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_TYPE},
    )
    created_at = fields.DateTime(required=True)
    category = fields.Str(load_default=None, allow_none=True)
    splits = fields.List(fields.Nested(StoredSplitSchema), load_default=list)


class SettlementRecordSchema(Schema):

    class Meta:
        unknown = EXCLUDE

    id = fields.Int(required=True, strict=True, validate=_positive_id)
    trip_id = fields.Int(load_default=None, allow_none=True, strict=True)
    from_user_id = fields.Int(required=True, strict=True, validate=_positive_id)
    to_user_id = fields.Int(required=True, strict=True, validate=_positive_id)
    amount = fields.Decimal(required=True, validate=_validate_monetary_amount)
    settlement_date = fields.DateTime(required=True)
    notes = fields.Str(load_default=None, allow_none=True)


# ── Snapshot ───────────────────────────────────────────────────────────────

class TripSnapshotSchema(Schema):
    """
    One trip, fully materialised.

    Expenses and settlements without a trip_id inherit the snapshot's.
    """

    class Meta:
        unknown = EXCLUDE

    trip_id = fields.Int(required=True, strict=True, validate=_positive_id)
    name = fields.Str(load_default="")
    currency = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(min=3, max=3, error="currency must be a 3-letter code."),
    )
    members = fields.List(fields.Nested(MemberSchema), required=True)
    expenses = fields.List(fields.Nested(ExpenseRecordSchema), load_default=list)
    settlements = fields.List(fields.Nested(SettlementRecordSchema), load_default=list)

    @validates_schema
    def validate_unique_members(self, data: dict, **kwargs) -> None:
        _reject_duplicate_members(data.get("members", []))

    @post_load
    def make_snapshot(self, data: dict, **kwargs) -> TripSnapshot:
        trip_id = data["trip_id"]

        expenses = tuple(
            Expense(
                id=e["id"],
                trip_id=e["trip_id"] or trip_id,
                amount=e["amount"],
                paid_by_user_id=e["paid_by_user_id"],
                split_type=e["split_type"],
                created_at=_as_utc(e["created_at"]),
                description=e["description"],
                category=e["category"],
                splits=tuple(
                    ExpenseSplit(expense_id=e["id"], **s) for s in e["splits"]
                ),
            )
            for e in data["expenses"]
        )
        settlements = tuple(
            Settlement(
                id=s["id"],
                trip_id=s["trip_id"] or trip_id,
                from_user_id=s["from_user_id"],
                to_user_id=s["to_user_id"],
                amount=s["amount"],
                settlement_date=_as_utc(s["settlement_date"]),
                notes=s["notes"],
            )
            for s in data["settlements"]
        )

        currency = data["currency"]
        return TripSnapshot(
            trip_id=trip_id,
            name=data["name"],
            currency=currency.upper() if currency else None,
            members=tuple(data["members"]),
            expenses=expenses,
            settlements=settlements,
        )


class DashboardSchema(Schema):
    """Every trip a user belongs to, for the per-currency dashboard."""

    trips = fields.List(fields.Nested(TripSnapshotSchema), required=True)
