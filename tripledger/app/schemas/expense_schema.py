"""
schemas/expense_schema.py — Marshmallow schemas for split allocation requests.

Validation responsibility:
  - This file:
      - Field types, enum values, decimal precision of the expense amount
      - DUPLICATE_SPLIT_USER (400) — request shape rule
  - services/split_service.py:
      - Splits required for PaidFor / Custom / Percentage (MISSING_SPLITS)
      - Participant membership (SPLIT_USER_NOT_MEMBER)
      - Sum reconciliation (SPLIT_SUM_MISMATCH, PERCENTAGE_SUM_MISMATCH)

The split type is resolved here to a SplitType; an unknown tag is rejected
with INVALID_SPLIT_TYPE before any service is called.

Schemas inherit from marshmallow.Schema and need no Flask application context.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

from tripledger.app.errors import ErrorCode
from tripledger.app.models.expense import SplitType
from tripledger.app.schemas.snapshot_schema import (
    MemberSchema,
    TripSnapshotSchema,
    _reject_duplicate_members,
    _validate_monetary_amount,
)


# ── Sub-schema: one entry in the `splits` array ───────────────────────────

class SplitInputSchema(Schema):
    """
    One requested split.

    Which fields matter depends on the split type:
      PaidFor    — amount > 0 marks the user as paid for; its value is unused.
      Custom     — amount is the user's exact share.
      Percentage — percentage is the user's share of 100.
    """

    class Meta:
        unknown = EXCLUDE

    user_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="user_id must be a positive integer."),
    )
    amount = fields.Decimal(
        load_default=None,
        allow_none=True,
        validate=validate.Range(min=Decimal("0"), error="Split amount must not be negative."),
    )
    percentage = fields.Decimal(
        load_default=None,
        allow_none=True,
        validate=validate.Range(
            min=Decimal("0"),
            max=Decimal("100"),
            error="percentage must be between 0 and 100.",
        ),
    )


def _reject_duplicate_users(user_ids: list[int], field_name: str) -> None:
    if len(user_ids) != len(set(user_ids)):
        raise ValidationError({field_name: [ErrorCode.DUPLICATE_SPLIT_USER]})


# ── Allocate splits ────────────────────────────────────────────────────────

class AllocateSplitsSchema(Schema):
    """
    POST /splits

    Body:
      amount          — positive, max 2 dp
      split_type      — Equal | Custom | Percentage | PaidFor
      paid_by_user_id — the payer
      members         — every trip member (active flag decides eligibility)
      splits          — required by every split type except Equal
    """

    amount = fields.Decimal(required=True, validate=_validate_monetary_amount)
    split_type = fields.Enum(
        SplitType,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_TYPE},
    )
    paid_by_user_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="paid_by_user_id must be a positive integer."),
    )
    members = fields.List(fields.Nested(MemberSchema), required=True)
    splits = fields.List(fields.Nested(SplitInputSchema), load_default=None)

    @validates_schema
    def validate_splits_coherence(self, data: dict, **kwargs) -> None:
        _reject_duplicate_members(data.get("members", []))
        splits = data.get("splits")
        if splits:
            _reject_duplicate_users([s["user_id"] for s in splits], "splits")


# ── Reassign participants ──────────────────────────────────────────────────

class ReassignParticipantsSchema(Schema):
    """
    POST /expenses/:id/participants

    Re-divides an existing expense evenly among `participant_ids`.
    """

    trip = fields.Nested(TripSnapshotSchema, required=True)
    participant_ids = fields.List(
        fields.Int(strict=True, validate=validate.Range(min=1)),
        required=True,
    )

    @validates_schema
    def validate_participants(self, data: dict, **kwargs) -> None:
        participant_ids = data.get("participant_ids") or []
        _reject_duplicate_users(participant_ids, "participant_ids")
