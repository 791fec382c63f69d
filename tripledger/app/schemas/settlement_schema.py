"""
schemas/settlement_schema.py — Marshmallow schema for settlement checks.

Validation responsibility:
  - This file: field types, decimal precision, positive amount.
  - services/settlement_service.py:
      - SELF_SETTLEMENT (422)  — from_user_id == to_user_id
      - USER_NOT_FOUND  (404)  — either user absent from the trip
      - OVERPAYMENT warning    — requires the bilateral debt

Schemas inherit from marshmallow.Schema and need no Flask application context.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from tripledger.app.schemas.snapshot_schema import (
    TripSnapshotSchema,
    _validate_monetary_amount,
)


class CheckSettlementSchema(Schema):
    """
    POST /trips/settlements/check

    The trip snapshot plus the settlement about to be recorded.
    Overpayment is allowed — the service warns but does NOT reject it.
    """

    trip = fields.Nested(TripSnapshotSchema, required=True)

    from_user_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="from_user_id must be a positive integer."),
    )
    to_user_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="to_user_id must be a positive integer."),
    )
    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )
    notes = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=500))
