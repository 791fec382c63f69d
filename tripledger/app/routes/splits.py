"""
routes/splits.py — Split allocation route handlers.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic. Nothing is stored: the caller persists the splits.

Endpoints (base url_prefix=/api/v1):
  POST /splits                       → 200  allocate splits for a new expense
  POST /expenses/:id/participants    → 200  re-divide an expense evenly
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tripledger.app.routes.serializers import money, serialize_allocation
from tripledger.app.schemas.expense_schema import (
    AllocateSplitsSchema,
    ReassignParticipantsSchema,
)
from tripledger.app.services import split_service

splits_bp = Blueprint("splits", __name__)


@splits_bp.route("/splits", methods=["POST"])
def allocate_splits():
    """
    POST /splits — Compute the owed shares for one expense.

    Equal uses every active member; PaidFor, Custom and Percentage read the
    `splits` array. Returned amounts are rounded to 2 dp for display.
    """
    data = AllocateSplitsSchema().load(request.get_json(force=True) or {})
    splits = split_service.allocate_splits(
        amount=data["amount"],
        split_type=data["split_type"],
        members=data["members"],
        paid_by_user_id=data["paid_by_user_id"],
        explicit_splits=data["splits"],
    )
    return jsonify({
        "data": serialize_allocation(data["split_type"], splits),
        "warnings": [],
    }), 200


@splits_bp.route("/expenses/<int:expense_id>/participants", methods=["POST"])
def reassign_participants(expense_id: int):
    """
    POST /expenses/:id/participants — Split an existing expense evenly among
    a new set of participants.

    The response carries the new split type: Equal when every active member
    participates, Custom otherwise.
    """
    data = ReassignParticipantsSchema().load(request.get_json(force=True) or {})
    expense, split_type, splits = split_service.reassign_expense_participants(
        snapshot=data["trip"],
        expense_id=expense_id,
        participant_ids=data["participant_ids"],
    )
    body = serialize_allocation(split_type, splits)
    body["expense_id"] = expense.id
    body["amount"] = money(expense.amount)
    return jsonify({"data": body, "warnings": []}), 200
