"""
routes/balances.py — Trip balance, ledger and summary route handlers.

Layer rules:
  - Parse the snapshot and query params, call ONE service, return envelope.
  - No business logic. Amount rounding happens in serializers.py.

Every endpoint receives the full trip snapshot in the request body.

Endpoints (base url_prefix=/api/v1/trips):
  POST /trips/balances                         → 200  balances + simplified debts
  POST /trips/suggestions                      → 200  settlement suggestions only
  POST /trips/members/:user_id/ledger          → 200  member ledger
       ?my_expenses_only=true|false
  POST /trips/members/:user_id/summary         → 200  member's trip figures
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from tripledger.app.errors import AppError, ErrorCode
from tripledger.app.routes.serializers import (
    serialize_balance_response,
    serialize_member_ledger,
    serialize_suggestion,
    serialize_trip_summary,
)
from tripledger.app.schemas.snapshot_schema import TripSnapshotSchema
from tripledger.app.services import balance_service, settlement_service

balances_bp = Blueprint("balances", __name__)

_TRUE_VALUES = {"1", "true", "yes"}
_FALSE_VALUES = {"0", "false", "no", ""}


def _load_snapshot():
    return TripSnapshotSchema().load(request.get_json(force=True) or {})


def _parse_bool_arg(name: str) -> bool:
    raw = request.args.get(name, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise AppError(
        ErrorCode.INVALID_FIELD,
        f"'{raw}' is not a valid value for {name}. Use true or false.",
        400,
        field=name,
    )


@balances_bp.route("/balances", methods=["POST"])
def get_balances():
    """
    POST /trips/balances

    The service asserts the zero-sum invariant and raises
    BALANCE_INTEGRITY (500) if the snapshot's splits do not reconcile.
    """
    result = balance_service.get_balance_response(_load_snapshot())
    return jsonify({"data": serialize_balance_response(result), "warnings": []}), 200


@balances_bp.route("/suggestions", methods=["POST"])
def get_suggestions():
    """POST /trips/suggestions — Who should pay whom to close every debt."""
    snapshot = _load_snapshot()
    balances = balance_service.compute_trip_balances(
        snapshot.members, snapshot.expenses, snapshot.settlements
    )
    suggestions = settlement_service.suggest_settlements(balances)
    return jsonify({
        "data": [serialize_suggestion(s) for s in suggestions],
        "warnings": [],
    }), 200


@balances_bp.route("/members/<int:user_id>/ledger", methods=["POST"])
def get_member_ledger(user_id: int):
    """
    POST /trips/members/:user_id/ledger

    Transactions are newest first, each with the running balance up to it.
    ?my_expenses_only=true keeps only expenses the member paid and
    settlements they sent.
    """
    my_expenses_only = _parse_bool_arg("my_expenses_only")
    snapshot = _load_snapshot()
    ledger = balance_service.compute_member_ledger(
        member_id=user_id,
        members=snapshot.members,
        expenses=snapshot.expenses,
        settlements=snapshot.settlements,
        my_expenses_only=my_expenses_only,
    )
    return jsonify({"data": serialize_member_ledger(ledger), "warnings": []}), 200


@balances_bp.route("/members/<int:user_id>/summary", methods=["POST"])
def get_member_summary(user_id: int):
    """POST /trips/members/:user_id/summary — Spent, share, paid and balance."""
    summary = balance_service.summarize_trip(
        _load_snapshot(),
        user_id,
        default_currency=current_app.config["DEFAULT_CURRENCY"],
    )
    return jsonify({"data": serialize_trip_summary(summary), "warnings": []}), 200
