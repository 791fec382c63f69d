"""
routes/dashboard.py — Per-user dashboard route handler.

Endpoints (base url_prefix=/api/v1/users):
  POST /users/:user_id/dashboard  → 200  per-trip summaries + per-currency totals

Balances in different currencies are reported side by side, never summed.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from tripledger.app.routes.serializers import (
    serialize_currency_balance,
    serialize_trip_summary,
)
from tripledger.app.schemas.snapshot_schema import DashboardSchema
from tripledger.app.services import balance_service

dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.route("/<int:user_id>/dashboard", methods=["POST"])
def get_dashboard(user_id: int):
    """
    POST /users/:user_id/dashboard

    Body: {"trips": [<trip snapshot>, ...]}
    Trips where the user is absent or inactive are skipped.
    """
    data = DashboardSchema().load(request.get_json(force=True) or {})
    default_currency = current_app.config["DEFAULT_CURRENCY"]

    trips = [
        snapshot for snapshot in data["trips"]
        if any(m.user_id == user_id and m.is_active for m in snapshot.members)
    ]
    summaries = [
        balance_service.summarize_trip(snapshot, user_id, default_currency)
        for snapshot in trips
    ]
    currencies = balance_service.summarize_by_currency(
        user_id, trips, default_currency
    )
    return jsonify({
        "data": {
            "user_id": user_id,
            "trips": [serialize_trip_summary(s) for s in summaries],
            "currencies": [serialize_currency_balance(c) for c in currencies],
        },
        "warnings": [],
    }), 200
