"""
routes/settlements.py — Settlement check route handler.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic. Recording the settlement is the caller's job.

Special: check_settlement returns warnings[].
  If non-empty (e.g. OVERPAYMENT), the route includes them in the response
  envelope: {"data": {...}, "warnings": [{"code": "OVERPAYMENT", ...}]}.
  The HTTP status is still 200. Overpayment does NOT block the payment.

Endpoints (base url_prefix=/api/v1/trips):
  POST /trips/settlements/check  → 200  validate a payment before recording it
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tripledger.app.routes.serializers import money
from tripledger.app.schemas.settlement_schema import CheckSettlementSchema
from tripledger.app.services import settlement_service

settlements_bp = Blueprint("settlements", __name__)


@settlements_bp.route("/settlements/check", methods=["POST"])
def check_settlement():
    """
    POST /trips/settlements/check

    SELF_SETTLEMENT (422) and USER_NOT_FOUND (404) are raised by the service.
    """
    data = CheckSettlementSchema().load(request.get_json(force=True) or {})
    snapshot = data["trip"]
    warnings = settlement_service.check_settlement(
        snapshot=snapshot,
        from_user_id=data["from_user_id"],
        to_user_id=data["to_user_id"],
        amount=data["amount"],
    )
    outstanding = settlement_service.compute_bilateral_debt(
        snapshot, data["from_user_id"], data["to_user_id"]
    )
    return jsonify({
        "data": {
            "trip_id": snapshot.trip_id,
            "from_user_id": data["from_user_id"],
            "to_user_id": data["to_user_id"],
            "amount": money(data["amount"]),
            "notes": data["notes"],
            "outstanding_debt": money(outstanding),
        },
        "warnings": warnings,
    }), 200
