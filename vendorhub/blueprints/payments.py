"""Payments blueprint — payment initiation for the vendor dashboard.

Routes:
- POST /api/stores/<store_id>/imports  — pay for (or redeem a credit on) a market import
- POST /api/subscription/checkout      — pay for a subscription plan
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from vendorhub.decorators import store_owner_required
from vendorhub.extensions import limiter
from vendorhub.services.payment_service import initiate_market_import_payment
from vendorhub.services.subscription_service import initiate_subscription

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__, url_prefix="/api")

# payment result outcome -> HTTP status
OUTCOME_STATUS = {
    "ok": 200,
    "unknown": 202,
    "invalid": 400,
    "provider_error": 502,
}


def _respond(result):
    return jsonify(result), OUTCOME_STATUS.get(result["outcome"], 500)


@payments_bp.route("/stores/<store_id>/imports", methods=["POST"])
@limiter.limit("10 per minute")
@store_owner_required
def start_import_payment(store_id):
    """Body: {product_id, provider, phone, amount}. provider may be "free_credit"."""
    data = request.get_json(silent=True) or {}

    product_id = data.get("product_id")
    provider = data.get("provider")
    if not product_id or not provider:
        return jsonify({"success": False, "outcome": "invalid",
                        "message": "product_id and provider are required.",
                        "data": None}), 400

    result = initiate_market_import_payment(
        vendor_id=current_user.id,
        store_id=store_id,
        product_id=product_id,
        provider=provider,
        phone=(data.get("phone") or "").strip(),
        amount=data.get("amount"),
    )
    return _respond(result)


@payments_bp.route("/subscription/checkout", methods=["POST"])
@limiter.limit("5 per minute")
@login_required
def start_subscription_payment():
    """Body: {plan_id, provider, phone}."""
    data = request.get_json(silent=True) or {}

    phone = (data.get("phone") or "").strip()
    if not phone:
        return jsonify({"success": False, "outcome": "invalid",
                        "message": "Phone number is required.", "data": None}), 400

    result = initiate_subscription(
        vendor_id=current_user.id,
        plan_id=data.get("plan_id"),
        phone=phone,
        provider=data.get("provider"),
    )
    return _respond(result)
