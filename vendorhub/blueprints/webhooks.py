"""Webhooks blueprint — /api/webhooks/lenco

Receives Lenco payment events. CSRF-exempt.
Raw body is required for signature verification.
"""

import json
import logging

from flask import Blueprint, jsonify, request

from vendorhub.extensions import db
from vendorhub.services.lenco_service import (
    get_signature_header,
    handle_webhook_event,
    normalize_payload,
    verify_webhook_signature,
)

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/webhooks")


@webhooks_bp.route("/lenco", methods=["POST"])
def lenco_webhook():
    """Receive and process Lenco webhook events.

    1. Get raw body and parse it as JSON (400 on failure)
    2. Verify the HMAC signature over the raw body (401 on failure)
    3. Unwrap `data` and route by payment reference
    4. Return 200 once the event is classified, even if the follow-up
       import failed (that is recorded as a reconciliation issue)

    CSRF is exempted for this blueprint in create_app().
    """
    raw_body = request.get_data()

    try:
        body = json.loads(raw_body)
    except ValueError:
        return jsonify({"error": "Invalid JSON"}), 400
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    # --- Verify signature ---
    signature = get_signature_header(request.headers)
    if not verify_webhook_signature(raw_body, signature):
        logger.warning("[Webhook] Invalid signature")
        return jsonify({"error": "Invalid signature"}), 401

    try:
        payload = normalize_payload(body)
        logger.info(
            f"[Webhook] Received Lenco event: type={payload.get('type')} "
            f"reference={payload.get('reference')} status={payload.get('status')}"
        )
        success, message = handle_webhook_event(payload)
    except Exception as e:
        logger.error(f"[Webhook] Error processing request: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({"error": "Internal Server Error"}), 500

    if success:
        return jsonify({"message": message}), 200
    return jsonify({"error": message}), 500
