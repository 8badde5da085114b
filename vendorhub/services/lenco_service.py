"""Lenco service — mobile money API calls and webhook handling.

Responsible for:
- Initiating mobile money collections (airtel / mtn / zamtel)
- Verifying webhook signatures
- Normalising webhook payloads (v2 wraps the resource in `data`)
- Routing events to ledger mutations by payment reference
"""

import hashlib
import hmac
import logging

import requests
from flask import current_app

from vendorhub.extensions import db
from vendorhub.services.ledger_service import (
    activate_subscription,
    fail_transaction,
    process_import_payment,
)
from vendorhub.services.references import (
    KIND_IMPORT,
    KIND_SUBSCRIPTION,
    parse_reference,
)

logger = logging.getLogger(__name__)

PROVIDERS = ("airtel", "mtn", "zamtel")
COLLECTION_TYPE = "mobile-money"
SIGNATURE_HEADERS = ("X-Lenco-Signature", "X-Webhook-Signature")


class LencoError(Exception):
    """The collection request failed or was rejected by Lenco."""


class LencoConfigError(LencoError):
    """Lenco credentials are not configured."""


class LencoTimeout(LencoError):
    """No answer from Lenco in time: the collection may or may not exist."""


# ──────────────────────────────────────────────
# Collections
# ──────────────────────────────────────────────

def initiate_mobile_money_collection(amount, currency, provider, phone, reference):
    """Ask Lenco to push a mobile money prompt to the payer's phone.

    Args:
        amount:    Decimal-formatted string, e.g. "100.00".
        provider:  One of PROVIDERS.
        reference: Correlation token echoed back in the webhook.

    Returns the decoded Lenco response: {"status": bool, "message": str,
    "data": {"id": ..., "status": "pending", ...}}.
    Raises LencoTimeout when the outcome is unknown, LencoError otherwise.
    """
    config = current_app.config
    secret_key = config.get("LENCO_SECRET_KEY")
    if not secret_key:
        raise LencoConfigError("Missing LENCO_LIVE_SECRET_KEY")
    if provider not in PROVIDERS:
        raise ValueError(f"Unsupported mobile money provider: {provider}")

    url = f"{config['LENCO_API_URL'].rstrip('/')}/collections/mobile-money"
    proxy_url = config.get("LENCO_PROXY_URL")
    proxies = {"http": proxy_url, "https": proxy_url} if proxy_url else None

    try:
        resp = requests.post(
            url,
            json={
                "amount": amount,
                "currency": currency,
                "operator": provider,
                "phone": phone,
                "reference": reference,
            },
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=config.get("LENCO_TIMEOUT_SECONDS", 15),
            proxies=proxies,
        )
    except requests.exceptions.Timeout as e:
        logger.warning(f"[Lenco] Timeout initiating collection {reference}: {e}")
        raise LencoTimeout(f"Timed out waiting for Lenco ({reference})") from e
    except requests.exceptions.RequestException as e:
        logger.error(f"[Lenco] Network error initiating collection {reference}: {e}")
        raise LencoError("Payment service unavailable") from e

    try:
        data = resp.json()
    except ValueError as e:
        logger.error(f"[Lenco] Non-JSON response (HTTP {resp.status_code}) for {reference}")
        raise LencoError("Unexpected response from payment service") from e

    if not isinstance(data, dict):
        raise LencoError("Unexpected response from payment service")

    if not resp.ok:
        logger.error(f"[Lenco] API error (HTTP {resp.status_code}): {data}")
        raise LencoError(
            data.get("message") or "Failed to initiate mobile money collection"
        )

    return data


# ──────────────────────────────────────────────
# Webhook Handling
# ──────────────────────────────────────────────

def compute_signature(raw_body, secret):
    """HMAC-SHA512 of the raw body, keyed with sha256(secret) as hex."""
    derived_secret = hashlib.sha256(secret.encode("utf-8")).hexdigest()
    return hmac.new(
        derived_secret.encode("utf-8"), raw_body, hashlib.sha512
    ).hexdigest()


def get_signature_header(headers):
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None


def verify_webhook_signature(raw_body, signature):
    """Check a webhook signature against LENCO_SECRET_KEY.

    Missing secret or signature is rejected unless
    LENCO_WEBHOOK_ALLOW_UNSIGNED is set (sandbox only).
    Returns True if the request may be processed.
    """
    secret = current_app.config.get("LENCO_SECRET_KEY")

    if not secret or not signature:
        if current_app.config.get("LENCO_WEBHOOK_ALLOW_UNSIGNED"):
            logger.warning("[Webhook] Missing secret or signature, accepted (unsigned mode)")
            return True
        logger.warning("[Webhook] Missing secret or signature, rejected")
        return False

    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def normalize_payload(body):
    """Return the business payload: body["data"] when present, else body."""
    data = body.get("data")
    if isinstance(data, dict):
        return data
    return body


def handle_webhook_event(payload):
    """Route a verified, normalised Lenco payload to its ledger mutation.

    Only mobile money collections with a known reference kind mutate
    anything; every other event is acknowledged.

    Returns (success: bool, message: str).
    """
    reference = payload.get("reference") or payload.get("lencoReference")
    status = payload.get("status")

    if payload.get("type") != COLLECTION_TYPE:
        return True, "Event received"

    ref = parse_reference(reference)
    if ref is None:
        logger.info(f"[Webhook] Unrecognised reference {reference!r}, acknowledged")
        return True, "Event received"

    handlers = {
        KIND_SUBSCRIPTION: (_handle_subscription_payment, "Subscription event processed"),
        KIND_IMPORT: (_handle_import_payment, "Market import event processed"),
    }
    handler, message = handlers[ref.kind]

    try:
        handler(ref, reference, status, payload)
    except Exception as e:
        logger.error(f"[Webhook] Error handling {reference}: {e}", exc_info=True)
        db.session.rollback()
        return False, "Internal Server Error"

    return True, message


# ──────────────────────────────────────────────
# Event Handlers
# ──────────────────────────────────────────────
# `reference` is the string exactly as Lenco sent it; `ref` is its parsed form.

def _handle_subscription_payment(ref, reference, status, payload):
    """sub_{vendor_id}_{ts}: activate on success, never downgrade on failure."""
    if status == "successful":
        activate_subscription(ref.vendor_id, reference=reference)
        db.session.commit()
    elif status == "failed":
        logger.info(f"[Webhook] Subscription payment failed for reference {reference}")


def _handle_import_payment(ref, reference, status, payload):
    """imp_{store_id}_{product_id}_{ts}: confirm payment, then import product."""
    if status == "successful":
        process_import_payment(ref, payload, reference=reference)
    elif status == "failed":
        fail_transaction(reference, payload)
    else:
        logger.info(f"[Webhook] Market import {reference} reported status {status!r}")
