"""Subscription service — vendor plan lookup, access checks, plan payments."""

import logging
from datetime import datetime, timezone

from flask import current_app

from vendorhub.extensions import db
from vendorhub.models.vendor import Vendor, VendorSubscription
from vendorhub.services.lenco_service import (
    PROVIDERS,
    LencoError,
    LencoTimeout,
    initiate_mobile_money_collection,
)
from vendorhub.services.references import build_subscription_reference

logger = logging.getLogger(__name__)

LIFETIME_PLAN_ID = "lifetime_premium"
LIFETIME_PERIOD_END = datetime(2099, 12, 31, tzinfo=timezone.utc)


def _as_utc(value):
    # SQLite returns naive datetimes; Postgres returns aware ones.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_subscription(vendor_id):
    """Return the vendor's subscription as a dict, or None if they have none.

    Lifetime-free vendors get a synthetic active plan without a DB row.
    """
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is not None and vendor.is_lifetime_free:
        return {
            "vendor_id": vendor_id,
            "status": "active",
            "plan_id": LIFETIME_PLAN_ID,
            "trial_ends_at": None,
            "current_period_end": LIFETIME_PERIOD_END,
        }

    sub = VendorSubscription.query.filter_by(vendor_id=vendor_id).first()
    if sub is None:
        return None

    return {
        "vendor_id": sub.vendor_id,
        "status": sub.status,
        "plan_id": sub.plan_id,
        "trial_ends_at": _as_utc(sub.trial_ends_at),
        "current_period_end": _as_utc(sub.current_period_end),
    }


def check_access(vendor_id, now=None):
    """Whether the vendor may use paid dashboard features.

    trial              -> only until trial_ends_at
    active / past_due  -> allowed (past_due is the grace period)
    anything else      -> denied
    """
    subscription = get_subscription(vendor_id)
    if subscription is None:
        return False

    now = now or datetime.now(timezone.utc)
    status = subscription["status"]

    if status == "trial":
        trial_ends_at = subscription["trial_ends_at"]
        return trial_ends_at is not None and trial_ends_at > now

    return status in ("active", "past_due")


def initiate_subscription(vendor_id, plan_id, phone, provider):
    """Start a mobile money payment for a subscription plan.

    The webhook activates the subscription once Lenco confirms.
    Returns a payment result dict: {success, message, outcome, data}.
    """
    prices = current_app.config["SUBSCRIPTION_PLAN_PRICES"]
    if plan_id not in prices:
        return {"success": False, "outcome": "invalid",
                "message": f"Unknown plan: {plan_id}", "data": None}

    if provider not in PROVIDERS:
        return {"success": False, "outcome": "invalid",
                "message": f"Unsupported provider: {provider}", "data": None}

    reference = build_subscription_reference(vendor_id)

    try:
        result = initiate_mobile_money_collection(
            amount=prices[plan_id],
            currency=current_app.config.get("DEFAULT_CURRENCY", "ZMW"),
            provider=provider,
            phone=phone,
            reference=reference,
        )
    except LencoTimeout:
        return {
            "success": False,
            "outcome": "unknown",
            "message": "The payment provider did not respond. If you receive a prompt, "
                       "approve it and your plan will activate automatically.",
            "data": {"reference": reference, "status": "unknown"},
        }
    except LencoError as e:
        logger.error(f"[subscription] Payment initiation failed for {vendor_id}: {e}")
        return {"success": False, "outcome": "provider_error",
                "message": str(e) or "Payment service unavailable", "data": None}

    if not result.get("status"):
        return {
            "success": False,
            "outcome": "provider_error",
            "message": result.get("message") or "Failed to initiate subscription payment.",
            "data": None,
        }

    logger.info(f"[subscription] Payment initiated for {vendor_id}: {reference}")
    return {
        "success": True,
        "outcome": "ok",
        "message": "Subscription payment initiated. Check your phone.",
        "data": {**(result.get("data") or {}), "reference": reference},
    }
