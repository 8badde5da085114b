"""Credit service — free market import credits for new vendors.

A vendor may import up to FREE_IMPORT_CREDITS products without paying
during the first FREE_IMPORT_PROMO_DAYS after sign-up. Every non-failed
market import transaction across the vendor's stores uses a credit, paid
or not.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import sqlalchemy as sa
from flask import current_app

from vendorhub.extensions import db
from vendorhub.models.store import Store
from vendorhub.models.transaction import Transaction
from vendorhub.models.vendor import Vendor
from vendorhub.services.ledger_service import log_ledger_audit, run_product_import
from vendorhub.services.references import build_import_reference

logger = logging.getLogger(__name__)


def _count_used_credits(vendor_id):
    return (
        Transaction.query
        .join(Store, Transaction.store_id == Store.id)
        .filter(
            Store.vendor_id == vendor_id,
            Transaction.type == Transaction.TYPE_MARKET_IMPORT,
            Transaction.status != "failed",
        )
        .count()
    )


def get_import_credit_stats(vendor_id, now=None):
    """Return {remaining, total, used, is_eligible, reason} for a vendor."""
    total = current_app.config.get("FREE_IMPORT_CREDITS", 3)
    promo_days = current_app.config.get("FREE_IMPORT_PROMO_DAYS", 30)
    now = now or datetime.now(timezone.utc)

    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        return {"remaining": 0, "total": total, "used": 0,
                "is_eligible": False, "reason": "Vendor not found"}

    created_at = vendor.created_at
    # SQLite returns naive datetimes; Postgres returns aware ones.
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    if now > created_at + timedelta(days=promo_days):
        return {"remaining": 0, "total": total, "used": 0,
                "is_eligible": False, "reason": "Promotion expired"}

    used = _count_used_credits(vendor_id)
    remaining = max(0, total - used)

    return {
        "remaining": remaining,
        "total": total,
        "used": used,
        "is_eligible": remaining > 0,
        "reason": "Credits exhausted" if remaining == 0 else None,
    }


def _vendor_lock(vendor_id):
    return sa.select(Vendor).where(Vendor.id == vendor_id).with_for_update()


def redeem_free_credit(vendor_id, store_id, product_id):
    """Spend one free credit on importing product_id into store_id.

    The vendor row is locked for the check-and-insert, so concurrent
    requests from one vendor run one at a time and cannot overspend.

    Returns (success: bool, message: str, reference: str | None).
    """
    vendor = db.session.execute(_vendor_lock(vendor_id)).scalar_one_or_none()
    if vendor is None:
        db.session.rollback()
        return False, "Vendor not found.", None

    stats = get_import_credit_stats(vendor_id)
    if not stats["is_eligible"]:
        db.session.rollback()
        logger.info(f"Free credit refused for vendor {vendor_id}: {stats['reason']}")
        return False, "You are not eligible for free import credits.", None

    reference = build_import_reference(store_id, product_id)
    db.session.add(Transaction(
        store_id=store_id,
        amount=Decimal("0.00"),
        currency=current_app.config.get("DEFAULT_CURRENCY", "ZMW"),
        status="completed",
        type=Transaction.TYPE_MARKET_IMPORT,
        reference=reference,
        metadata_={
            "product_id": product_id,
            "provider": "free_credit",
            "credit_used": True,
        },
    ))
    log_ledger_audit("credit.redeemed", vendor_id=vendor_id, store_id=store_id, metadata={
        "reference": reference,
        "credits_remaining": stats["remaining"] - 1,
    })
    db.session.commit()

    run_product_import(store_id, product_id, reference)
    return True, "Free import credit applied!", reference
