"""Settlement service — escrow fund status per store."""

import logging
from decimal import Decimal

from vendorhub.extensions import db
from vendorhub.models.settlement import Settlement

logger = logging.getLogger(__name__)

# Settlement status -> stats bucket
_BUCKETS = {
    "pending": "pending",
    "cleared": "cleared",
    "frozen": "frozen",
    "disputed": "frozen",
}

_FRIENDLY_STATUSES = {
    "cleared": {
        "label": "Cleared",
        "description": "Funds have been successfully released to your account.",
        "variant": "default",
    },
    "pending": {
        "label": "Processing",
        "description": "Funds are securely held in escrow. Release usually takes "
                       "24-48 hours after delivery.",
        "variant": "secondary",
    },
    "frozen": {
        "label": "Action Required",
        "description": "These funds are currently on hold due to a dispute or review. "
                       "Please contact support.",
        "variant": "destructive",
        "action_label": "Contact Support",
    },
}
_FRIENDLY_STATUSES["disputed"] = _FRIENDLY_STATUSES["frozen"]


def get_settlement_stats(store_id):
    """Sum settlement amounts per bucket: pending, cleared, frozen (incl. disputed)."""
    rows = (
        db.session.query(Settlement.status, db.func.sum(Settlement.amount))
        .filter(Settlement.store_id == store_id)
        .group_by(Settlement.status)
        .all()
    )

    stats = {"pending": Decimal("0.00"), "cleared": Decimal("0.00"), "frozen": Decimal("0.00")}
    for status, total in rows:
        bucket = _BUCKETS.get(status)
        if bucket is None:
            logger.warning(f"Ignoring settlements with unknown status {status!r} for store {store_id}")
            continue
        stats[bucket] += Decimal(str(total or 0))

    return {key: value.quantize(Decimal("0.01")) for key, value in stats.items()}


def get_settlements(store_id, page=1, limit=10):
    """Return (settlements, total_count) for one page, newest first."""
    query = Settlement.query.filter_by(store_id=store_id)
    total = query.count()
    settlements = (
        query
        .order_by(Settlement.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return settlements, total


def describe_settlement_status(status):
    """Vendor-facing label, description and badge variant for a status."""
    friendly = _FRIENDLY_STATUSES.get(status)
    if friendly is None:
        return {"label": status, "description": "Status unknown.", "variant": "outline"}
    return dict(friendly)
