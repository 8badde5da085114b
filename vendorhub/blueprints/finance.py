"""Finance blueprint — read-only ledger views for the vendor dashboard.

Routes:
- GET /api/stores/<store_id>/settlements  — escrow stats + paginated settlements
- GET /api/credits                        — free import credit balance
- GET /api/subscription                   — current plan and access
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from vendorhub.decorators import store_owner_required
from vendorhub.services.credit_service import get_import_credit_stats
from vendorhub.services.settlement_service import (
    describe_settlement_status,
    get_settlement_stats,
    get_settlements,
)
from vendorhub.services.subscription_service import check_access, get_subscription

finance_bp = Blueprint("finance", __name__, url_prefix="/api")

MAX_PAGE_SIZE = 100


@finance_bp.route("/stores/<store_id>/settlements")
@store_owner_required
def store_settlements(store_id):
    page = max(request.args.get("page", 1, type=int), 1)
    limit = min(max(request.args.get("limit", 10, type=int), 1), MAX_PAGE_SIZE)

    settlements, total = get_settlements(store_id, page=page, limit=limit)

    return jsonify({
        "stats": get_settlement_stats(store_id),
        "count": total,
        "page": page,
        "limit": limit,
        "settlements": [
            {
                "id": s.id,
                "order_reference": s.order_reference,
                "amount": s.amount,
                "status": s.status,
                "status_info": describe_settlement_status(s.status),
                "created_at": s.created_at.isoformat() if s.created_at else None,
            }
            for s in settlements
        ],
    })


@finance_bp.route("/credits")
@login_required
def import_credits():
    return jsonify(get_import_credit_stats(current_user.id))


@finance_bp.route("/subscription")
@login_required
def subscription_status():
    subscription = get_subscription(current_user.id)
    if subscription is not None:
        subscription = {
            key: value.isoformat() if hasattr(value, "isoformat") else value
            for key, value in subscription.items()
        }
    return jsonify({
        "subscription": subscription,
        "has_access": check_access(current_user.id),
    })
