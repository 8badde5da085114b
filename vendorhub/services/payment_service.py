"""Payment service — market import payment initiation.

A vendor pays to import another store's dropshippable product. Payment is
either a Lenco mobile money collection (confirmed later by webhook) or a
free promotional credit (settled immediately).

Results are plain dicts so the blueprint can map them to status codes:
    {"success": bool, "outcome": str, "message": str, "data": dict | None}

outcome is one of:
    ok              — payment initiated (or credit applied)
    unknown         — provider timed out; the webhook will settle it
    invalid         — bad input or not eligible
    provider_error  — Lenco refused or is unreachable
"""

import logging
from decimal import Decimal

from flask import current_app

from vendorhub.extensions import db
from vendorhub.models.store import Store
from vendorhub.models.transaction import Transaction
from vendorhub.services.credit_service import redeem_free_credit
from vendorhub.services.lenco_service import (
    PROVIDERS,
    LencoError,
    LencoTimeout,
    initiate_mobile_money_collection,
)
from vendorhub.services.ledger_service import load_supplier_product, to_decimal
from vendorhub.services.references import build_import_reference

logger = logging.getLogger(__name__)

FREE_CREDIT = "free_credit"


def _result(success, outcome, message, data=None):
    return {"success": success, "outcome": outcome, "message": message, "data": data}


def _record_pending(store_id, reference, amount, currency, metadata):
    db.session.add(Transaction(
        store_id=store_id,
        amount=amount,
        currency=currency,
        status="pending",
        type=Transaction.TYPE_MARKET_IMPORT,
        reference=reference,
        metadata_=metadata,
    ))
    db.session.commit()


def initiate_market_import_payment(vendor_id, store_id, product_id, provider,
                                   phone, amount):
    """Start paying for a market import into one of the vendor's stores.

    Never raises for provider problems; every failure comes back as a
    result dict.
    """
    store = Store.query.filter_by(id=store_id, vendor_id=vendor_id).first()
    if store is None:
        return _result(False, "invalid", "Store not found.")

    product = load_supplier_product(product_id)
    if product is None or not product.is_dropshippable:
        return _result(False, "invalid", "Product is not available for import.")

    if provider == FREE_CREDIT:
        success, message, reference = redeem_free_credit(vendor_id, store_id, product_id)
        if not success:
            return _result(False, "invalid", message)
        return _result(True, "ok", message, {"reference": reference, "status": "completed"})

    if provider not in PROVIDERS:
        return _result(False, "invalid", f"Unsupported provider: {provider}")

    amount = to_decimal(amount)
    if amount is None or amount <= Decimal("0"):
        return _result(False, "invalid", "Amount must be a positive number.")

    if not phone:
        return _result(False, "invalid", "Phone number is required.")

    currency = current_app.config.get("DEFAULT_CURRENCY", "ZMW")
    reference = build_import_reference(store_id, product_id)
    metadata = {"product_id": product_id, "provider": provider, "mobile": phone}

    try:
        response = initiate_mobile_money_collection(
            amount=f"{amount:.2f}",
            currency=currency,
            provider=provider,
            phone=phone,
            reference=reference,
        )
    except LencoTimeout:
        # The prompt may still reach the payer; keep a pending row so the
        # webhook confirms it like any other.
        _record_pending(store_id, reference, amount, currency,
                        {**metadata, "initiation": "unknown"})
        return _result(
            False,
            "unknown",
            "The payment provider did not respond. If you receive a prompt, "
            "approve it and the import will complete automatically.",
            {"reference": reference, "status": "unknown"},
        )
    except LencoError as e:
        logger.error(f"Market import payment failed for {reference}: {e}")
        return _result(False, "provider_error", str(e) or "Payment initiation failed")

    if not response.get("status"):
        return _result(
            False, "provider_error",
            response.get("message") or "Payment initiation failed",
        )

    provider_data = response.get("data") or {}
    _record_pending(store_id, reference, amount, currency,
                    {**metadata, "lenco_id": provider_data.get("id")})
    logger.info(f"Market import payment initiated: {reference}")

    return _result(
        True, "ok",
        "Payment initiated. Please check your phone.",
        {**provider_data, "reference": reference},
    )
