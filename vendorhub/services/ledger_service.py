"""Ledger service — DB mutations driven by confirmed payments.

Responsible for:
- Confirming payment transactions at most once per reference
- Activating vendor subscriptions
- Copying a supplier's product into the importing store (with markup)
- Recording reconciliation issues when a paid step cannot be completed
- Audit events for system-initiated ledger changes
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from vendorhub.extensions import db
from vendorhub.models.audit import AuditEvent
from vendorhub.models.product import Product, ProductImage
from vendorhub.models.reconciliation import ReconciliationIssue
from vendorhub.models.store import Store
from vendorhub.models.transaction import Transaction
from vendorhub.models.vendor import VendorSubscription

logger = logging.getLogger(__name__)

IMPORT_MARKUP = Decimal("1.25")
CENTS = Decimal("0.01")
# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")


def to_decimal(value):
    """Parse a provider amount ("50.00", 50, 50.0) into a Decimal, or None.

    None also covers amounts too large for the ledger columns.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            return None
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        # Includes values too large to quantize at the context precision
        return None
    if abs(amount) > MAX_AMOUNT:
        return None
    return amount


def log_ledger_audit(action, vendor_id=None, store_id=None, metadata=None):
    """Log a ledger audit event. Webhook-driven actions have no actor."""
    event = AuditEvent(
        vendor_id=vendor_id,
        store_id=store_id,
        action=action,
        metadata_=metadata or {},
    )
    db.session.add(event)
    db.session.flush()


def record_reconciliation_issue(reference, kind, failed_step, error,
                                store_id=None, product_id=None):
    """Persist a paid-but-incomplete outcome for operator follow-up.

    Uses flush() so the caller controls the commit boundary.
    """
    issue = ReconciliationIssue(
        reference=reference,
        kind=kind,
        store_id=store_id,
        product_id=product_id,
        failed_step=failed_step,
        error=error,
    )
    db.session.add(issue)
    db.session.flush()
    return issue


# ──────────────────────────────────────────────
# Subscriptions
# ──────────────────────────────────────────────

def activate_subscription(vendor_id, reference=None):
    """Mark the vendor's subscription active after a successful payment.

    Keyed update: a vendor without a subscription row is left alone.
    Returns True if a row was found.
    """
    sub = VendorSubscription.query.filter_by(vendor_id=vendor_id).first()
    if sub is None:
        logger.warning(f"No subscription row for vendor {vendor_id}, nothing to activate")
        return False

    old_status = sub.status
    sub.status = "active"
    sub.updated_at = datetime.now(timezone.utc)
    db.session.flush()

    if old_status != "active":
        log_ledger_audit("subscription.activated", vendor_id=vendor_id, metadata={
            "old_status": old_status,
            "reference": reference,
        })
    logger.info(f"Subscription activated for {vendor_id}")
    return True


# ──────────────────────────────────────────────
# Transactions
# ──────────────────────────────────────────────

def _find_transaction(reference):
    return Transaction.query.filter_by(reference=reference).first()


def confirm_transaction(store_id, reference, amount, currency, payload,
                        tx_type=Transaction.TYPE_MARKET_IMPORT):
    """Record a completed payment exactly once per reference.

    - A pending row (written at initiation) is moved to completed with a
      conditional UPDATE, so only one concurrent delivery can win.
    - With no row yet, a completed row is inserted; the unique constraint
      on reference turns a racing duplicate into an IntegrityError.
    - An existing completed/failed row means this is a redelivery.

    Commits on success. Returns True only for the call that performed the
    confirmation; callers must skip follow-up work when it returns False.
    """
    existing = _find_transaction(reference)

    if existing is not None:
        if existing.status != "pending":
            logger.info(
                f"Transaction {reference} already {existing.status}, skipping duplicate delivery"
            )
            return False

        values = {
            Transaction.status: "completed",
            Transaction.metadata_: {**(existing.metadata_ or {}), **payload},
            Transaction.updated_at: datetime.now(timezone.utc),
        }
        if amount is not None:
            values[Transaction.amount] = amount
        if currency:
            values[Transaction.currency] = currency

        result = db.session.execute(
            sa.update(Transaction)
            .where(
                Transaction.reference == reference,
                Transaction.status == "pending",
            )
            .values(values)
        )
        if result.rowcount != 1:
            db.session.rollback()
            logger.info(f"Transaction {reference} confirmed by a concurrent delivery")
            return False
        db.session.commit()
        return True

    db.session.add(Transaction(
        store_id=store_id,
        reference=reference,
        amount=amount if amount is not None else Decimal("0.00"),
        currency=currency or "ZMW",
        status="completed",
        type=tx_type,
        metadata_=payload,
    ))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.info(f"Transaction {reference} inserted by a concurrent delivery")
        return False
    return True


def fail_transaction(reference, payload):
    """Move a pending transaction to failed after a declined collection.

    Same conditional UPDATE as confirmation, so a completed row is never
    touched. No row is written when nothing was pending.
    Commits. Returns True if a row was moved.
    """
    existing = _find_transaction(reference)
    if existing is None or existing.status != "pending":
        logger.info(f"Market import {reference} failed, no pending transaction to close")
        return False

    result = db.session.execute(
        sa.update(Transaction)
        .where(
            Transaction.reference == reference,
            Transaction.status == "pending",
        )
        .values({
            Transaction.status: "failed",
            Transaction.metadata_: {**(existing.metadata_ or {}), **payload},
            Transaction.updated_at: datetime.now(timezone.utc),
        })
    )
    if result.rowcount != 1:
        db.session.rollback()
        return False
    db.session.commit()
    logger.info(f"Transaction {reference} marked failed")
    return True


# ──────────────────────────────────────────────
# Market import
# ──────────────────────────────────────────────

def load_supplier_product(product_id):
    """Fetch a product with its images regardless of the owning store.

    This is the only cross-tenant product read in the app: an importing
    store is by definition not the supplier's store.
    """
    return db.session.get(
        Product, product_id, options=[selectinload(Product.images)]
    )


def wholesale_price(product):
    """Price the supplier charges importers (falls back to retail price)."""
    if product.supplier_price is not None:
        return to_decimal(product.supplier_price)
    return to_decimal(product.price)


def compute_import_price(product, markup=IMPORT_MARKUP):
    """Listing price for an imported copy: wholesale price plus markup."""
    return (wholesale_price(product) * markup).quantize(CENTS, rounding=ROUND_HALF_UP)


def import_product(store_id, product_id, reference):
    """Copy a supplier product into store_id as a Draft listing.

    Idempotent per reference: if a copy already carries this
    import_reference it is returned unchanged.
    Uses flush() so the caller controls the commit boundary.
    Raises LookupError if the supplier product no longer exists.
    """
    existing = Product.query.filter_by(import_reference=reference).first()
    if existing is not None:
        return existing

    original = load_supplier_product(product_id)
    if original is None:
        raise LookupError(f"Supplier product {product_id} not found")

    product = Product(
        store_id=store_id,
        name=original.name,
        category=original.category,
        price=compute_import_price(original),
        stock=original.stock or 0,
        status="Draft",
        description=original.description,
        sku=original.sku,
        tags=list(original.tags or []),
        weight=original.weight,
        dimensions=dict(original.dimensions) if original.dimensions else None,
        attributes=dict(original.attributes or {}),
        is_dropshippable=False,
        supplier_product_id=original.id,
        supplier_price=wholesale_price(original),
        import_reference=reference,
    )
    for image in original.images:
        product.images.append(
            ProductImage(url=image.url, sort_order=image.sort_order)
        )

    db.session.add(product)
    db.session.flush()
    return product


def log_import_completed(store_id, product_id, reference, product):
    """Audit a finished import. Uses flush(); the caller commits."""
    store = db.session.get(Store, store_id)
    log_ledger_audit(
        "import.completed",
        vendor_id=store.vendor_id if store else None,
        store_id=store_id,
        metadata={
            "reference": reference,
            "supplier_product_id": product_id,
            "product_id": product.id,
            "price": str(product.price),
        },
    )


def run_product_import(store_id, product_id, reference):
    """Import a paid-for product, degrading to a reconciliation issue.

    The payment is already committed; a failure here must not undo it or
    fail the caller. Returns the new Product, or None on failure.
    """
    try:
        product = import_product(store_id, product_id, reference)
        log_import_completed(store_id, product_id, reference, product)
        db.session.commit()
        logger.info(f"Imported product {product_id} into store {store_id} as {product.id}")
        return product
    except Exception as e:
        db.session.rollback()
        logger.error(
            f"Product import failed for {reference} (paid, needs reconciliation): {e}",
            exc_info=True,
        )
        record_reconciliation_issue(
            reference=reference,
            kind="imp",
            failed_step="product_import",
            error=str(e),
            store_id=store_id,
            product_id=product_id,
        )
        db.session.commit()
        return None


def process_import_payment(ref, payload, reference=None):
    """Apply a successful market import payment.

    1. Validate the importing store exists and the amount fits the ledger
    2. Confirm the transaction (at most once per reference)
    3. Copy the supplier product into the store

    `reference` is the string as received; it defaults to str(ref).
    """
    reference = reference or str(ref)

    if db.session.get(Store, ref.store_id) is None:
        logger.error(f"Market import {reference}: store {ref.store_id} not found")
        record_reconciliation_issue(
            reference=reference,
            kind=ref.kind,
            failed_step="store_lookup",
            error=f"Store {ref.store_id} not found",
            store_id=ref.store_id,
            product_id=ref.product_id,
        )
        db.session.commit()
        return

    raw_amount = payload.get("amount")
    amount = to_decimal(raw_amount)
    if raw_amount is not None and amount is None:
        logger.error(f"Market import {reference}: unusable amount {raw_amount!r}")
        record_reconciliation_issue(
            reference=reference,
            kind=ref.kind,
            failed_step="amount_validation",
            error=f"Amount {raw_amount!r} is not a valid ledger amount",
            store_id=ref.store_id,
            product_id=ref.product_id,
        )
        db.session.commit()
        return

    confirmed = confirm_transaction(
        store_id=ref.store_id,
        reference=reference,
        amount=amount,
        currency=payload.get("currency"),
        payload=payload,
    )
    if not confirmed:
        return

    logger.info(f"Market import payment successful: {reference}")
    run_product_import(ref.store_id, ref.product_id, reference)
