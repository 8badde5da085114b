"""Tests for free market import credits.

Covers:
- Eligibility window (promotion period after sign-up)
- Credit counting across all of a vendor's stores
- Redeeming a credit (zero-amount transaction + product import)
- GET /api/credits
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.dialects import postgresql

from vendorhub.extensions import db
from vendorhub.models.audit import AuditEvent
from vendorhub.models.product import Product
from vendorhub.models.store import Store
from vendorhub.models.transaction import Transaction
from vendorhub.models.vendor import Vendor
from vendorhub.services import credit_service
from vendorhub.services.credit_service import get_import_credit_stats, redeem_free_credit


def _add_import_tx(store_id, reference, status="completed"):
    db.session.add(Transaction(
        store_id=store_id,
        amount=Decimal("50.00"),
        currency="ZMW",
        status=status,
        type="market_import",
        reference=reference,
    ))


class TestCreditStats:
    """Tests for get_import_credit_stats()."""

    def test_new_vendor_has_all_credits(self, app, seed_data):
        with app.app_context():
            stats = get_import_credit_stats("v123")
            assert stats == {"remaining": 3, "total": 3, "used": 0,
                             "is_eligible": True, "reason": None}

    def test_unknown_vendor(self, app, seed_data):
        with app.app_context():
            stats = get_import_credit_stats("nobody")
            assert stats["is_eligible"] is False
            assert stats["reason"] == "Vendor not found"

    def test_promotion_expires(self, app, seed_data):
        with app.app_context():
            now = datetime.now(timezone.utc)
            stats = get_import_credit_stats("v123", now=now + timedelta(days=31))
            assert stats["is_eligible"] is False
            assert stats["remaining"] == 0
            assert stats["reason"] == "Promotion expired"

    def test_old_vendor_not_eligible(self, app, seed_data):
        with app.app_context():
            stats = get_import_credit_stats("sup1")
            assert stats["reason"] == "Promotion expired"

    def test_paid_and_pending_imports_use_credits(self, app, seed_data):
        with app.app_context():
            _add_import_tx("s1", "imp_s1_p9_1", status="completed")
            _add_import_tx("s1", "imp_s1_p9_2", status="pending")
            db.session.commit()

            stats = get_import_credit_stats("v123")
            assert stats["used"] == 2
            assert stats["remaining"] == 1
            assert stats["is_eligible"] is True

    def test_failed_imports_do_not_count(self, app, seed_data):
        with app.app_context():
            _add_import_tx("s1", "imp_s1_p9_1", status="failed")
            db.session.commit()

            assert get_import_credit_stats("v123")["used"] == 0

    def test_usage_counted_across_stores(self, app, seed_data):
        with app.app_context():
            db.session.add(Store(id="s2", vendor_id="v123", name="Second", slug="second"))
            _add_import_tx("s1", "imp_s1_p9_1")
            _add_import_tx("s2", "imp_s2_p9_1")
            _add_import_tx("s2", "imp_s2_p9_2")
            db.session.commit()

            stats = get_import_credit_stats("v123")
            assert stats["used"] == 3
            assert stats["remaining"] == 0
            assert stats["is_eligible"] is False
            assert stats["reason"] == "Credits exhausted"

    def test_other_vendors_usage_ignored(self, app, seed_data):
        with app.app_context():
            _add_import_tx("s-other", "imp_s-other_p9_1")
            db.session.commit()

            assert get_import_credit_stats("v123")["used"] == 0


class TestRedeemCredit:
    """Tests for redeem_free_credit()."""

    def test_redeem_records_zero_amount_transaction(self, app, seed_data):
        with app.app_context():
            success, message, reference = redeem_free_credit("v123", "s1", "p9")

            assert success is True
            assert message == "Free import credit applied!"
            assert reference.startswith("imp_s1_p9_")

            tx = Transaction.query.filter_by(reference=reference).one()
            assert tx.amount == Decimal("0.00")
            assert tx.status == "completed"
            assert tx.type == "market_import"
            assert tx.metadata_ == {"product_id": "p9", "provider": "free_credit",
                                    "credit_used": True}

            assert AuditEvent.query.filter_by(action="credit.redeemed").count() == 1

    def test_redeem_imports_product(self, app, seed_data):
        with app.app_context():
            _, _, reference = redeem_free_credit("v123", "s1", "p9")

            product = Product.query.filter_by(import_reference=reference).one()
            assert product.store_id == "s1"
            assert product.price == Decimal("50.00")

    def test_redeem_consumes_credit(self, app, seed_data):
        with app.app_context():
            redeem_free_credit("v123", "s1", "p9")
            assert get_import_credit_stats("v123")["remaining"] == 2

    def test_redeem_refused_when_exhausted(self, app, seed_data):
        with app.app_context():
            for i in range(3):
                _add_import_tx("s1", f"imp_s1_p9_{i}")
            db.session.commit()

            success, message, reference = redeem_free_credit("v123", "s1", "p9")
            assert success is False
            assert message == "You are not eligible for free import credits."
            assert reference is None
            assert Transaction.query.count() == 3

    def test_redeem_refused_after_promotion(self, app, seed_data):
        with app.app_context():
            vendor = db.session.get(Vendor, "v123")
            vendor.created_at = datetime.now(timezone.utc) - timedelta(days=60)
            db.session.commit()

            success, _, _ = redeem_free_credit("v123", "s1", "p9")
            assert success is False
            assert Transaction.query.count() == 0


class TestRedeemConcurrency:
    """The quota check runs under a lock on the vendor row."""

    def test_vendor_row_selected_for_update(self):
        sql = str(credit_service._vendor_lock("v123").compile(dialect=postgresql.dialect()))
        assert "FROM vendors" in sql
        assert sql.rstrip().endswith("FOR UPDATE")

    def test_redemptions_committed_before_lock_are_counted(self, app, seed_data):
        """Another request spends the last credits while we wait for the lock."""
        real_lock = credit_service._vendor_lock

        def lock_after_competitor(vendor_id):
            for i in range(3):
                _add_import_tx("s1", f"imp_s1_p9_{i}")
            db.session.commit()
            return real_lock(vendor_id)

        with app.app_context():
            with patch.object(credit_service, "_vendor_lock", side_effect=lock_after_competitor):
                success, _, reference = redeem_free_credit("v123", "s1", "p9")

            assert success is False
            assert reference is None
            assert get_import_credit_stats("v123")["used"] == 3

    def test_quota_never_exceeded(self, app, seed_data):
        with app.app_context():
            with patch("vendorhub.services.references._now_ms",
                       side_effect=[1001, 1002, 1003, 1004]):
                results = [redeem_free_credit("v123", "s1", "p9")[0] for _ in range(4)]

            assert results == [True, True, True, False]
            assert get_import_credit_stats("v123")["used"] == 3
            assert Transaction.query.filter_by(amount=Decimal("0.00")).count() == 3


class TestCreditsEndpoint:
    """Tests for GET /api/credits."""

    def test_requires_login(self, client, seed_data):
        resp = client.get("/api/credits")
        assert resp.status_code == 401

    def test_returns_stats(self, client, seed_data, login):
        login("v123")
        resp = client.get("/api/credits")
        assert resp.status_code == 200
        assert resp.get_json() == {"remaining": 3, "total": 3, "used": 0,
                                   "is_eligible": True, "reason": None}
