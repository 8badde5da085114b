"""Tests for read-only finance views: settlements and subscription access."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from vendorhub.extensions import db
from vendorhub.models.settlement import Settlement
from vendorhub.models.vendor import Vendor, VendorSubscription
from vendorhub.services.settlement_service import (
    describe_settlement_status,
    get_settlement_stats,
)
from vendorhub.services.subscription_service import check_access, get_subscription


def _seed_settlements():
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    rows = [
        ("ORD-1", "100.00", "pending"),
        ("ORD-2", "250.50", "cleared"),
        ("ORD-3", "30.00", "frozen"),
        ("ORD-4", "20.00", "disputed"),
        ("ORD-5", "49.50", "cleared"),
    ]
    for i, (order_ref, amount, status) in enumerate(rows):
        db.session.add(Settlement(
            store_id="s1",
            order_reference=order_ref,
            amount=Decimal(amount),
            status=status,
            created_at=base + timedelta(days=i),
        ))
    db.session.add(Settlement(store_id="s-other", amount=Decimal("999.00"), status="cleared"))
    db.session.commit()


class TestSettlementStats:
    """Tests for get_settlement_stats()."""

    def test_buckets_disputed_into_frozen(self, app, seed_data):
        with app.app_context():
            _seed_settlements()
            assert get_settlement_stats("s1") == {
                "pending": Decimal("100.00"),
                "cleared": Decimal("300.00"),
                "frozen": Decimal("50.00"),
            }

    def test_empty_store(self, app, seed_data):
        with app.app_context():
            assert get_settlement_stats("s1") == {
                "pending": Decimal("0.00"),
                "cleared": Decimal("0.00"),
                "frozen": Decimal("0.00"),
            }

    def test_friendly_status(self):
        assert describe_settlement_status("pending")["label"] == "Processing"
        assert describe_settlement_status("disputed")["label"] == "Action Required"
        assert describe_settlement_status("disputed")["action_label"] == "Contact Support"
        assert describe_settlement_status("weird") == {
            "label": "weird", "description": "Status unknown.", "variant": "outline",
        }


class TestSettlementsEndpoint:
    """Tests for GET /api/stores/<store_id>/settlements."""

    def test_requires_login(self, client, seed_data):
        resp = client.get("/api/stores/s1/settlements")
        assert resp.status_code == 401

    def test_other_vendors_store_returns_404(self, client, seed_data, login):
        login("v123")
        resp = client.get("/api/stores/s-other/settlements")
        assert resp.status_code == 404

    def test_returns_stats_and_newest_first(self, client, seed_data, login, app):
        with app.app_context():
            _seed_settlements()

        login("v123")
        resp = client.get("/api/stores/s1/settlements?page=1&limit=2")
        assert resp.status_code == 200
        data = resp.get_json()

        assert data["count"] == 5
        assert data["page"] == 1
        assert data["limit"] == 2
        assert data["stats"] == {"pending": "100.00", "cleared": "300.00", "frozen": "50.00"}
        assert [s["order_reference"] for s in data["settlements"]] == ["ORD-5", "ORD-4"]
        assert data["settlements"][1]["status_info"]["label"] == "Action Required"

    def test_second_page(self, client, seed_data, login, app):
        with app.app_context():
            _seed_settlements()

        login("v123")
        resp = client.get("/api/stores/s1/settlements?page=3&limit=2")
        data = resp.get_json()
        assert [s["order_reference"] for s in data["settlements"]] == ["ORD-1"]

    def test_limit_is_capped(self, client, seed_data, login):
        login("v123")
        resp = client.get("/api/stores/s1/settlements?limit=5000")
        assert resp.get_json()["limit"] == 100


class TestSubscriptionAccess:
    """Tests for subscription lookup and access checks."""

    def test_trial_within_window(self, app, seed_data):
        with app.app_context():
            assert check_access("v123") is True

    def test_trial_expired(self, app, seed_data):
        with app.app_context():
            later = datetime.now(timezone.utc) + timedelta(days=8)
            assert check_access("v123", now=later) is False

    def test_active_and_past_due_allowed(self, app, seed_data):
        with app.app_context():
            sub = VendorSubscription.query.filter_by(vendor_id="v123").first()
            sub.status = "active"
            db.session.commit()
            assert check_access("v123") is True

            sub.status = "past_due"
            db.session.commit()
            assert check_access("v123") is True

            sub.status = "canceled"
            db.session.commit()
            assert check_access("v123") is False

    def test_no_subscription_denied(self, app, seed_data):
        with app.app_context():
            assert get_subscription("v999") is None
            assert check_access("v999") is False

    def test_lifetime_vendor_always_active(self, app, seed_data):
        with app.app_context():
            vendor = db.session.get(Vendor, "v999")
            vendor.is_lifetime_free = True
            db.session.commit()

            subscription = get_subscription("v999")
            assert subscription["status"] == "active"
            assert subscription["plan_id"] == "lifetime_premium"
            assert check_access("v999") is True

    def test_endpoint_returns_subscription(self, client, seed_data, login):
        login("v123")
        resp = client.get("/api/subscription")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["has_access"] is True
        assert data["subscription"]["status"] == "trial"
        assert data["subscription"]["plan_id"] == "premium_monthly"
        assert data["subscription"]["current_period_end"] is None
        assert isinstance(data["subscription"]["trial_ends_at"], str)

    def test_endpoint_without_subscription(self, client, seed_data, login):
        login("v999")
        resp = client.get("/api/subscription")
        assert resp.get_json() == {"subscription": None, "has_access": False}
