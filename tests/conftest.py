"""Shared test fixtures for the vendorhub test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: supplier store with a dropshippable product, importing vendor
- login: sign a vendor into the test client session
- post_webhook: POST a (signed) Lenco webhook
"""

import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from vendorhub import create_app
from vendorhub.extensions import db as _db
from vendorhub.models.product import Product, ProductImage
from vendorhub.models.store import Store
from vendorhub.models.vendor import Vendor, VendorSubscription

TEST_SECRET = "lenco_test_secret"

_UNSET = object()


def sign(raw_body, secret=TEST_SECRET):
    """Lenco signature: HMAC-SHA512(key=sha256(secret).hex, raw body)."""
    key = hashlib.sha256(secret.encode()).hexdigest().encode()
    return hmac.new(key, raw_body, hashlib.sha512).hexdigest()


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def seed_data(app, db_session):
    """Seed a supplier store (product p9) and an importing vendor v123 (store s1).

    Returns plain IDs so tests can use them across app contexts.
    """
    with app.app_context():
        now = datetime.now(timezone.utc)

        # --- Supplier ---
        supplier = Vendor(id="sup1", email="supplier@test.com", full_name="Supplier",
                          created_at=now - timedelta(days=365))
        _db.session.add(supplier)
        _db.session.flush()

        supplier_store = Store(id="sup-store", vendor_id=supplier.id, name="Wholesale Co",
                               slug="wholesale-co")
        _db.session.add(supplier_store)
        _db.session.flush()

        product = Product(
            id="p9",
            store_id=supplier_store.id,
            name="Chitenge Tote Bag",
            category="Bags",
            price=Decimal("60.00"),
            supplier_price=Decimal("40.00"),
            stock=25,
            status="Active",
            description="Printed tote",
            sku="TOTE-9",
            tags=["bags", "handmade"],
            weight=Decimal("0.450"),
            dimensions={"length": 40, "width": 10, "height": 35},
            attributes={"color": "blue"},
            is_dropshippable=True,
        )
        product.images.append(ProductImage(url="https://img.test/p9-2.jpg", sort_order=2))
        product.images.append(ProductImage(url="https://img.test/p9-1.jpg", sort_order=1))
        _db.session.add(product)

        # --- Importing vendor ---
        vendor = Vendor(id="v123", email="vendor@test.com", full_name="Vendor",
                        created_at=now - timedelta(days=1))
        _db.session.add(vendor)
        _db.session.flush()

        store = Store(id="s1", vendor_id=vendor.id, name="Boutique", slug="boutique")
        _db.session.add(store)
        _db.session.add(VendorSubscription(
            vendor_id=vendor.id,
            status="trial",
            plan_id="premium_monthly",
            trial_ends_at=now + timedelta(days=7),
        ))

        # --- Someone else's store ---
        other = Vendor(id="v999", email="other@test.com", created_at=now)
        _db.session.add(other)
        _db.session.flush()
        _db.session.add(Store(id="s-other", vendor_id=other.id, name="Other", slug="other"))

        _db.session.commit()

        return {
            "supplier_id": "sup1",
            "supplier_store_id": "sup-store",
            "product_id": "p9",
            "vendor_id": "v123",
            "store_id": "s1",
            "other_vendor_id": "v999",
            "other_store_id": "s-other",
        }


@pytest.fixture
def login(client):
    """Return a function that signs a vendor into the test client."""

    def _login(vendor_id):
        with client.session_transaction() as sess:
            sess["_user_id"] = vendor_id
            sess["_fresh"] = True

    return _login


@pytest.fixture
def post_webhook(client):
    """Return a function that POSTs a webhook, signed unless told otherwise.

    signature=None sends no signature header at all.
    """

    def _post(payload=None, raw=None, signature=_UNSET, header="X-Lenco-Signature"):
        body = raw if raw is not None else json.dumps(payload).encode()
        if signature is _UNSET:
            signature = sign(body)
        headers = {header: signature} if signature is not None else {}
        return client.post(
            "/api/webhooks/lenco",
            data=body,
            content_type="application/json",
            headers=headers,
        )

    return _post
