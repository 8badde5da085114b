import os
import logging

import click
from flask import Flask, jsonify

from vendorhub.config import config_by_name
from vendorhub.extensions import db, migrate, login_manager, csrf, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from vendorhub import models  # noqa: F401

    # --- Register blueprints ---
    from vendorhub.blueprints.webhooks import webhooks_bp
    from vendorhub.blueprints.payments import payments_bp
    from vendorhub.blueprints.finance import finance_bp

    app.register_blueprint(webhooks_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(finance_bp)

    # Exempt webhooks from CSRF — raw body needed for Lenco signature verification
    csrf.exempt(webhooks_bp)

    # --- Error handlers (JSON API, no templates) ---
    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(401)
    def unauthorized(e):
        return jsonify({"error": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"error": "Forbidden"}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def too_many_requests(e):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal Server Error"}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-demo")
    @click.option("--email", default="vendor@vendorhub.local", help="Importing vendor email")
    def seed_demo(email):
        """Create a supplier with a dropshippable product and an importing vendor.

        Usage:
            flask seed-demo
            flask seed-demo --email me@example.com
        """
        from datetime import datetime, timedelta, timezone
        from decimal import Decimal

        from vendorhub.models.vendor import Vendor, VendorSubscription
        from vendorhub.models.store import Store
        from vendorhub.models.product import Product, ProductImage

        # --- 1. Supplier + product ---
        supplier = Vendor(email="supplier@vendorhub.local", full_name="Demo Supplier")
        db.session.add(supplier)
        db.session.flush()

        supplier_store = Store(vendor_id=supplier.id, name="Demo Wholesale", slug="demo-wholesale")
        db.session.add(supplier_store)
        db.session.flush()

        product = Product(
            store_id=supplier_store.id,
            name="Chitenge Tote Bag",
            category="Bags",
            price=Decimal("65.00"),
            supplier_price=Decimal("40.00"),
            stock=100,
            status="Active",
            description="Hand-stitched tote in printed chitenge fabric.",
            sku="TOTE-001",
            tags=["bags", "handmade"],
            is_dropshippable=True,
        )
        product.images.append(ProductImage(url="https://example.com/tote-front.jpg", sort_order=1))
        product.images.append(ProductImage(url="https://example.com/tote-back.jpg", sort_order=2))
        db.session.add(product)

        # --- 2. Importing vendor on trial ---
        vendor = Vendor(email=email, full_name="Demo Vendor")
        db.session.add(vendor)
        db.session.flush()

        store = Store(vendor_id=vendor.id, name="Demo Boutique", slug="demo-boutique")
        db.session.add(store)
        db.session.add(VendorSubscription(
            vendor_id=vendor.id,
            status="trial",
            plan_id="premium_monthly",
            trial_ends_at=datetime.now(timezone.utc) + timedelta(days=14),
        ))
        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo("Seed data created successfully!")
        click.echo("=" * 60)
        click.echo(f"  Supplier product: {product.name} (id: {product.id})")
        click.echo(f"  Vendor:           {email} (id: {vendor.id})")
        click.echo(f"  Store:            {store.name} (id: {store.id})")
        click.echo("=" * 60)

    @app.cli.command("reconciliation-report")
    @click.option("--all", "show_all", is_flag=True, help="Include resolved issues.")
    def reconciliation_report(show_all):
        """List payments that were accepted but not fully applied."""
        from vendorhub.models.reconciliation import ReconciliationIssue

        query = ReconciliationIssue.query
        if not show_all:
            query = query.filter(ReconciliationIssue.resolved_at.is_(None))
        issues = query.order_by(ReconciliationIssue.created_at).all()

        if not issues:
            click.echo("No reconciliation issues.")
            return

        for issue in issues:
            state = "open" if issue.is_open else "resolved"
            click.echo(
                f"[{state}] {issue.reference}  step={issue.failed_step}  "
                f"store={issue.store_id}  product={issue.product_id}  error={issue.error}"
            )
        click.echo(f"{len(issues)} issue(s)")

    @app.cli.command("retry-imports")
    @click.option("--dry-run", is_flag=True, help="Show what would be retried without importing.")
    def retry_imports(dry_run):
        """Re-run failed product imports for paid references and resolve them."""
        from datetime import datetime, timezone

        from vendorhub.models.reconciliation import ReconciliationIssue
        from vendorhub.services.ledger_service import import_product, log_import_completed

        issues = (
            ReconciliationIssue.query
            .filter(
                ReconciliationIssue.resolved_at.is_(None),
                ReconciliationIssue.failed_step == "product_import",
            )
            .order_by(ReconciliationIssue.created_at)
            .all()
        )
        # Plain values, so a rollback below doesn't expire what we iterate.
        pending = [(i.id, i.reference, i.store_id, i.product_id) for i in issues]

        resolved = 0
        for issue_id, reference, store_id, product_id in pending:
            if dry_run:
                click.echo(f"Would retry {reference}")
                continue
            try:
                product = import_product(store_id, product_id, reference)
                log_import_completed(store_id, product_id, reference, product)
                issue = db.session.get(ReconciliationIssue, issue_id)
                issue.resolved_at = datetime.now(timezone.utc)
                db.session.commit()
                resolved += 1
                click.echo(f"Resolved {reference} -> product {product.id}")
            except Exception as e:
                db.session.rollback()
                click.echo(f"Still failing {reference}: {e}")

        if not dry_run:
            click.echo(f"{resolved}/{len(pending)} import(s) resolved")
