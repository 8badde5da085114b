"""Vendor models.

- Vendor: a marketplace seller account. Flask-Login integration via UserMixin.
- VendorSubscription: one row per vendor, the source of truth for
  dashboard entitlement. Activated by confirmed subscription payments.
"""

import uuid

from flask_login import UserMixin

from vendorhub.extensions import db


class Vendor(UserMixin, db.Model):
    __tablename__ = "vendors"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255))
    is_lifetime_free = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    stores = db.relationship("Store", back_populates="vendor", lazy="dynamic")
    subscription = db.relationship(
        "VendorSubscription",
        back_populates="vendor",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Vendor {self.email}>"


class VendorSubscription(db.Model):
    __tablename__ = "vendor_subscriptions"

    STATUSES = ["trial", "active", "past_due", "canceled", "expired"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    vendor_id = db.Column(
        db.String(36), db.ForeignKey("vendors.id"), unique=True, nullable=False
    )
    status = db.Column(
        db.String(20), nullable=False, default="trial"
    )  # trial | active | past_due | canceled | expired
    plan_id = db.Column(db.String(50), nullable=True)  # premium_monthly | premium_yearly
    trial_ends_at = db.Column(db.DateTime(timezone=True), nullable=True)
    current_period_end = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    vendor = db.relationship("Vendor", back_populates="subscription")

    def __repr__(self):
        return f"<VendorSubscription {self.vendor_id} ({self.status})>"
