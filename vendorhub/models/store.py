"""Store model.

A vendor owns one or more stores. Every ledger row and product is scoped to
a store; ownership is `store.vendor_id`.
"""

import uuid

from vendorhub.extensions import db


class Store(db.Model):
    __tablename__ = "stores"

    STATUSES = ["Active", "Inactive", "Maintenance"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    vendor_id = db.Column(
        db.String(36), db.ForeignKey("vendors.id"), nullable=False
    )
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=True)
    status = db.Column(db.String(20), default="Active", nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    vendor = db.relationship("Vendor", back_populates="stores")
    products = db.relationship("Product", back_populates="store", lazy="dynamic")
    transactions = db.relationship(
        "Transaction", back_populates="store", lazy="dynamic"
    )
    settlements = db.relationship(
        "Settlement", back_populates="store", lazy="dynamic"
    )

    def __repr__(self):
        return f"<Store {self.name}>"
