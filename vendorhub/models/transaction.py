"""Transaction model (payment ledger).

One row per payment reference. The reference is unique at the database
level, so a redelivered webhook can never add a second row. Rows are
append-only apart from the pending -> completed confirmation.
"""

import uuid

from vendorhub.extensions import db


class Transaction(db.Model):
    __tablename__ = "transactions"

    STATUSES = ["pending", "completed", "failed"]
    TYPE_MARKET_IMPORT = "market_import"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    store_id = db.Column(
        db.String(36), db.ForeignKey("stores.id"), nullable=False, index=True
    )
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="ZMW")
    status = db.Column(
        db.String(20), nullable=False, default="pending"
    )  # pending | completed | failed
    type = db.Column(db.String(50), nullable=False)  # e.g. "market_import"
    reference = db.Column(db.String(255), unique=True, nullable=False)
    metadata_ = db.Column(
        "metadata", db.JSON, default=dict
    )  # payload snapshot, named metadata_ to avoid the declarative attribute
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    store = db.relationship("Store", back_populates="transactions")

    def __repr__(self):
        return f"<Transaction {self.reference} ({self.status})>"
