"""Settlement model.

Funds owed to a store, held in escrow until delivery is confirmed. Rows are
written by the payout process; this app only reads and aggregates them.
"""

import uuid

from vendorhub.extensions import db


class Settlement(db.Model):
    __tablename__ = "settlements"

    STATUSES = ["pending", "cleared", "frozen", "disputed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    store_id = db.Column(
        db.String(36), db.ForeignKey("stores.id"), nullable=False, index=True
    )
    order_reference = db.Column(db.String(255), nullable=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(
        db.String(20), nullable=False, default="pending"
    )  # pending | cleared | frozen | disputed
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    store = db.relationship("Store", back_populates="settlements")

    def __repr__(self):
        return f"<Settlement {self.store_id} {self.amount} ({self.status})>"
