"""Audit event model.

Logs significant ledger actions (subscription activations, imports, free
credit redemptions) for the vendor activity feed and debugging.
"""

import uuid

from vendorhub.extensions import db


class AuditEvent(db.Model):
    __tablename__ = "audit_events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    vendor_id = db.Column(
        db.String(36), db.ForeignKey("vendors.id"), nullable=True
    )
    store_id = db.Column(
        db.String(36), db.ForeignKey("stores.id"), nullable=True
    )
    action = db.Column(db.String(255), nullable=False)  # e.g. "import.completed"
    metadata_ = db.Column(
        "metadata", db.JSON, default=dict
    )  # extra context, named metadata_ to avoid the declarative attribute
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<AuditEvent {self.action}>"
