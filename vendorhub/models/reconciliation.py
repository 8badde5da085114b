"""Reconciliation issue model.

Written when a payment was accepted but a follow-up ledger step failed
(e.g. paid for an import, product copy failed). Open rows (resolved_at is
NULL) are the operator work queue; see `flask reconciliation-report`.
"""

import uuid

from vendorhub.extensions import db


class ReconciliationIssue(db.Model):
    __tablename__ = "reconciliation_issues"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reference = db.Column(db.String(255), nullable=False, index=True)
    kind = db.Column(db.String(20), nullable=False)  # sub | imp
    store_id = db.Column(db.String(36), nullable=True)
    product_id = db.Column(db.String(36), nullable=True)
    failed_step = db.Column(
        db.String(50), nullable=False
    )  # store_lookup | amount_validation | product_import
    error = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_open(self):
        return self.resolved_at is None

    def __repr__(self):
        return f"<ReconciliationIssue {self.reference} ({self.failed_step})>"
