"""
Custom route decorators for access control.

- store_owner_required: ensures the vendor is logged in AND owns the store
  named by the `store_id` URL parameter. Sets g.store.
"""

from functools import wraps

from flask import abort, g
from flask_login import current_user, login_required


def store_owner_required(f):
    """Require login + ownership of the store in the URL."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        from vendorhub.models.store import Store

        store = Store.query.filter_by(
            id=kwargs.get("store_id"),
            vendor_id=current_user.id,
        ).first()

        # Someone else's store is indistinguishable from a missing one.
        if store is None:
            abort(404)

        g.store = store
        return f(*args, **kwargs)

    return decorated
