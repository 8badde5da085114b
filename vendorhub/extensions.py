"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limit — we apply per-route
    storage_uri="memory://",
)


@login_manager.user_loader
def load_vendor(vendor_id):
    """Load the signed-in vendor by ID. Imports lazily to avoid circular deps."""
    from vendorhub.models.vendor import Vendor

    return db.session.get(Vendor, vendor_id)


@login_manager.unauthorized_handler
def unauthorized():
    from flask import jsonify

    return jsonify({"error": "Authentication required"}), 401
