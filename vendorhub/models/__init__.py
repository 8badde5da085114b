# Models package — import all models here so Alembic can discover them.

from vendorhub.models.vendor import Vendor, VendorSubscription  # noqa: F401
from vendorhub.models.store import Store  # noqa: F401
from vendorhub.models.product import Product, ProductImage  # noqa: F401
from vendorhub.models.transaction import Transaction  # noqa: F401
from vendorhub.models.settlement import Settlement  # noqa: F401
from vendorhub.models.reconciliation import ReconciliationIssue  # noqa: F401
from vendorhub.models.audit import AuditEvent  # noqa: F401
