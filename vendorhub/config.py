import os


def _env_flag(name, default=""):
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    # --- Lenco (mobile money) ---
    LENCO_SECRET_KEY = os.environ.get("LENCO_LIVE_SECRET_KEY")
    LENCO_API_URL = os.environ.get(
        "LENCO_API_URL", "https://api.lenco.co/access/v2"
    )
    LENCO_TIMEOUT_SECONDS = float(os.environ.get("LENCO_TIMEOUT_SECONDS", 15))
    # Static-IP egress proxy (e.g. Fixie) when Lenco whitelists callers.
    LENCO_PROXY_URL = os.environ.get("LENCO_PROXY_URL")
    # Sandbox only: accept webhooks with no secret/signature (logged).
    LENCO_WEBHOOK_ALLOW_UNSIGNED = _env_flag("LENCO_WEBHOOK_ALLOW_UNSIGNED")

    # --- Marketplace rules ---
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "ZMW")
    SUBSCRIPTION_PLAN_PRICES = {
        "premium_monthly": "500.00",
        "premium_yearly": "5000.00",
    }
    FREE_IMPORT_CREDITS = 3
    FREE_IMPORT_PROMO_DAYS = 30

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # --- Session / cookies ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # --- WTF / CSRF ---
    WTF_CSRF_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "LENCO_LIVE_SECRET_KEY",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing — in-memory SQLite, CSRF disabled."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LENCO_SECRET_KEY = "lenco_test_secret"
    LENCO_API_URL = "https://lenco.test/access/v2"
    LENCO_TIMEOUT_SECONDS = 5
    LENCO_PROXY_URL = None
    LENCO_WEBHOOK_ALLOW_UNSIGNED = False  # override per-test as needed
    WTF_CSRF_ENABLED = False  # disable CSRF for test requests
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    # Never accept unsigned webhooks in production, whatever the env says.
    LENCO_WEBHOOK_ALLOW_UNSIGNED = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
