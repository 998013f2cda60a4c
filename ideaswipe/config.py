"""
Idea Swipe
Configuration classes for the app factory.

``create_app(config_name)`` picks one of ``config`` below; without an
argument ``APP_ENV`` decides (default: development).

Engine settings (all overridable by env):
    INACTIVITY_DAYS                    idle days before delegation for delegable
                                       statuses without a rule row (14)
    AUTO_PROGRESSION_INTERVAL_MINUTES  sweep interval (10)
    SCHEDULER_ENABLED                  run the in-process scheduler thread
    ADMIN_API_KEY                      required X-Admin-Key for manual sweeps
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'ideaswipe_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Like-ratio promotion rules. Seeded into progression_settings and used as a
# fallback when that table is empty.
DEFAULT_PROGRESSION_RULES = [
    {"from_status": "idea", "to_status": "pre-draft",
     "like_threshold_percentage": 30.0, "minimum_likes": 5, "inactivity_days": None},
    {"from_status": "pre-draft", "to_status": "draft",
     "like_threshold_percentage": 40.0, "minimum_likes": 10, "inactivity_days": 14},
    {"from_status": "draft", "to_status": "commit",
     "like_threshold_percentage": 50.0, "minimum_likes": 15, "inactivity_days": 14},
]


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _database_url(fallback=None):
    """DATABASE_URL with the legacy ``postgres://`` scheme rewritten for SQLAlchemy 2."""
    raw = os.getenv("DATABASE_URL", "")
    if not raw:
        return fallback
    return raw.replace("postgres://", "postgresql://", 1)


class Config:

    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    # ── Progression engine ──
    PROGRESSION_RULES = DEFAULT_PROGRESSION_RULES
    INACTIVITY_DAYS = int(os.getenv("INACTIVITY_DAYS", "14"))
    LIKE_MILESTONES = (10, 25, 50, 100)
    AUTO_PROGRESSION_INTERVAL_MINUTES = int(os.getenv("AUTO_PROGRESSION_INTERVAL_MINUTES", "10"))
    SCHEDULER_ENABLED = _env_flag("SCHEDULER_ENABLED")
    ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")

    # ── Store ──
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300, "pool_timeout": 20}

    # ── HTTP ──
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    REDIS_URL = os.getenv("REDIS_URL", "memory://")  # rate limiter storage


class DevelopmentConfig(Config):

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        # seconds to wait on a locked file before the write errors out
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 15}}


class TestingConfig(Config):

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    ADMIN_API_KEY = None


class ProductionConfig(Config):

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SCHEDULER_ENABLED = _env_flag("SCHEDULER_ENABLED", "true")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        # a stuck row lock fails that idea's transaction instead of the sweep
        "connect_args": {"options": "-c statement_timeout=15000"},
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL must be set in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
