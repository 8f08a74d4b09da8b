"""
Obra QMS
Configuration classes for the Flask app factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'obraqms_dev.db')}"

# Random per process in development; production must set SECRET_KEY
_DEV_SECRET = secrets.token_hex(32)


def _env_flag(name, default):
    return os.getenv(name, default).lower() not in ("false", "0", "no", "off")


def _database_url(fallback=None):
    """DATABASE_URL with the legacy ``postgres://`` scheme rewritten for SQLAlchemy 2."""
    raw = os.getenv("DATABASE_URL", "")
    if not raw:
        return fallback
    return raw.replace("postgres://", "postgresql://", 1)


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    # Falls back to SECRET_KEY when unset
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = int(os.getenv("JWT_ACCESS_EXPIRES", "900"))
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Flask-Limiter
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RELATIONSHIP_RATE_LIMIT = os.getenv("RELATIONSHIP_RATE_LIMIT", "60/minute")
    ACTIVITY_RATE_LIMIT = os.getenv("ACTIVITY_RATE_LIMIT", "200/minute")

    # History/comment writes with no acting user: raise (True) or skip (False)
    HISTORY_REQUIRE_USER = _env_flag("HISTORY_REQUIRE_USER", "true")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    # Pool options do not apply to the in-memory SQLite engine
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    HISTORY_REQUIRE_USER = True


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {"options": "-c statement_timeout=30000"},
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
