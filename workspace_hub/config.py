"""
Workspace Insights
Configuration classes for the Flask app factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import json
import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'workspace_insights_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Random per-process key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _env_bool(name, default):
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def _env_weights(name):
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return {k: float(v) for k, v in json.loads(raw).items()}
    except (ValueError, AttributeError, TypeError) as exc:
        raise RuntimeError(f"{name} must be a JSON object of numeric weights") from exc


def _database_url(default):
    raw = os.getenv("DATABASE_URL", "")
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    return raw.replace("postgres://", "postgresql://", 1) if raw else default


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Rate limiting (Flask-Limiter)
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    DASHBOARD_RATE_LIMIT = os.getenv("DASHBOARD_RATE_LIMIT", "60 per minute")

    # Aggregation pipeline
    FETCH_OFFLOAD_THREADS = _env_bool("FETCH_OFFLOAD_THREADS", True)
    ACTIVITY_SCORE_STRATEGY = os.getenv("ACTIVITY_SCORE_STRATEGY", "weighted")
    ACTIVITY_SCORE_WEIGHTS = _env_weights("ACTIVITY_SCORE_WEIGHTS")
    UPCOMING_DEADLINE_DAYS = int(os.getenv("UPCOMING_DEADLINE_DAYS", "7"))
    DEFAULT_REPORT_WINDOW_DAYS = int(os.getenv("DEFAULT_REPORT_WINDOW_DAYS", "30"))
    TREND_MONTHS = int(os.getenv("TREND_MONTHS", "6"))
    TOP_N = int(os.getenv("TOP_N", "10"))
    TELEMETRY_WINDOW_SECONDS = int(os.getenv("TELEMETRY_WINDOW_SECONDS", "3600"))


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    # In-memory SQLite lives on one connection; keep queries on the caller's thread
    FETCH_OFFLOAD_THREADS = False
    ACTIVITY_SCORE_STRATEGY = "weighted"
    ACTIVITY_SCORE_WEIGHTS = None


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url(None)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {
            "options": "-c statement_timeout=30000",
        },
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
