"""
Workspace Insights
Flask Application Factory.

Usage:
    from workspace_hub import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os
import time

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from workspace_hub.config import config
from workspace_hub.core.exceptions import (
    AccessDeniedError,
    NotFoundError,
    ScopeResolutionError,
    ValidationError,
)
from workspace_hub.middleware.logging_config import configure_logging
from workspace_hub.middleware.rate_limiter import init_rate_limits
from workspace_hub.middleware.request_context import init_request_context
from workspace_hub.middleware.timing import init_request_timing
from workspace_hub.models import db
from workspace_hub.services.snapshot_store import SnapshotStore
from workspace_hub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # limits are applied per blueprint
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to the APP_ENV env var, or "development".
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    cfg = config[config_name]
    app.config.from_object(cfg() if config_name == "production" else cfg)

    # ── Logging (must be first) ──────────────────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    app.extensions["workspace_hub.started_at"] = time.time()
    app.extensions["workspace_hub.snapshots"] = SnapshotStore()

    # ── Request middleware ───────────────────────────────────────────────
    init_request_timing(app)
    init_request_context(app)

    # ── Tables ───────────────────────────────────────────────────────────
    from workspace_hub.models import directory as _directory_models  # noqa: F401
    from workspace_hub.models import work as _work_models            # noqa: F401
    from workspace_hub.models import workspace as _workspace_models  # noqa: F401

    db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        os.makedirs(os.path.dirname(db_uri[len("sqlite:///"):]), exist_ok=True)
    # CREATE IF NOT EXISTS; schema changes go through `flask db migrate`
    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from workspace_hub.blueprints.analytics_bp import analytics_bp
    from workspace_hub.blueprints.health_bp import health_bp

    app.register_blueprint(analytics_bp)
    app.register_blueprint(health_bp)

    init_rate_limits(app, limiter)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Fill an empty database with the demo tenant set."""
        from workspace_hub.services.demo_seed import seed_demo
        ids = seed_demo()
        db.session.commit()
        logger.info("Seeded demo data. Try X-User-Id=%s X-Workspace-Id=%s", ids["owner"], ids["hq"])

    _register_error_handlers(app)
    return app


def _register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def _validation(exc):
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details or None)

    @app.errorhandler(NotFoundError)
    def _not_found_entity(exc):
        return api_error(E.NOT_FOUND, str(exc))

    @app.errorhandler(AccessDeniedError)
    def _forbidden(exc):
        return api_error(E.FORBIDDEN, "You are not a member of this workspace")

    @app.errorhandler(ScopeResolutionError)
    def _scope_unresolved(exc):
        logger.error(
            "Scope resolution failed: %s", exc,
            extra={"user_id": exc.user_id, "workspace_id": exc.workspace_id},
        )
        return api_error(E.SCOPE_UNRESOLVED, "Could not determine accessible workspaces")

    @app.errorhandler(404)
    def _not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error(E.RATE_LIMITED, "Rate limit exceeded",
                         details={"limit": str(getattr(e, "description", ""))})

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
