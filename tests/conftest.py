"""
Shared pytest fixtures for the Workspace Insights test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - seeded: Committed demo tenant set, returns the id map
    - identity: Header builder for X-User-Id / X-Workspace-Id
"""

import pytest

from workspace_hub import create_app
from workspace_hub.middleware.timing import reset_metrics
from workspace_hub.models import db as _db
from workspace_hub.services.demo_seed import seed_demo


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        app.extensions["workspace_hub.snapshots"].clear()
        reset_metrics()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def seeded():
    """Seed the demo tenant set and commit so test-client requests see it."""
    ids = seed_demo()
    _db.session.commit()
    return ids


@pytest.fixture()
def identity():
    """Build identity headers: ``identity(user_id, workspace_id)``."""
    def _headers(user_id, workspace_id):
        return {"X-User-Id": user_id, "X-Workspace-Id": workspace_id}
    return _headers
