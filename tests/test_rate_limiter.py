from flask import Blueprint, Flask, g
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from workspace_hub.middleware.rate_limiter import init_rate_limits
from workspace_hub.middleware.request_context import init_request_context


def _limited_app(**overrides):
    """App wired like create_app: limiter first, identity hook after it."""
    app = Flask(__name__)
    app.config.update(RATELIMIT_ENABLED=True, DASHBOARD_RATE_LIMIT="1 per minute", **overrides)

    limiter = Limiter(get_remote_address, storage_uri="memory://")
    limiter.init_app(app)
    init_request_context(app)

    bp = Blueprint("analytics", __name__)

    @bp.route("/whoami")
    def whoami():
        return {"user_id": g.user_id}

    app.register_blueprint(bp)
    init_rate_limits(app, limiter)
    return app


def test_each_user_has_own_bucket():
    client = _limited_app().test_client()
    assert client.get("/whoami", headers={"X-User-Id": "alice"}).status_code == 200
    assert client.get("/whoami", headers={"X-User-Id": "alice"}).status_code == 429
    assert client.get("/whoami", headers={"X-User-Id": "bob"}).status_code == 200
    assert client.get("/whoami?user_id=carol").status_code == 200


def test_anonymous_callers_share_remote_address_bucket():
    client = _limited_app().test_client()
    assert client.get("/whoami").status_code == 200
    assert client.get("/whoami").status_code == 429


def test_disabled_in_testing():
    client = _limited_app(TESTING=True).test_client()
    for _ in range(3):
        assert client.get("/whoami", headers={"X-User-Id": "alice"}).status_code == 200
