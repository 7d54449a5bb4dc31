"""
Rate limiting for the analytics API (Flask-Limiter).

The Limiter instance is created in workspace_hub/__init__.py with no default
limits; this module applies DASHBOARD_RATE_LIMIT to the analytics blueprint,
keyed by acting user when known and by remote address otherwise.

Rate limiting is disabled in testing mode.
"""

from flask import request

from workspace_hub.middleware.request_context import request_user_id


def _rate_limit_key():
    # Flask-Limiter checks before the identity hook has populated g
    user_id = request_user_id()
    if user_id:
        return f"user:{user_id}"
    return request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """Apply per-blueprint limits. Call after blueprints are registered."""
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    limit = app.config.get("DASHBOARD_RATE_LIMIT", "60 per minute")
    bp = app.blueprints.get("analytics")
    if bp:
        limiter.limit(limit, key_func=_rate_limit_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: analytics %s", limit)
