"""
Request identity middleware.

Authentication happens upstream; this layer only reads the acting identity
and hands it to views on ``flask.g``:

  X-User-Id       / ?user_id=       → g.user_id
  X-Workspace-Id  / ?workspace_id=  → g.workspace_id

Headers win over query parameters. Missing values stay None and are
rejected by the views that need them.
"""

from flask import g, request

IDENTITY_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def init_request_context(app):
    """Register the identity hook as a before_request handler."""

    @app.before_request
    def _request_identity():
        g.user_id = None
        g.workspace_id = None

        if request.path.startswith(IDENTITY_SKIP_PREFIXES):
            return None

        g.user_id = request_user_id()
        g.workspace_id = _clean(request.headers.get("X-Workspace-Id") or request.args.get("workspace_id"))
        return None


def request_user_id():
    """Acting user id straight from the request; usable before the hook runs."""
    return _clean(request.headers.get("X-User-Id") or request.args.get("user_id"))


def _clean(value):
    if value is None:
        return None
    value = value.strip()
    return value or None
