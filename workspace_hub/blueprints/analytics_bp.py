"""
Analytics Blueprint — cross-workspace dashboards.

Endpoints:
    GET /api/v1/analytics/scope             — resolved workspace scope
    GET /api/v1/analytics/reports           — report analytics dashboard
    GET /api/v1/analytics/overview          — role-scoped home dashboard
    GET /api/v1/analytics/teams             — team / branch / region directory
    GET /api/v1/analytics/<screen>/latest   — last accepted snapshot of a screen

Identity comes from g.user_id / g.workspace_id (see middleware.request_context).
Each screen run takes a snapshot generation before it starts; a run that
finishes after a newer one has published is returned with
``"superseded": true`` and does not replace the stored snapshot.
"""

import asyncio
import logging
import time

from flask import Blueprint, current_app, g, jsonify, request

from workspace_hub.services.activity_scoring import strategy_from_config
from workspace_hub.services.data_sources import SqlWorkspaceDataSource
from workspace_hub.services.home_dashboard import build_home_dashboard
from workspace_hub.services.report_analytics import ReportDashboardFilters, build_report_dashboard
from workspace_hub.services.scope_resolver import resolve_request_identity, resolve_workspace_scope
from workspace_hub.services.snapshot_store import SnapshotStore
from workspace_hub.services.system_telemetry import collect_telemetry
from workspace_hub.services.team_directory import build_team_directory
from workspace_hub.utils.errors import E, api_error
from workspace_hub.utils.helpers import parse_bool, parse_date_input

logger = logging.getLogger(__name__)

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/v1/analytics")

SCREENS = ("reports", "overview", "teams")


def _snapshots() -> SnapshotStore:
    return current_app.extensions["workspace_hub.snapshots"]


def _source():
    return SqlWorkspaceDataSource.from_app(current_app._get_current_object())


def _identity_error():
    missing = {}
    if not g.get("user_id"):
        missing["user_id"] = "required (X-User-Id header or user_id query parameter)"
    if not g.get("workspace_id"):
        missing["workspace_id"] = "required (X-Workspace-Id header or workspace_id query parameter)"
    if missing:
        return api_error(E.VALIDATION_REQUIRED, "User and workspace identity are required", details=missing)
    return None


async def _resolve_scope(source, include_all):
    workspace, role = await resolve_request_identity(g.user_id, g.workspace_id, source)
    return await resolve_workspace_scope(g.user_id, role, workspace, source, include_all=include_all)


def _run_screen(screen, build, *, include_all=True, echo=None):
    """Resolve scope, run ``build(scope, source)`` and publish the snapshot."""
    error = _identity_error()
    if error:
        return error

    store = _snapshots()
    key = SnapshotStore.key(screen, g.user_id, g.workspace_id)
    generation = store.begin(key)
    source = _source()
    started = time.perf_counter()

    async def pipeline():
        scope = await _resolve_scope(source, include_all)
        result = await build(scope, source)
        return scope, result

    scope, result = asyncio.run(pipeline())

    payload = {"screen": screen, "scope": scope.to_dict(), **result.to_dict()}
    if echo:
        payload["filters"] = echo
    accepted = store.publish(key, generation, payload)

    logger.info(
        "Built %s dashboard", screen,
        extra={
            "user_id": g.user_id,
            "workspace_id": g.workspace_id,
            "workspace_count": len(scope.workspace_ids),
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "event_type": f"analytics.{screen}",
        },
    )
    return jsonify({**payload, "generation": generation, "superseded": not accepted}), 200


@analytics_bp.route("/scope", methods=["GET"])
def scope():
    """Workspaces the caller's role lets them aggregate over."""
    error = _identity_error()
    if error:
        return error
    include_all = parse_bool(request.args.get("all_workspaces"), default=True)
    resolved = asyncio.run(_resolve_scope(_source(), include_all))
    return jsonify(resolved.to_dict()), 200


@analytics_bp.route("/reports", methods=["GET"])
def reports():
    """Report analytics.

    Query: from, to (ISO dates; default last DEFAULT_REPORT_WINDOW_DAYS days),
    status, template, user, department, all_workspaces.
    """
    cfg = current_app.config
    selection = {
        "status": request.args.get("status", "all"),
        "template": request.args.get("template", "all"),
        "user": request.args.get("user", "all"),
        "department": request.args.get("department", "all"),
    }
    filters = ReportDashboardFilters.last_days(days=cfg["DEFAULT_REPORT_WINDOW_DAYS"], **selection)
    try:
        date_from = parse_date_input(request.args.get("from"))
        date_to = parse_date_input(request.args.get("to"), end_of_day=True)
    except ValueError as exc:
        return api_error(
            E.VALIDATION_INVALID, str(exc),
            details={"from": request.args.get("from"), "to": request.args.get("to")},
        )
    if date_from or date_to:
        filters = ReportDashboardFilters(
            date_from=date_from or filters.date_from,
            date_to=date_to or filters.date_to,
            **selection,
        )

    async def build(scope, source):
        return await build_report_dashboard(
            scope, source, filters, trend_months=cfg["TREND_MONTHS"], top_n=cfg["TOP_N"],
        )

    return _run_screen(
        "reports", build,
        include_all=parse_bool(request.args.get("all_workspaces"), default=True),
        echo=filters.to_dict(),
    )


@analytics_bp.route("/overview", methods=["GET"])
def overview():
    """Role-scoped home dashboard with measured system telemetry."""
    app = current_app._get_current_object()
    strategy = strategy_from_config(app.config)
    telemetry = collect_telemetry(app)

    async def build(scope, source):
        return await build_home_dashboard(
            scope, source,
            strategy=strategy,
            telemetry=telemetry,
            upcoming_days=app.config["UPCOMING_DEADLINE_DAYS"],
        )

    return _run_screen("overview", build)


@analytics_bp.route("/teams", methods=["GET"])
def teams():
    """Teams with branch / region names. Query: search, branch, region, all_workspaces."""
    search = request.args.get("search", "")
    branch = request.args.get("branch", "all")
    region = request.args.get("region", "all")

    async def build(scope, source):
        return await build_team_directory(scope, source, search=search, branch_id=branch, region_id=region)

    return _run_screen(
        "teams", build,
        include_all=parse_bool(request.args.get("all_workspaces"), default=True),
        echo={"search": search, "branch": branch, "region": region},
    )


@analytics_bp.route("/<screen>/latest", methods=["GET"])
def latest(screen):
    """Last accepted snapshot for the caller, without recomputing."""
    if screen not in SCREENS:
        return api_error(E.NOT_FOUND, f"Unknown screen: {screen}")
    error = _identity_error()
    if error:
        return error
    snapshot = _snapshots().latest(SnapshotStore.key(screen, g.user_id, g.workspace_id))
    if snapshot is None:
        return api_error(E.NOT_FOUND, f"No {screen} snapshot yet")
    return jsonify({
        **snapshot.payload,
        "generation": snapshot.generation,
        "published_at": snapshot.published_at,
    }), 200
