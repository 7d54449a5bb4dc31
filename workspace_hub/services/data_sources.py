"""
Workspace data-source façades.

The aggregation pipeline reads through ``WorkspaceDataSource``: one coroutine
per entity collection, each scoped to a single workspace. The pipeline does
not care what backs it; ``SqlWorkspaceDataSource`` serves the models in
``workspace_hub.models`` and tests plug in-memory fakes into the same seam.

Usage:
    source = SqlWorkspaceDataSource.from_app(current_app)
    reports = await source.list_reports_for_workspace(ws_id, ReportFilter(status="approved"))
"""

from __future__ import annotations

import abc
import asyncio
import logging

from workspace_hub.models import db
from workspace_hub.models.directory import (
    Branch,
    Department,
    Region,
    Team,
    TeamMembership,
    User,
)
from workspace_hub.models.work import Folder, Report, ReportTemplate, Task
from workspace_hub.models.workspace import Workspace, WorkspaceMember
from workspace_hub.services.records import (
    AccessibleWorkspaces,
    BranchRecord,
    DepartmentRecord,
    FolderRecord,
    RegionRecord,
    ReportFilter,
    ReportRecord,
    TaskRecord,
    TeamMembershipRecord,
    TeamRecord,
    TemplateRecord,
    UserRecord,
    WorkspaceRecord,
)
from workspace_hub.utils.helpers import as_utc

logger = logging.getLogger(__name__)


class WorkspaceDataSource(abc.ABC):
    """Read-only, per-workspace access to the document store."""

    @abc.abstractmethod
    async def get_workspace(self, workspace_id: str) -> WorkspaceRecord | None: ...

    @abc.abstractmethod
    async def get_accessible_workspaces(self, user_id: str) -> AccessibleWorkspaces: ...

    @abc.abstractmethod
    async def list_reports_for_workspace(
        self, workspace_id: str, report_filter: ReportFilter | None = None,
    ) -> list[ReportRecord]: ...

    @abc.abstractmethod
    async def list_users_for_workspace(self, workspace_id: str) -> list[UserRecord]: ...

    @abc.abstractmethod
    async def list_teams_for_workspace(self, workspace_id: str) -> list[TeamRecord]: ...

    @abc.abstractmethod
    async def list_team_memberships_for_workspace(self, workspace_id: str) -> list[TeamMembershipRecord]: ...

    @abc.abstractmethod
    async def list_departments_for_workspace(self, workspace_id: str) -> list[DepartmentRecord]: ...

    @abc.abstractmethod
    async def list_templates_for_workspace(self, workspace_id: str) -> list[TemplateRecord]: ...

    @abc.abstractmethod
    async def list_folders_for_workspace(self, workspace_id: str) -> list[FolderRecord]: ...

    @abc.abstractmethod
    async def list_tasks_for_workspace(self, workspace_id: str) -> list[TaskRecord]: ...

    @abc.abstractmethod
    async def list_branches_for_workspace(self, workspace_id: str) -> list[BranchRecord]: ...

    @abc.abstractmethod
    async def list_regions_for_workspace(self, workspace_id: str) -> list[RegionRecord]: ...


# ═════════════════════════════════════════════════════════════════════════════
# SQL-backed implementation
# ═════════════════════════════════════════════════════════════════════════════

class SqlWorkspaceDataSource(WorkspaceDataSource):
    """Serve the façade contract from the Flask-SQLAlchemy models.

    With ``offload_threads`` each query runs in ``asyncio.to_thread`` inside
    a fresh app context (own scoped session), so fetches for one workspace
    overlap. Without it, queries run inline on the calling loop and use the
    caller's app context; the testing config does this because in-memory
    SQLite is bound to a single connection.
    """

    def __init__(self, app=None, *, offload_threads: bool = False):
        if offload_threads and app is None:
            raise ValueError("offload_threads requires the Flask app to push contexts")
        self._app = app
        self._offload = offload_threads

    @classmethod
    def from_app(cls, app):
        return cls(app, offload_threads=bool(app.config.get("FETCH_OFFLOAD_THREADS", False)))

    async def _run(self, fn, *args):
        if self._offload:
            return await asyncio.to_thread(self._in_app_context, fn, *args)
        return fn(*args)

    def _in_app_context(self, fn, *args):
        with self._app.app_context():
            return fn(*args)

    # ── Workspaces ───────────────────────────────────────────────────────

    async def get_workspace(self, workspace_id):
        return await self._run(_load_workspace, workspace_id)

    async def get_accessible_workspaces(self, user_id):
        return await self._run(_load_accessible_workspaces, user_id)

    # ── Collections ──────────────────────────────────────────────────────

    async def list_reports_for_workspace(self, workspace_id, report_filter=None):
        return await self._run(_load_reports, workspace_id, report_filter or ReportFilter())

    async def list_users_for_workspace(self, workspace_id):
        return await self._run(_load_users, workspace_id)

    async def list_teams_for_workspace(self, workspace_id):
        return await self._run(_load_teams, workspace_id)

    async def list_team_memberships_for_workspace(self, workspace_id):
        return await self._run(_load_team_memberships, workspace_id)

    async def list_departments_for_workspace(self, workspace_id):
        return await self._run(_load_simple, Department, workspace_id)

    async def list_templates_for_workspace(self, workspace_id):
        return await self._run(_load_templates, workspace_id)

    async def list_folders_for_workspace(self, workspace_id):
        return await self._run(_load_folders, workspace_id)

    async def list_tasks_for_workspace(self, workspace_id):
        return await self._run(_load_tasks, workspace_id)

    async def list_branches_for_workspace(self, workspace_id):
        return await self._run(_load_branches, workspace_id)

    async def list_regions_for_workspace(self, workspace_id):
        return await self._run(_load_simple, Region, workspace_id)


# ── Row → record converters ──────────────────────────────────────────────

def _workspace_record(ws: Workspace) -> WorkspaceRecord:
    return WorkspaceRecord(
        id=ws.id,
        name=ws.name,
        workspace_type=ws.workspace_type or "main",
        parent_workspace_id=ws.parent_workspace_id,
        owner_id=ws.owner_id,
        region_id=ws.region_id,
        branch_id=ws.branch_id,
    )


def _load_workspace(workspace_id):
    ws = db.session.get(Workspace, workspace_id)
    return _workspace_record(ws) if ws else None


def _load_accessible_workspaces(user_id):
    owned = (
        Workspace.query
        .filter(Workspace.owner_id == user_id, Workspace.workspace_type == "main")
        .order_by(Workspace.created_at, Workspace.id)
        .all()
    )
    owned_ids = [ws.id for ws in owned]

    sub: dict[str, list[WorkspaceRecord]] = {pid: [] for pid in owned_ids}
    if owned_ids:
        children = (
            Workspace.query
            .filter(Workspace.parent_workspace_id.in_(owned_ids), Workspace.workspace_type == "sub")
            .order_by(Workspace.created_at, Workspace.id)
            .all()
        )
        for child in children:
            sub[child.parent_workspace_id].append(_workspace_record(child))

    rows = (
        db.session.query(WorkspaceMember.workspace_id, WorkspaceMember.role, Workspace.name)
        .join(Workspace, Workspace.id == WorkspaceMember.workspace_id)
        .filter(WorkspaceMember.user_id == user_id)
        .order_by(Workspace.created_at, Workspace.id)
        .all()
    )
    role_by_workspace = {r.workspace_id: r.role for r in rows}
    names = {r.workspace_id: r.name for r in rows}
    for ws in owned:
        names[ws.id] = ws.name
    for children in sub.values():
        for child in children:
            names[child.id] = child.name

    return AccessibleWorkspaces(
        owned=tuple(_workspace_record(ws) for ws in owned),
        sub={pid: tuple(children) for pid, children in sub.items()},
        role_by_workspace=role_by_workspace,
        names=names,
    )


def _load_reports(workspace_id, report_filter: ReportFilter):
    q = Report.query_for_workspace(workspace_id)
    if report_filter.status:
        q = q.filter(Report.status == report_filter.status)
    if report_filter.template_id:
        q = q.filter(Report.template_id == report_filter.template_id)
    if report_filter.author_id:
        q = q.filter(Report.author_id == report_filter.author_id)
    if report_filter.date_from is not None:
        q = q.filter(Report.created_at >= report_filter.date_from)
    if report_filter.date_to is not None:
        q = q.filter(Report.created_at <= report_filter.date_to)
    return [
        ReportRecord(
            id=r.id,
            author_id=r.author_id,
            status=r.status,
            created_at=as_utc(r.created_at),
            submitted_at=as_utc(r.submitted_at),
            finalized_at=as_utc(r.finalized_at),
            template_id=r.template_id,
            title=r.title or "",
            time_spent_minutes=r.time_spent_minutes,
        )
        for r in q.order_by(Report.created_at).all()
    ]


def _load_users(workspace_id):
    rows = (
        db.session.query(User, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.user_id == User.id)
        .filter(WorkspaceMember.workspace_id == workspace_id)
        .order_by(User.created_at, User.id)
        .all()
    )
    return [
        UserRecord(
            id=u.id,
            email=u.email,
            name=u.name,
            role=role,
            department=u.department,
            status=u.status or "active",
        )
        for u, role in rows
    ]


def _load_teams(workspace_id):
    return [
        TeamRecord(
            id=t.id,
            name=t.name,
            description=t.description or "",
            lead_id=t.lead_id,
            branch_id=t.branch_id,
            region_id=t.region_id,
            created_at=as_utc(t.created_at),
        )
        for t in Team.query_for_workspace(workspace_id).order_by(Team.created_at, Team.id).all()
    ]


def _load_team_memberships(workspace_id):
    rows = (
        TeamMembership.query
        .join(Team, Team.id == TeamMembership.team_id)
        .filter(Team.workspace_id == workspace_id)
        .order_by(TeamMembership.id)
        .all()
    )
    return [
        TeamMembershipRecord(
            team_id=m.team_id, user_id=m.user_id, role=m.role, joined_at=as_utc(m.joined_at),
        )
        for m in rows
    ]


def _load_simple(model, workspace_id):
    record_cls = DepartmentRecord if model is Department else RegionRecord
    return [
        record_cls(id=row.id, name=row.name)
        for row in model.query_for_workspace(workspace_id).order_by(model.name).all()
    ]


def _load_templates(workspace_id):
    return [
        TemplateRecord(id=t.id, name=t.name, category=t.category, department=t.department)
        for t in ReportTemplate.query_for_workspace(workspace_id).order_by(ReportTemplate.name).all()
    ]


def _load_folders(workspace_id):
    return [
        FolderRecord(id=f.id, name=f.name, created_by=f.created_by, created_at=as_utc(f.created_at))
        for f in Folder.query_for_workspace(workspace_id).order_by(Folder.created_at).all()
    ]


def _load_tasks(workspace_id):
    return [
        TaskRecord(
            id=t.id,
            title=t.title,
            status=t.status,
            assignee_id=t.assignee_id,
            created_by=t.created_by,
            priority=t.priority or "medium",
            due_date=as_utc(t.due_date),
            updated_at=as_utc(t.updated_at),
            completed_at=as_utc(t.completed_at),
        )
        for t in Task.query_for_workspace(workspace_id).order_by(Task.updated_at).all()
    ]


def _load_branches(workspace_id):
    return [
        BranchRecord(id=b.id, name=b.name, region_id=b.region_id)
        for b in Branch.query_for_workspace(workspace_id).order_by(Branch.name).all()
    ]
