"""
Demo tenant seed.

Creates a small, deterministic tenant set for local demos and tests:

  Northwind HQ    (main)  owner: Olivia   admin: Adam   member: Mia
  Northwind Lab   (main)  owner: Olivia   member: Adam, Sam
  Istanbul Office (sub of HQ, bound to EMEA / Istanbul)  member: Mia

plus departments, templates, six months of reports, tasks, teams and
folders. ``seed_demo`` flushes but does not commit; the caller owns the
transaction.

Usage:
    flask seed-demo
"""

import logging
from datetime import datetime, timedelta, timezone

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

logger = logging.getLogger(__name__)


def seed_demo(now=None):
    """Insert the demo tenant set. Returns a dict of the ids tests and demos refer to."""
    now = now or datetime.now(timezone.utc)
    if Workspace.query.first() is not None:
        raise RuntimeError("database already contains workspaces; seed-demo expects an empty database")

    ids = {}

    # ── People ───────────────────────────────────────────────────────────
    owner = User(name="Olivia Owner", email="olivia@northwind.test", department="Operations")
    admin = User(name="Adam Admin", email="adam@northwind.test", department="Finance")
    member = User(name="Mia Member", email="mia@northwind.test", department="Finance")
    analyst = User(name=None, email="sam@northwind.test", department="Sales")
    db.session.add_all([owner, admin, member, analyst])
    db.session.flush()
    ids.update(owner=owner.id, admin=admin.id, member=member.id, analyst=analyst.id)

    # ── Workspaces ───────────────────────────────────────────────────────
    hq = Workspace(name="Northwind HQ", workspace_type="main", owner_id=owner.id,
                   created_at=now - timedelta(days=400))
    lab = Workspace(name="Northwind Lab", workspace_type="main", owner_id=owner.id,
                    created_at=now - timedelta(days=300))
    db.session.add_all([hq, lab])
    db.session.flush()

    emea = Region(workspace_id=hq.id, name="EMEA")
    americas = Region(workspace_id=hq.id, name="Americas")
    db.session.add_all([emea, americas])
    db.session.flush()
    istanbul = Branch(workspace_id=hq.id, region_id=emea.id, name="Istanbul")
    austin = Branch(workspace_id=hq.id, region_id=americas.id, name="Austin")
    db.session.add_all([istanbul, austin])
    db.session.flush()

    office = Workspace(
        name="Istanbul Office", workspace_type="sub", parent_workspace_id=hq.id,
        owner_id=owner.id, region_id=emea.id, branch_id=istanbul.id,
        created_at=now - timedelta(days=200),
    )
    db.session.add(office)
    db.session.flush()
    ids.update(
        hq=hq.id, lab=lab.id, office=office.id,
        emea=emea.id, americas=americas.id, istanbul=istanbul.id, austin=austin.id,
    )

    db.session.add_all([
        WorkspaceMember(workspace_id=hq.id, user_id=owner.id, role="owner"),
        WorkspaceMember(workspace_id=lab.id, user_id=owner.id, role="owner"),
        WorkspaceMember(workspace_id=office.id, user_id=owner.id, role="owner"),
        WorkspaceMember(workspace_id=hq.id, user_id=admin.id, role="admin"),
        WorkspaceMember(workspace_id=lab.id, user_id=admin.id, role="member"),
        WorkspaceMember(workspace_id=hq.id, user_id=member.id, role="member"),
        WorkspaceMember(workspace_id=office.id, user_id=member.id, role="member"),
        WorkspaceMember(workspace_id=lab.id, user_id=analyst.id, role="member"),
    ])

    # ── Reference dimensions ─────────────────────────────────────────────
    finance = Department(workspace_id=hq.id, name="Finance")
    operations = Department(workspace_id=hq.id, name="Operations")
    lab_finance = Department(workspace_id=lab.id, name="Finance")
    sales = Department(workspace_id=lab.id, name="Sales")
    close_tpl = ReportTemplate(workspace_id=hq.id, name="Monthly Close", category="Finance", department="Finance")
    inspection_tpl = ReportTemplate(workspace_id=hq.id, name="Site Inspection", category="Operations")
    pipeline_tpl = ReportTemplate(workspace_id=lab.id, name="Pipeline Review")
    db.session.add_all([finance, operations, lab_finance, sales, close_tpl, inspection_tpl, pipeline_tpl])
    db.session.flush()
    ids.update(
        finance=finance.id, operations=operations.id, sales=sales.id,
        close_tpl=close_tpl.id, inspection_tpl=inspection_tpl.id, pipeline_tpl=pipeline_tpl.id,
    )

    # ── Reports ──────────────────────────────────────────────────────────
    # (workspace, author, template, status, days ago, hours to decision)
    plan = [
        (hq, admin, close_tpl, "approved", 2, 20),
        (hq, admin, close_tpl, "approved", 9, 30),
        (hq, member, close_tpl, "rejected", 5, 12),
        (hq, member, inspection_tpl, "submitted", 1, None),
        (hq, owner, inspection_tpl, "under_review", 3, None),
        (hq, member, None, "draft", 0, None),
        (hq, admin, close_tpl, "approved", 40, 48),
        (hq, member, inspection_tpl, "rejected", 70, 24),
        (hq, admin, close_tpl, "approved", 100, 6),
        (hq, owner, inspection_tpl, "approved", 130, 72),
        (lab, analyst, pipeline_tpl, "approved", 4, 10),
        (lab, analyst, pipeline_tpl, "submitted", 6, None),
        (lab, admin, pipeline_tpl, "approved", 45, 16),
        (office, member, inspection_tpl, "approved", 8, 8),
    ]
    for index, (ws, author, template, status, days_ago, decision_hours) in enumerate(plan, start=1):
        created = now - timedelta(days=days_ago, hours=1)
        submitted = None if status == "draft" else created + timedelta(hours=1)
        finalized = (
            submitted + timedelta(hours=decision_hours)
            if decision_hours is not None and status in ("approved", "rejected") else None
        )
        db.session.add(Report(
            workspace_id=ws.id,
            author_id=author.id,
            template_id=template.id if template else None,
            title=f"{template.name if template else 'Ad-hoc'} #{index}",
            status=status,
            created_at=created,
            submitted_at=submitted,
            finalized_at=finalized,
            time_spent_minutes=15.0 * (index % 4 + 1),
        ))

    # ── Tasks ────────────────────────────────────────────────────────────
    db.session.add_all([
        Task(workspace_id=hq.id, title="Reconcile ledger", assignee_id=member.id, created_by=admin.id,
             status="completed", priority="high", completed_at=now - timedelta(hours=2),
             updated_at=now - timedelta(hours=2)),
        Task(workspace_id=hq.id, title="Prepare audit pack", assignee_id=member.id, created_by=owner.id,
             status="in_progress", priority="high", due_date=now + timedelta(days=2)),
        Task(workspace_id=hq.id, title="Review travel policy", assignee_id=admin.id, created_by=owner.id,
             status="todo", priority="medium", due_date=now + timedelta(days=5)),
        Task(workspace_id=hq.id, title="Archive Q1 files", assignee_id=admin.id, created_by=admin.id,
             status="completed", priority="low", completed_at=now - timedelta(days=9),
             updated_at=now - timedelta(days=9)),
        Task(workspace_id=lab.id, title="Qualify leads", assignee_id=analyst.id, created_by=owner.id,
             status="todo", priority="medium", due_date=now + timedelta(days=20)),
        Task(workspace_id=office.id, title="Office safety walk", assignee_id=member.id, created_by=owner.id,
             status="todo", priority="high", due_date=now + timedelta(days=1)),
    ])

    # ── Teams & folders ──────────────────────────────────────────────────
    close_team = Team(workspace_id=hq.id, name="Close Team", description="Month-end close",
                      lead_id=admin.id, branch_id=istanbul.id, region_id=emea.id)
    field_ops = Team(workspace_id=hq.id, name="Field Ops", description="Site inspections",
                     branch_id=austin.id, region_id=americas.id)
    crew = Team(workspace_id=office.id, name="Istanbul Crew", description="Local operations",
                branch_id=istanbul.id, region_id=emea.id)
    sales_pod = Team(workspace_id=lab.id, name="Sales Pod", description="")
    db.session.add_all([close_team, field_ops, crew, sales_pod])
    db.session.flush()
    ids.update(close_team=close_team.id, field_ops=field_ops.id, crew=crew.id, sales_pod=sales_pod.id)

    db.session.add_all([
        TeamMembership(team_id=close_team.id, user_id=admin.id, role="lead", joined_at=now - timedelta(days=60)),
        TeamMembership(team_id=close_team.id, user_id=member.id, role="member", joined_at=now - timedelta(hours=5)),
        TeamMembership(team_id=crew.id, user_id=member.id, role="lead", joined_at=now - timedelta(days=30)),
        TeamMembership(team_id=sales_pod.id, user_id=analyst.id, role="member", joined_at=now - timedelta(days=10)),
        Folder(workspace_id=hq.id, name="Audit 2026", created_by=member.id, created_at=now - timedelta(hours=3)),
        Folder(workspace_id=lab.id, name="Leads", created_by=analyst.id, created_at=now - timedelta(days=20)),
    ])
    db.session.flush()

    logger.info("Seeded demo tenant set: %d workspaces, %d reports", 3, len(plan))
    return ids
