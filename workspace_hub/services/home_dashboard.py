"""
Role-scoped home dashboard.

Owners and admins see every task and every report awaiting review in their
scope; members see the tasks they are assigned to or created and their own
reports. Activity scoring is delegated to an ``ActivityScoreStrategy``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone

from workspace_hub.services import metric_math as mm
from workspace_hub.services.activity_scoring import ActivityScoring, ActivitySignals
from workspace_hub.services.records import (
    PENDING_REPORT_STATUSES,
    ROLE_ADMIN,
    ROLE_OWNER,
    EntityKind,
)
from workspace_hub.services.workspace_fetch import gather_workspace_collections
from workspace_hub.utils.helpers import isoformat

logger = logging.getLogger(__name__)

HOME_KINDS = (
    EntityKind.TASKS,
    EntityKind.REPORTS,
    EntityKind.TEAMS,
    EntityKind.TEAM_MEMBERSHIPS,
    EntityKind.FOLDERS,
)

MAX_DEADLINES = 5
MAX_ACTIVITY = 10


@dataclass(frozen=True)
class HomeDashboard:
    total_tasks: int
    completed_tasks: int
    completion_percentage: int
    pending_reports: int
    active_teams: int
    my_teams: list
    completed_this_week: int
    reports_this_week: int
    weekly_progress: int
    activity_score: int
    activity_strategy: str
    upcoming_deadlines: list
    recent_activity: list
    system: dict | None
    workspace_ids: list
    failures: list
    partial: bool
    last_updated: str

    def to_dict(self) -> dict:
        return asdict(self)


async def build_home_dashboard(scope, source, *, now=None, strategy=None, telemetry=None,
                               upcoming_days=7):
    merged = await gather_workspace_collections(scope, source, HOME_KINDS)
    return derive_home_dashboard(
        merged, scope, now=now, strategy=strategy, telemetry=telemetry, upcoming_days=upcoming_days,
    )


def derive_home_dashboard(merged, scope, *, now=None, strategy=None, telemetry=None, upcoming_days=7):
    now = mm.as_aware(now) or datetime.now(timezone.utc)
    strategy = strategy or ActivityScoring.get("weighted")
    user_id = scope.user_id
    elevated = scope.role in (ROLE_OWNER, ROLE_ADMIN)

    def visible_task(task):
        return elevated or user_id in (task.assignee_id, task.created_by)

    tasks = [t for t in merged.tasks if visible_task(t.record)]
    reports = [r for r in merged.reports if elevated or r.record.author_id == user_id]
    folders = [f for f in merged.folders if elevated or f.record.created_by == user_id]
    memberships = [m for m in merged.team_memberships if elevated or m.record.user_id == user_id]

    completed = [t for t in tasks if t.record.is_completed]
    pending = [r for r in reports if r.record.status in PENDING_REPORT_STATUSES]

    this_week = mm.week_window(now)
    last_week = mm.previous_week_window(now)
    completed_this_week = sum(1 for t in completed if mm.in_window(_completed_at(t.record), *this_week))
    completed_last_week = sum(1 for t in completed if mm.in_window(_completed_at(t.record), *last_week))
    reports_this_week = sum(1 for r in reports if mm.in_window(_submitted_at(r.record), *this_week))
    external = (
        sum(1 for f in folders if mm.in_window(f.record.created_at, *this_week))
        + sum(1 for m in memberships if mm.in_window(m.record.joined_at, *this_week))
    )

    signals = ActivitySignals(
        completed_this_week=completed_this_week,
        reports_this_week=reports_this_week,
        external_activity=external,
        total_tasks=len(tasks),
        completed_tasks=len(completed),
    )
    my_teams = _my_teams(merged, user_id)

    return HomeDashboard(
        total_tasks=len(tasks),
        completed_tasks=len(completed),
        completion_percentage=mm.rounded_percentage(len(completed), len(tasks)),
        pending_reports=len(pending),
        active_teams=len(my_teams),
        my_teams=my_teams,
        completed_this_week=completed_this_week,
        reports_this_week=reports_this_week,
        weekly_progress=mm.weekly_progress(completed_this_week, completed_last_week),
        activity_score=strategy.score(signals),
        activity_strategy=strategy.name,
        upcoming_deadlines=_upcoming_deadlines(tasks, now, upcoming_days),
        recent_activity=_recent_activity(completed, reports, folders, memberships, merged),
        system=telemetry.to_dict() if telemetry is not None else None,
        workspace_ids=list(merged.loaded_workspace_ids),
        failures=merged.failures_as_dicts(),
        partial=merged.partial,
        last_updated=now.isoformat(),
    )


def _completed_at(task):
    return task.completed_at or task.updated_at


def _submitted_at(report):
    if report.status == "draft":
        return None
    return report.submitted_at or report.created_at


def _my_teams(merged, user_id):
    roles = {m.record.team_id: m.record.role for m in merged.team_memberships if m.record.user_id == user_id}
    return [
        {
            "id": t.id,
            "name": t.record.name,
            "role": roles[t.id],
            "workspace_id": t.workspace_id,
            "workspace_name": t.workspace_name,
        }
        for t in merged.teams
        if t.id in roles
    ]


def _upcoming_deadlines(tasks, now, days):
    horizon = now + timedelta(days=days)
    due = [
        t for t in tasks
        if not t.record.is_completed and mm.in_window(t.record.due_date, now, horizon)
    ]
    due.sort(key=lambda t: mm.as_aware(t.record.due_date))
    return [
        {
            "id": t.id,
            "title": t.record.title,
            "due_date": isoformat(t.record.due_date),
            "priority": t.record.priority,
            "days_left": int(mm.days_between(now, t.record.due_date)),
            "workspace_id": t.workspace_id,
            "workspace_name": t.workspace_name,
        }
        for t in due[:MAX_DEADLINES]
    ]


def _recent_activity(completed, reports, folders, memberships, merged):
    team_names = {t.id: t.record.name for t in merged.teams}
    events = []
    for t in completed:
        events.append(("task_completed", t.record.title, _completed_at(t.record), t))
    for r in reports:
        events.append(("report_submitted", r.record.title or "Untitled report", _submitted_at(r.record), r))
    for f in folders:
        events.append(("folder_created", f.record.name, f.record.created_at, f))
    for m in memberships:
        events.append(("team_joined", team_names.get(m.record.team_id, "Team"), m.record.joined_at, m))

    events = [e for e in events if e[2] is not None]
    events.sort(key=lambda e: mm.as_aware(e[2]), reverse=True)
    return [
        {
            "type": kind,
            "title": title,
            "timestamp": isoformat(mm.as_aware(ts)),
            "workspace_id": tagged.workspace_id,
            "workspace_name": tagged.workspace_name,
        }
        for kind, title, ts, tagged in events[:MAX_ACTIVITY]
    ]
