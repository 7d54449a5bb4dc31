"""
Typed records exchanged between the data sources and the aggregation pipeline.

Data sources convert persistence rows into these frozen dataclasses at the
boundary; the pipeline never sees ORM objects. Merged collections wrap each
record in ``Tagged`` so its originating workspace travels with it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER)

PENDING_REPORT_STATUSES = frozenset({"submitted", "under_review"})


class EntityKind(str, enum.Enum):
    """Entity collections a screen can ask the fetch stage for."""

    REPORTS = "reports"
    USERS = "users"
    TEAMS = "teams"
    DEPARTMENTS = "departments"
    TEMPLATES = "templates"
    FOLDERS = "folders"
    TASKS = "tasks"
    BRANCHES = "branches"
    REGIONS = "regions"
    TEAM_MEMBERSHIPS = "team_memberships"


# ── Entities ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class WorkspaceRecord:
    id: str
    name: str
    workspace_type: str = "main"
    parent_workspace_id: str | None = None
    owner_id: str | None = None
    region_id: str | None = None
    branch_id: str | None = None

    @property
    def is_sub(self) -> bool:
        return self.workspace_type == "sub"


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    name: str | None = None
    role: str = ROLE_MEMBER
    department: str | None = None
    status: str = "active"


@dataclass(frozen=True)
class ReportRecord:
    id: str
    author_id: str | None
    status: str
    created_at: datetime | None
    submitted_at: datetime | None = None
    finalized_at: datetime | None = None
    template_id: str | None = None
    title: str = ""
    time_spent_minutes: float | None = None


@dataclass(frozen=True)
class TaskRecord:
    id: str
    title: str
    status: str
    assignee_id: str | None = None
    created_by: str | None = None
    priority: str = "medium"
    due_date: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


@dataclass(frozen=True)
class TeamRecord:
    id: str
    name: str
    description: str = ""
    lead_id: str | None = None
    branch_id: str | None = None
    region_id: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class TeamMembershipRecord:
    team_id: str
    user_id: str
    role: str = "member"
    joined_at: datetime | None = None

    @property
    def id(self) -> tuple[str, str]:
        # Relations carry no document id; the pair is the identity.
        return (self.team_id, self.user_id)


@dataclass(frozen=True)
class DepartmentRecord:
    id: str
    name: str


@dataclass(frozen=True)
class TemplateRecord:
    id: str
    name: str
    category: str | None = None
    department: str | None = None


@dataclass(frozen=True)
class FolderRecord:
    id: str
    name: str
    created_by: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class BranchRecord:
    id: str
    name: str
    region_id: str | None = None


@dataclass(frozen=True)
class RegionRecord:
    id: str
    name: str


# ── Tagging ──────────────────────────────────────────────────────────────

T = TypeVar("T")


@dataclass(frozen=True)
class Tagged(Generic[T]):
    """A record plus the workspace it was fetched from."""

    record: T
    workspace_id: str
    workspace_name: str

    @property
    def id(self):
        return self.record.id


# ── Lookup payloads ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class AccessibleWorkspaces:
    """Result of ``get_accessible_workspaces``.

    owned:             main workspaces the user owns
    sub:               parent id → sub workspaces under that parent
    role_by_workspace: workspace id → the user's role there
    """

    owned: tuple[WorkspaceRecord, ...] = ()
    sub: dict[str, tuple[WorkspaceRecord, ...]] = field(default_factory=dict)
    role_by_workspace: dict[str, str] = field(default_factory=dict)
    names: dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.owned and not any(self.sub.values()) and not self.role_by_workspace


@dataclass(frozen=True)
class ReportFilter:
    """Server-side report filter; ``None`` means "all"."""

    status: str | None = None
    template_id: str | None = None
    author_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    @classmethod
    def from_selection(cls, *, status="all", template="all", user="all", date_from=None, date_to=None):
        """Build from UI-style selections where ``"all"`` disables a filter."""
        return cls(
            status=None if status in (None, "", "all") else status,
            template_id=None if template in (None, "", "all") else template,
            author_id=None if user in (None, "", "all") else user,
            date_from=date_from,
            date_to=date_to,
        )
