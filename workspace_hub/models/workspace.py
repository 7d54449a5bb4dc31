"""
Workspace hierarchy models.

Models:
    - Workspace: tenant container, either a ``main`` workspace or a ``sub``
      workspace bound to one region/branch of its parent
    - WorkspaceMember: user ↔ workspace relation carrying the role
"""

from workspace_hub.models import db
from workspace_hub.models.base import _utcnow, _uuid

WORKSPACE_TYPES = ("main", "sub")
WORKSPACE_ROLES = ("owner", "admin", "member")


def _one_of(column, values):
    return f"{column} IN (" + ",".join(f"'{v}'" for v in values) + ")"


class Workspace(db.Model):
    """Tenant-scoped container for teams, reports and users."""

    __tablename__ = "workspaces"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    workspace_type = db.Column(
        db.String(10), nullable=False, default="main",
        comment="main | sub",
    )
    parent_workspace_id = db.Column(
        db.String(36),
        db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    owner_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    region_id = db.Column(
        db.String(36), nullable=True,
        comment="Bound region of a sub workspace",
    )
    branch_id = db.Column(
        db.String(36), nullable=True,
        comment="Bound branch of a sub workspace",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "workspace_type = 'main' OR parent_workspace_id IS NOT NULL",
            name="ck_workspaces_sub_has_parent",
        ),
        db.CheckConstraint(_one_of("workspace_type", WORKSPACE_TYPES), name="ck_workspaces_type"),
    )

    def __repr__(self):
        return f"<Workspace {self.id} {self.name!r} ({self.workspace_type})>"


class WorkspaceMember(db.Model):
    """Membership of a user in a workspace."""

    __tablename__ = "workspace_members"

    id = db.Column(db.Integer, primary_key=True)
    workspace_id = db.Column(
        db.String(36),
        db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = db.Column(db.String(20), nullable=False, default="member", comment="owner | admin | member")
    joined_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
        db.CheckConstraint(_one_of("role", WORKSPACE_ROLES), name="ck_workspace_members_role"),
    )

    def __repr__(self):
        return f"<WorkspaceMember ws={self.workspace_id} user={self.user_id} role={self.role}>"
