"""
People & organisation models.

Models:
    - User: person record (role and workspace come from WorkspaceMember)
    - Department, Region, Branch: grouping dimensions inside a workspace
    - Team, TeamMembership: teams and their members
"""

from workspace_hub.models import db
from workspace_hub.models.base import WorkspaceModel, _utcnow, _uuid


class User(db.Model):
    """A person. Belongs to workspaces through WorkspaceMember rows."""

    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200))
    email = db.Column(db.String(200), nullable=False, index=True)
    department = db.Column(db.String(200), comment="Department name, not id")
    status = db.Column(db.String(20), default="active")  # active, invited, inactive
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<User {self.id} {self.email}>"


class Department(WorkspaceModel):
    __tablename__ = "departments"

    name = db.Column(db.String(200), nullable=False)


class Region(WorkspaceModel):
    __tablename__ = "regions"

    name = db.Column(db.String(200), nullable=False)


class Branch(WorkspaceModel):
    __tablename__ = "branches"

    region_id = db.Column(
        db.String(36), db.ForeignKey("regions.id", ondelete="SET NULL"),
        nullable=True,
    )
    name = db.Column(db.String(200), nullable=False)


class Team(WorkspaceModel):
    """A team inside a workspace, optionally placed in a branch/region."""

    __tablename__ = "teams"

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    lead_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    branch_id = db.Column(
        db.String(36), db.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True,
    )
    region_id = db.Column(
        db.String(36), db.ForeignKey("regions.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    memberships = db.relationship(
        "TeamMembership", back_populates="team", cascade="all, delete-orphan", lazy="select",
    )


class TeamMembership(db.Model):
    """userId ↔ teamId relation with a team role."""

    __tablename__ = "team_memberships"

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(
        db.String(36), db.ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    role = db.Column(db.String(20), nullable=False, default="member", comment="lead | member")
    joined_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    team = db.relationship("Team", back_populates="memberships")

    __table_args__ = (
        db.UniqueConstraint("team_id", "user_id", name="uq_team_membership"),
    )
