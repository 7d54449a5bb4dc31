"""
WorkspaceModel — Abstract base class for workspace-scoped documents.

Every entity that belongs to exactly one workspace inherits from
WorkspaceModel instead of db.Model directly. This adds:
  - String UUID primary key (document id)
  - workspace_id FK column with index
  - query_for_workspace(workspace_id) classmethod
"""

import uuid
from datetime import datetime, timezone

from workspace_hub.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class WorkspaceModel(db.Model):
    """Abstract base for workspace-scoped tables."""
    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workspace_id = db.Column(
        db.String(36),
        db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    @classmethod
    def query_for_workspace(cls, workspace_id):
        """Return a query filtered by workspace_id."""
        return cls.query.filter_by(workspace_id=workspace_id)
