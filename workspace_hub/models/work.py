"""
Work item models — reports, templates, tasks, folders.

Report lifecycle: draft → submitted → under_review → approved | rejected.
Approval time is finalized_at − submitted_at.
"""

from workspace_hub.models import db
from workspace_hub.models.base import WorkspaceModel, _utcnow

REPORT_STATUSES = ("draft", "submitted", "under_review", "approved", "rejected")
TASK_PRIORITIES = ("high", "medium", "low")


class ReportTemplate(WorkspaceModel):
    __tablename__ = "report_templates"

    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(100), nullable=True)
    department = db.Column(db.String(200), nullable=True)


class Report(WorkspaceModel):
    """A submitted (or draft) report authored against a template."""

    __tablename__ = "reports"

    author_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    template_id = db.Column(
        db.String(36), db.ForeignKey("report_templates.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    title = db.Column(db.String(300), default="")
    status = db.Column(
        db.String(20), nullable=False, default="draft", index=True,
        comment="draft | submitted | under_review | approved | rejected",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    finalized_at = db.Column(
        db.DateTime(timezone=True), nullable=True,
        comment="Approval workflow finalization timestamp",
    )
    time_spent_minutes = db.Column(db.Float, nullable=True)


class Task(WorkspaceModel):
    __tablename__ = "tasks"

    title = db.Column(db.String(300), nullable=False)
    assignee_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    created_by = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    status = db.Column(db.String(20), nullable=False, default="todo", comment="todo | in_progress | completed")
    priority = db.Column(db.String(10), nullable=False, default="medium", comment="high | medium | low")
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)


class Folder(WorkspaceModel):
    __tablename__ = "folders"

    name = db.Column(db.String(200), nullable=False)
    created_by = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
