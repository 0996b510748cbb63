"""
InfraMind Analysis Platform
Task model.

Models:
    - Task: unit of operational work that analyses are written against.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.orm import validates

from inframind.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class Task(db.Model):
    """
    Operational incident assigned by a manager.

    A task created with an assignee starts IN_PROGRESS, otherwise OPEN.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        db.Index("idx_tasks_created_by", "created_by"),
        db.Index("idx_tasks_assigned_to", "assigned_to"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    title = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, default="")
    created_by = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_to = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    status = db.Column(
        db.Enum(TaskStatus, native_enum=False, length=20),
        nullable=False,
        default=TaskStatus.OPEN,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=_utcnow, onupdate=_utcnow,
    )

    @validates("status")
    def _coerce_status(self, key, value):
        return TaskStatus(value)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "created_by": self.created_by,
            "assigned_to": self.assigned_to,
            "status": self.status.value if self.status else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title!r} ({self.status})>"
