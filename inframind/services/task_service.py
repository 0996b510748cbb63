"""
Task Service — operational incidents that analyses are written against.

Tasks are created and assigned by managers. The creating manager is the
only one who may reassign the task or move its status afterwards.

Visibility:
    MANAGER  → tasks they created
    EMPLOYEE → tasks assigned to them
    OWNER    → none (Forbidden)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from inframind.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from inframind.models import db
from inframind.models.audit import write_audit
from inframind.models.auth import Role, User
from inframind.models.task import Task, TaskStatus
from inframind.services.analysis_store import commit_or_raise
from inframind.services.capability import Action, Actor, check_capability

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 2000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_fields(title, description) -> tuple[str, str]:
    errors = {}
    if not isinstance(title, str) or not title.strip():
        errors["title"] = "is required"
    elif len(title.strip()) > MAX_TITLE_LENGTH:
        errors["title"] = f"must be at most {MAX_TITLE_LENGTH} characters"
    if description is None:
        description = ""
    if not isinstance(description, str):
        errors["description"] = "must be a string"
    elif len(description) > MAX_DESCRIPTION_LENGTH:
        errors["description"] = f"must be at most {MAX_DESCRIPTION_LENGTH} characters"
    if errors:
        raise ValidationError("Task failed validation", details=errors)
    return title.strip(), description.strip()


def _resolve_assignee(assignee_id) -> User:
    if not isinstance(assignee_id, str) or not assignee_id:
        raise ValidationError("Invalid assignee", details={"assigned_to": "must be a user id"})
    user = db.session.get(User, assignee_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=assignee_id)
    if user.role == Role.OWNER:
        raise ValidationError(
            "Invalid assignee",
            details={"assigned_to": "owners cannot be assigned tasks"},
        )
    return user


def _coerce_status(value) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(
            "Invalid task status",
            details={"status": f"must be one of: {allowed}"},
        ) from None


def _load(task_id: str) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFoundError(resource="Task", resource_id=task_id)
    return task


def _require_creator(task: Task, actor: Actor, action: str) -> None:
    if task.created_by != actor.user_id:
        raise ForbiddenError(actor.user_id, action, "only the manager who created the task may do this")


# ═════════════════════════════════════════════════════════════════════════
# Mutations
# ═════════════════════════════════════════════════════════════════════════

def create_task(actor: Actor, *, title, description="", assigned_to=None, clock=None) -> Task:
    """
    Create a task. With an assignee it starts IN_PROGRESS, otherwise OPEN.

    Raises:
        ForbiddenError: role lacks create_task.
        ValidationError: title/description out of bounds, or owner assignee.
        NotFoundError: assignee does not exist.
    """
    check_capability(actor, Action.CREATE_TASK)
    title, description = _validate_fields(title, description)
    assignee = _resolve_assignee(assigned_to) if assigned_to is not None else None

    now = (clock or _utcnow)()
    task = Task(
        title=title,
        description=description,
        created_by=actor.user_id,
        assigned_to=assignee.id if assignee else None,
        status=TaskStatus.IN_PROGRESS if assignee else TaskStatus.OPEN,
        created_at=now,
        updated_at=now,
    )
    db.session.add(task)
    db.session.flush()
    write_audit(
        entity_type="task",
        entity_id=task.id,
        action="task.create",
        actor=actor.user_id,
        diff={"title": title, "assigned_to": task.assigned_to, "status": task.status.value},
        timestamp=now,
    )
    commit_or_raise(db.session)
    logger.info("Task created: %s by %s (assigned_to=%s)", task.id, actor.user_id, task.assigned_to)
    return task


def assign_task(task_id: str, actor: Actor, assignee_id, clock=None) -> Task:
    """
    (Re)assign a task. An OPEN task moves to IN_PROGRESS; a COMPLETED task
    cannot be reassigned.
    """
    check_capability(actor, Action.ASSIGN_TASK)
    task = _load(task_id)
    _require_creator(task, actor, Action.ASSIGN_TASK.value)
    assignee = _resolve_assignee(assignee_id)
    if task.status == TaskStatus.COMPLETED:
        raise InvalidStateError("Task", task.id, Action.ASSIGN_TASK.value, task.status.value,
                                "completed tasks cannot be reassigned")

    now = (clock or _utcnow)()
    previous = task.assigned_to
    previous_status = task.status
    task.assigned_to = assignee.id
    if task.status == TaskStatus.OPEN:
        task.status = TaskStatus.IN_PROGRESS
    task.updated_at = now

    diff = {"assigned_to": {"old": previous, "new": assignee.id}}
    if task.status != previous_status:
        diff["status"] = {"old": previous_status.value, "new": task.status.value}
    write_audit(
        entity_type="task",
        entity_id=task.id,
        action="task.assign",
        actor=actor.user_id,
        diff=diff,
        timestamp=now,
    )
    commit_or_raise(db.session)
    logger.info("Task %s assigned to %s by %s", task.id, assignee.id, actor.user_id)
    return task


def update_task_status(task_id: str, actor: Actor, status, clock=None) -> Task:
    """Move a task to any declared TaskStatus. Creating manager only."""
    check_capability(actor, Action.CREATE_TASK)
    task = _load(task_id)
    _require_creator(task, actor, "update_task_status")
    new_status = _coerce_status(status)

    if new_status == task.status:
        return task

    now = (clock or _utcnow)()
    previous = task.status
    task.status = new_status
    task.updated_at = now
    write_audit(
        entity_type="task",
        entity_id=task.id,
        action="task.status_change",
        actor=actor.user_id,
        diff={"status": {"old": previous.value, "new": new_status.value}},
        timestamp=now,
    )
    commit_or_raise(db.session)
    logger.info("Task %s status: %s → %s by %s", task.id, previous.value,
                new_status.value, actor.user_id)
    return task


# ═════════════════════════════════════════════════════════════════════════
# Reads
# ═════════════════════════════════════════════════════════════════════════

def get_task(task_id: str, actor: Actor) -> Task:
    if actor.role == Role.OWNER:
        raise ForbiddenError(actor.user_id, "view_task", "owners only see published reports")
    task = _load(task_id)
    if actor.role == Role.MANAGER and task.created_by != actor.user_id:
        raise ForbiddenError(actor.user_id, "view_task", "you can only view tasks you created")
    if actor.role == Role.EMPLOYEE and task.assigned_to != actor.user_id:
        raise ForbiddenError(actor.user_id, "view_task", "you can only view tasks assigned to you")
    return task


def list_tasks(actor: Actor, *, status=None, limit: int = 50, offset: int = 0):
    """
    Role-scoped task listing, newest first.

    Returns:
        (items, total)
    """
    if actor.role == Role.OWNER:
        raise ForbiddenError(actor.user_id, "view_task", "owners only see published reports")
    q = Task.query
    if actor.role == Role.MANAGER:
        q = q.filter(Task.created_by == actor.user_id)
    else:
        q = q.filter(Task.assigned_to == actor.user_id)
    if status is not None:
        q = q.filter(Task.status == _coerce_status(status))
    total = q.count()
    items = q.order_by(Task.created_at.desc(), Task.id.asc()).offset(offset).limit(limit).all()
    return items, total
