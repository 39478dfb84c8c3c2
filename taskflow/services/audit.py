"""Audit recorder: one activity row per accepted task create/update."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskflow.errors import NotFound
from taskflow.models.activity_log import ActivityLog
from taskflow.models.task import Task
from taskflow.rbac.policies import Entity, Operation, authorize, can, visible

logger = logging.getLogger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"

TASK_COLUMNS = (
    "id",
    "title",
    "description",
    "status",
    "priority",
    "created_by",
    "assigned_to",
    "due_date",
    "created_at",
    "updated_at",
)

def _json_safe(v):
    if isinstance(v, uuid.UUID):
        return str(v)
    if isinstance(v, datetime):
        return v.isoformat()
    if isinstance(v, Enum):
        return v.value
    return v

def task_snapshot(task: Task) -> dict:
    return {c: _json_safe(getattr(task, c)) for c in TASK_COLUMNS}

def record(
    db: Session,
    task: Task,
    actor_id: uuid.UUID,
    action: str,
    old_value: dict | None,
) -> ActivityLog:
    """Append the activity row for `task` in the caller's transaction.

    The task must already be flushed. Nothing is committed here; if this
    raises, the caller's unit of work rolls back the mutation with it.
    """
    entry = {
        "task_id": task.id,
        "user_id": actor_id,
        "action": action,
        "old_value": old_value,
        "new_value": task_snapshot(task),
    }
    authorize(db, actor_id, Entity.activity_log, Operation.insert, entry)

    log = ActivityLog(**entry)
    db.add(log)
    db.flush()
    logger.debug("activity %s on task %s by %s", action, task.id, actor_id)
    return log

def list_for_task(db: Session, actor_id: uuid.UUID, task_id: uuid.UUID) -> list[ActivityLog]:
    task = db.get(Task, task_id)
    if task is None or not can(db, actor_id, Entity.task, Operation.read, task):
        raise NotFound("task not found")

    q = (
        select(ActivityLog)
        .where(ActivityLog.task_id == task_id, visible(actor_id, Entity.activity_log))
        .order_by(ActivityLog.created_at.desc())
    )
    return list(db.scalars(q).all())
