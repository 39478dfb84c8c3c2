from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taskflow.db import atomic
from taskflow.errors import ConstraintViolation, NotFound
from taskflow.models.base import utcnow
from taskflow.models.enums import TaskStatus
from taskflow.models.task import PRIORITY_DEFAULT, Task
from taskflow.rbac.policies import Entity, Operation, authorize, authorize_update, can, visible
from taskflow.services import audit
from taskflow.services.notifier import ChangeEvent, ChangeKind, notifier
from taskflow.store.constraints import validate_task
from taskflow.store.references import delete_row

logger = logging.getLogger(__name__)

# fields a caller may submit; id and timestamps are store-managed
WRITABLE_FIELDS = {"title", "description", "status", "priority", "assigned_to", "due_date", "created_by"}

class TaskScope(str, Enum):
    all = "all"
    assigned = "assigned"
    created = "created"

def _check_fields(values: dict[str, Any]) -> None:
    for k in values:
        if k not in WRITABLE_FIELDS:
            raise ConstraintViolation(k, f"{k} cannot be written")

def _row(task: Task) -> dict[str, Any]:
    return {c: getattr(task, c) for c in audit.TASK_COLUMNS}

def _visible_task(db: Session, actor_id: uuid.UUID, task_id: uuid.UUID) -> Task:
    task = db.get(Task, task_id)
    # missing and invisible look the same to the caller
    if task is None or not can(db, actor_id, Entity.task, Operation.read, task):
        raise NotFound("task not found")
    return task

def create_task(db: Session, actor_id: uuid.UUID, values: dict[str, Any]) -> Task:
    row = {"created_by": actor_id, **values}
    row.setdefault("status", TaskStatus.todo)
    row.setdefault("priority", PRIORITY_DEFAULT)

    authorize(db, actor_id, Entity.task, Operation.insert, row)
    _check_fields(row)

    with atomic(db):
        validate_task(db, row)
        task = Task(**row)
        db.add(task)
        db.flush()
        audit.record(db, task, actor_id, audit.ACTION_CREATED, None)
        snapshot = audit.task_snapshot(task)

    logger.info("task %s created by %s", snapshot["id"], actor_id)
    notifier.publish(ChangeEvent(Entity.task, ChangeKind.insert, snapshot))
    return task

def get_task(db: Session, actor_id: uuid.UUID, task_id: uuid.UUID) -> Task:
    return _visible_task(db, actor_id, task_id)

def list_tasks(db: Session, actor_id: uuid.UUID, scope: TaskScope = TaskScope.all) -> list[Task]:
    q = select(Task).where(visible(actor_id, Entity.task))
    if scope is TaskScope.assigned:
        q = q.where(Task.assigned_to == actor_id)
    elif scope is TaskScope.created:
        q = q.where(Task.created_by == actor_id)
    q = q.order_by(Task.created_at.desc())
    return list(db.scalars(q).all())

def update_task(db: Session, actor_id: uuid.UUID, task_id: uuid.UUID, changes: dict[str, Any]) -> Task:
    task = _visible_task(db, actor_id, task_id)

    current = _row(task)
    proposed = {**current, **changes}
    authorize_update(db, actor_id, Entity.task, current, proposed, set(changes))

    _check_fields(changes)
    if "created_by" in changes and changes["created_by"] != task.created_by:
        raise ConstraintViolation("created_by", "created_by cannot change")
    changes = {k: v for k, v in changes.items() if k != "created_by"}

    with atomic(db):
        validate_task(db, changes, partial=True)
        old_value = audit.task_snapshot(task)
        for k, v in changes.items():
            setattr(task, k, v)
        task.updated_at = utcnow()
        db.flush()
        audit.record(db, task, actor_id, audit.ACTION_UPDATED, old_value)
        snapshot = audit.task_snapshot(task)

    logger.info("task %s updated by %s (%s)", task_id, actor_id, ",".join(sorted(changes)) or "-")
    notifier.publish(ChangeEvent(Entity.task, ChangeKind.update, snapshot))
    return task

def update_task_status(db: Session, actor_id: uuid.UUID, task_id: uuid.UUID, status: Any) -> Task:
    return update_task(db, actor_id, task_id, {"status": status})

def delete_task(db: Session, actor_id: uuid.UUID, task_id: uuid.UUID) -> None:
    task = _visible_task(db, actor_id, task_id)
    authorize(db, actor_id, Entity.task, Operation.delete, task)

    snapshot = audit.task_snapshot(task)
    with atomic(db):
        delete_row(db, task)

    logger.info("task %s deleted by %s", task_id, actor_id)
    notifier.publish(ChangeEvent(Entity.task, ChangeKind.delete, snapshot))

def dashboard(db: Session, actor_id: uuid.UUID) -> dict[str, Any]:
    by_status = {s.value: 0 for s in TaskStatus}
    q = (
        select(Task.status, func.count())
        .where(visible(actor_id, Entity.task))
        .group_by(Task.status)
    )
    for status, n in db.execute(q).all():
        by_status[TaskStatus(status).value] = int(n)

    def _count(*where) -> int:
        return db.scalar(select(func.count()).select_from(Task).where(*where)) or 0

    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "assigned_to_me": _count(Task.assigned_to == actor_id),
        "created_by_me": _count(Task.created_by == actor_id),
    }
