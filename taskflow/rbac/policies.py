"""Row-level authorization for every store access.

POLICIES maps (entity, operation) to a predicate over the acting identity and
the target row. A missing entry denies. Several predicates for the same key
are OR-ed, like permissive row-level security policies.

For updates the predicate must hold for the committed row and for the row as
it would look after the change.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, false, or_, select, true
from sqlalchemy.orm import Session

from taskflow.config import settings
from taskflow.errors import Unauthorized
from taskflow.models.activity_log import ActivityLog
from taskflow.models.enums import AppRole
from taskflow.models.task import Task
from taskflow.models.user_role import UserRole
from taskflow.rbac.roles import has_role, role_of

logger = logging.getLogger(__name__)

class Entity(str, Enum):
    profile = "profile"
    role_assignment = "role_assignment"
    task = "task"
    activity_log = "activity_log"

class Operation(str, Enum):
    read = "read"
    insert = "insert"
    update = "update"
    delete = "delete"

class PolicyContext:
    """Acting identity plus its role, resolved on first use."""

    _UNRESOLVED = object()

    def __init__(self, db: Session, actor_id: uuid.UUID):
        self.db = db
        self.actor_id = actor_id
        self._role = self._UNRESOLVED
        self._is_manager: bool | None = None

    @property
    def role(self) -> AppRole | None:
        if self._role is self._UNRESOLVED:
            self._role = role_of(self.db, self.actor_id)
        return self._role

    @property
    def is_manager(self) -> bool:
        if self._is_manager is None:
            self._is_manager = has_role(self.db, self.actor_id, AppRole.manager)
        return self._is_manager

Predicate = Callable[[PolicyContext, Any], bool]

# rows are ORM instances (committed state) or dicts (insert candidates)
def _get(row: Any, field: str) -> Any:
    if isinstance(row, dict):
        return row.get(field)
    return getattr(row, field, None)

# proposed rows may carry ids as text straight from a request body
def _id(row: Any, field: str) -> uuid.UUID | None:
    v = _get(row, field)
    if v is None or isinstance(v, uuid.UUID):
        return v
    try:
        return uuid.UUID(str(v))
    except ValueError:
        return None

def _is_self(field: str) -> Predicate:
    def _pred(ctx: PolicyContext, row: Any) -> bool:
        return _id(row, field) == ctx.actor_id
    return _pred

def _always(ctx: PolicyContext, row: Any) -> bool:
    return True

def _managing_creator(ctx: PolicyContext, row: Any) -> bool:
    return _id(row, "created_by") == ctx.actor_id and ctx.is_manager

def _task_participant(ctx: PolicyContext, row: Any) -> bool:
    return _id(row, "assigned_to") == ctx.actor_id or _id(row, "created_by") == ctx.actor_id

def _activity_task_visible(ctx: PolicyContext, row: Any) -> bool:
    # evaluated against the task as it is now, not as it was when logged
    task_id = _id(row, "task_id")
    task = ctx.db.get(Task, task_id) if task_id is not None else None
    return task is not None and _task_participant(ctx, task)

POLICIES: dict[tuple[Entity, Operation], tuple[Predicate, ...]] = {
    (Entity.profile, Operation.read): (_always,),
    (Entity.profile, Operation.insert): (_is_self("id"),),
    (Entity.profile, Operation.update): (_is_self("id"),),

    (Entity.role_assignment, Operation.read): (_is_self("user_id"),),
    (Entity.role_assignment, Operation.insert): (_is_self("user_id"),),

    (Entity.task, Operation.read): (_task_participant,),
    (Entity.task, Operation.insert): (_managing_creator,),
    (Entity.task, Operation.update): (_managing_creator, _is_self("assigned_to")),
    (Entity.task, Operation.delete): (_managing_creator,),

    (Entity.activity_log, Operation.read): (_activity_task_visible,),
    (Entity.activity_log, Operation.insert): (_is_self("user_id"),),
}

def can(db: Session, actor_id: uuid.UUID, entity: Entity, op: Operation, row: Any,
        ctx: PolicyContext | None = None) -> bool:
    preds = POLICIES.get((entity, op))
    if not preds:
        return False
    ctx = ctx or PolicyContext(db, actor_id)
    return any(p(ctx, row) for p in preds)

def authorize(db: Session, actor_id: uuid.UUID, entity: Entity, op: Operation, row: Any) -> None:
    if not can(db, actor_id, entity, op, row):
        logger.info("denied %s %s for %s", op.value, entity.value, actor_id)
        raise Unauthorized()

def authorize_update(
    db: Session,
    actor_id: uuid.UUID,
    entity: Entity,
    current: Any,
    proposed: dict[str, Any],
    changed: set[str],
) -> None:
    ctx = PolicyContext(db, actor_id)
    if not can(db, actor_id, entity, Operation.update, current, ctx=ctx):
        logger.info("denied update %s for %s", entity.value, actor_id)
        raise Unauthorized()
    if not can(db, actor_id, entity, Operation.update, proposed, ctx=ctx):
        logger.info("denied update %s for %s (resulting row)", entity.value, actor_id)
        raise Unauthorized()

    if entity is Entity.task and settings.assignee_status_only:
        if not _managing_creator(ctx, current) and changed - {"status"}:
            logger.info("denied non-status task update for assignee %s", actor_id)
            raise Unauthorized()

# SQL form of the read predicates, for filtered list queries
def visible(actor_id: uuid.UUID, entity: Entity) -> ColumnElement[bool]:
    if entity is Entity.profile:
        return true()
    if entity is Entity.role_assignment:
        return UserRole.user_id == actor_id
    if entity is Entity.task:
        return or_(Task.assigned_to == actor_id, Task.created_by == actor_id)
    if entity is Entity.activity_log:
        return (
            select(Task.id)
            .where(
                Task.id == ActivityLog.task_id,
                or_(Task.assigned_to == actor_id, Task.created_by == actor_id),
            )
            .exists()
        )
    return false()

__all__ = [
    "Entity",
    "Operation",
    "POLICIES",
    "PolicyContext",
    "authorize",
    "authorize_update",
    "can",
    "visible",
]
