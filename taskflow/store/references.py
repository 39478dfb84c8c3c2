"""Foreign-key deletion rules, applied by the application.

Each reference is (child model, child column, parent model, rule). Deleting a
parent row walks the references pointing at it: `cascade` deletes the child
rows (recursively), `set_null` clears the child column. The same rules are
declared as ON DELETE clauses in the schema; applying them here keeps the
behaviour identical on databases that do not enforce them (sqlite without the
foreign_keys pragma).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from taskflow.errors import NotFound
from taskflow.models.activity_log import ActivityLog
from taskflow.models.auth_magic_link import AuthMagicLink
from taskflow.models.profile import Profile
from taskflow.models.task import Task
from taskflow.models.user import User
from taskflow.models.user_role import UserRole

logger = logging.getLogger(__name__)

class OnDelete(str, Enum):
    cascade = "cascade"
    set_null = "set_null"

@dataclass(frozen=True)
class Reference:
    child: type
    column: str
    parent: type
    rule: OnDelete

REFERENCES: tuple[Reference, ...] = (
    Reference(Profile, "id", User, OnDelete.cascade),
    Reference(UserRole, "user_id", User, OnDelete.cascade),
    Reference(AuthMagicLink, "user_id", User, OnDelete.cascade),
    Reference(Task, "created_by", User, OnDelete.cascade),
    Reference(Task, "assigned_to", User, OnDelete.set_null),
    Reference(ActivityLog, "user_id", User, OnDelete.set_null),
    Reference(ActivityLog, "task_id", Task, OnDelete.cascade),
)

def references_to(parent: type) -> list[Reference]:
    return [r for r in REFERENCES if r.parent is parent]

def delete_row(db: Session, obj) -> None:
    """Delete `obj` after applying every reference rule that targets it.

    Does not commit; callers wrap this in `atomic`.
    """
    parent = type(obj)
    for ref in references_to(parent):
        col = getattr(ref.child, ref.column)
        if ref.rule is OnDelete.set_null:
            db.execute(
                update(ref.child)
                .where(col == obj.id)
                .values({ref.column: None})
                .execution_options(synchronize_session="fetch")
            )
            continue

        for child in db.scalars(select(ref.child).where(col == obj.id)).all():
            delete_row(db, child)

    db.delete(obj)
    db.flush()

def delete_identity(db: Session, user_id: uuid.UUID) -> None:
    """Remove an identity and everything that cascades from it."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("user not found")
    logger.info("deleting identity %s", user_id)
    delete_row(db, user)
