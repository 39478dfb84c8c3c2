from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskflow.db import atomic
from taskflow.errors import ConstraintViolation, NotFound
from taskflow.models.base import utcnow
from taskflow.models.enums import AppRole
from taskflow.models.profile import Profile
from taskflow.models.user_role import UserRole
from taskflow.rbac.policies import Entity, Operation, authorize, authorize_update, visible
from taskflow.store.constraints import validate_profile

logger = logging.getLogger(__name__)

# email mirrors the identity and is not self-service
EDITABLE_FIELDS = {"full_name", "avatar_url"}

def list_profiles(db: Session, actor_id: uuid.UUID) -> list[Profile]:
    q = select(Profile).where(visible(actor_id, Entity.profile)).order_by(Profile.created_at.asc())
    return list(db.scalars(q).all())

def get_profile(db: Session, actor_id: uuid.UUID, profile_id: uuid.UUID) -> Profile:
    p = db.get(Profile, profile_id)
    if p is None:
        raise NotFound("profile not found")
    authorize(db, actor_id, Entity.profile, Operation.read, p)
    return p

def update_profile(db: Session, actor_id: uuid.UUID, profile_id: uuid.UUID, changes: dict[str, Any]) -> Profile:
    p = get_profile(db, actor_id, profile_id)

    current = {"id": p.id, "email": p.email, "full_name": p.full_name, "avatar_url": p.avatar_url}
    authorize_update(db, actor_id, Entity.profile, current, {**current, **changes}, set(changes))

    for k in changes:
        if k not in EDITABLE_FIELDS:
            raise ConstraintViolation(k, f"{k} cannot be changed")

    with atomic(db):
        validate_profile(changes, partial=True)
        for k, v in changes.items():
            setattr(p, k, v)
        p.updated_at = utcnow()

    logger.info("profile %s updated", profile_id)
    return p

def my_role(db: Session, actor_id: uuid.UUID) -> AppRole | None:
    q = (
        select(UserRole.role)
        .where(UserRole.user_id == actor_id, visible(actor_id, Entity.role_assignment))
        .order_by(UserRole.created_at.asc())
        .limit(1)
    )
    return db.scalar(q)
