import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskflow.models.enums import AppRole
from taskflow.models.user_role import UserRole

def role_of(db: Session, user_id: uuid.UUID) -> AppRole | None:
    # one role per identity in practice; take the earliest if several exist
    q = (
        select(UserRole.role)
        .where(UserRole.user_id == user_id)
        .order_by(UserRole.created_at.asc())
        .limit(1)
    )
    return db.scalar(q)

def has_role(db: Session, user_id: uuid.UUID, role: AppRole) -> bool:
    q = select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role == role).exists()
    return bool(db.scalar(select(q)))
