"""Provisioning on first registration of an identity.

Creates the identity, its profile and its role assignment in one unit of
work. A profile without a role (or the reverse) is never committed.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskflow.db import atomic
from taskflow.errors import TransactionFailure
from taskflow.models.enums import AppRole
from taskflow.models.profile import Profile
from taskflow.models.user import User
from taskflow.models.user_role import UserRole
from taskflow.rbac.policies import Entity, Operation, authorize
from taskflow.store.constraints import validate_profile, validate_role_assignment

logger = logging.getLogger(__name__)

def normalize_email(email: str) -> str:
    return email.lower().strip()

def role_from_metadata(metadata: dict[str, Any] | None) -> AppRole:
    raw = (metadata or {}).get("role")
    try:
        return AppRole(raw)
    except (TypeError, ValueError):
        return AppRole.user

def full_name_from_metadata(metadata: dict[str, Any] | None) -> str:
    raw = (metadata or {}).get("full_name")
    return raw if isinstance(raw, str) else ""

def _provision(db: Session, user: User) -> None:
    metadata = user.user_metadata

    profile = {
        "id": user.id,
        "email": user.email,
        "full_name": full_name_from_metadata(metadata),
    }
    # the new identity acts for itself, so the self-insert policies apply
    authorize(db, user.id, Entity.profile, Operation.insert, profile)
    validate_profile(profile)
    db.add(Profile(**profile))

    role = {"user_id": user.id, "role": role_from_metadata(metadata)}
    authorize(db, user.id, Entity.role_assignment, Operation.insert, role)
    validate_role_assignment(db, role)
    db.add(UserRole(**role))
    db.flush()

def _find_user(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email))

def register_identity(db: Session, email: str, metadata: dict[str, Any] | None = None) -> tuple[User, bool]:
    """Return (user, created). An already registered email is returned as-is."""
    email = normalize_email(email)

    existing = _find_user(db, email)
    if existing is not None:
        return existing, False

    try:
        with atomic(db):
            user = User(email=email, user_metadata=dict(metadata) if metadata else None)
            db.add(user)
            db.flush()
            _provision(db, user)
    except TransactionFailure as e:
        if not isinstance(e.__cause__, IntegrityError):
            raise
        # a concurrent registration took the email first
        existing = _find_user(db, email)
        if existing is None:
            raise
        logger.info("identity %s registered concurrently", existing.id)
        return existing, False

    logger.info("provisioned identity %s", user.id)
    return user, True
