"""Column-level rules checked before a row is written."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from taskflow.errors import ConstraintViolation
from taskflow.models.enums import AppRole, TaskStatus
from taskflow.models.task import DESCRIPTION_MAX, PRIORITY_MAX, PRIORITY_MIN, TITLE_MAX
from taskflow.models.user import User

EMAIL_MAX = 320
FULL_NAME_MAX = 200
AVATAR_URL_MAX = 2048

def _require(values: dict[str, Any], field: str) -> Any:
    v = values.get(field)
    if v is None:
        raise ConstraintViolation(field, f"{field} is required")
    return v

def _max_len(values: dict[str, Any], field: str, limit: int) -> None:
    v = values.get(field)
    if v is None:
        return
    if not isinstance(v, str):
        raise ConstraintViolation(field, f"{field} must be text")
    if len(v) > limit:
        raise ConstraintViolation(field, f"{field} exceeds {limit} characters")

def _enum(values: dict[str, Any], field: str, enum_cls) -> None:
    if field not in values:
        return
    v = values[field]
    try:
        values[field] = enum_cls(v)
    except (TypeError, ValueError):
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConstraintViolation(field, f"{field} must be one of: {allowed}")

def _timestamp(v: Any, field: str) -> datetime:
    if isinstance(v, datetime):
        return v
    if isinstance(v, str):
        try:
            return datetime.fromisoformat(v)
        except ValueError:
            pass
    raise ConstraintViolation(field, f"{field} must be a timestamp")

def _identity_exists(db: Session, values: dict[str, Any], field: str) -> None:
    v = values.get(field)
    if v is None:
        return
    if not isinstance(v, uuid.UUID):
        try:
            v = uuid.UUID(str(v))
        except ValueError:
            raise ConstraintViolation(field, f"{field} is not a valid id")
        values[field] = v
    if db.get(User, v) is None:
        raise ConstraintViolation(field, f"{field} references an unknown user")

# values is normalized in place (enum coercion, uuid parsing)
def validate_task(db: Session, values: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    if not partial or "title" in values:
        title = _require(values, "title")
        if not isinstance(title, str) or not 1 <= len(title) <= TITLE_MAX:
            raise ConstraintViolation("title", f"title must be 1-{TITLE_MAX} characters")

    _max_len(values, "description", DESCRIPTION_MAX)

    if "status" in values:
        _require(values, "status")
        _enum(values, "status", TaskStatus)

    if "priority" in values:
        p = _require(values, "priority")
        # bool is an int subclass; reject it explicitly
        if isinstance(p, bool) or not isinstance(p, int) or not PRIORITY_MIN <= p <= PRIORITY_MAX:
            raise ConstraintViolation("priority", f"priority must be an integer {PRIORITY_MIN}-{PRIORITY_MAX}")

    if "due_date" in values and values["due_date"] is not None:
        values["due_date"] = _timestamp(values["due_date"], "due_date")

    if not partial:
        _require(values, "created_by")
        _identity_exists(db, values, "created_by")
    _identity_exists(db, values, "assigned_to")
    return values

def validate_profile(values: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    if not partial or "email" in values:
        email = _require(values, "email")
        if not isinstance(email, str) or not email.strip():
            raise ConstraintViolation("email", "email is required")
    _max_len(values, "email", EMAIL_MAX)
    _max_len(values, "full_name", FULL_NAME_MAX)
    _max_len(values, "avatar_url", AVATAR_URL_MAX)
    return values

def validate_role_assignment(db: Session, values: dict[str, Any]) -> dict[str, Any]:
    _require(values, "role")
    _enum(values, "role", AppRole)
    _require(values, "user_id")
    _identity_exists(db, values, "user_id")
    return values
