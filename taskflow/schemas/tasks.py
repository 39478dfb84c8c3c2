import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from taskflow.models.enums import TaskStatus

# request bodies stay untyped here; the store checks every field after
# authorization so a forbidden write never reports a validation error first
class TaskCreateIn(BaseModel):
    title: Any = None
    description: Any = None
    status: Any = None
    priority: Any = None
    assigned_to: Any = None
    due_date: Any = None

class TaskUpdateIn(BaseModel):
    title: Any = None
    description: Any = None
    status: Any = None
    priority: Any = None
    assigned_to: Any = None
    due_date: Any = None

class TaskStatusIn(BaseModel):
    status: Any = None

class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: int
    created_by: uuid.UUID
    assigned_to: uuid.UUID | None
    due_date: datetime | None
    created_at: datetime
    updated_at: datetime

class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    task_id: uuid.UUID
    user_id: uuid.UUID | None
    action: str
    old_value: dict | None
    new_value: dict | None
    created_at: datetime

class DashboardOut(BaseModel):
    total: int
    by_status: dict[str, int]
    assigned_to_me: int
    created_by_me: int
