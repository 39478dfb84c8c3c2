import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from taskflow.auth.deps import current_user_id
from taskflow.db import get_db
from taskflow.schemas.tasks import (
    ActivityOut,
    DashboardOut,
    TaskCreateIn,
    TaskOut,
    TaskStatusIn,
    TaskUpdateIn,
)
from taskflow.services import audit
from taskflow.services import tasks as task_service
from taskflow.services.tasks import TaskScope

router = APIRouter(tags=["tasks"])

@router.post("/tasks", response_model=TaskOut)
def create_task(
    payload: TaskCreateIn,
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> TaskOut:
    t = task_service.create_task(db, actor_id, payload.model_dump(exclude_none=True))
    return TaskOut.model_validate(t)

@router.get("/tasks", response_model=list[TaskOut])
def list_tasks(
    scope: TaskScope = Query(default=TaskScope.all),
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> list[TaskOut]:
    return [TaskOut.model_validate(t) for t in task_service.list_tasks(db, actor_id, scope)]

@router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task(
    task_id: uuid.UUID,
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> TaskOut:
    return TaskOut.model_validate(task_service.get_task(db, actor_id, task_id))

@router.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: uuid.UUID,
    payload: TaskUpdateIn,
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> TaskOut:
    # explicit nulls are kept so assigned_to / due_date can be cleared
    changes = payload.model_dump(exclude_unset=True)
    t = task_service.update_task(db, actor_id, task_id, changes)
    return TaskOut.model_validate(t)

@router.patch("/tasks/{task_id}/status", response_model=TaskOut)
def update_task_status(
    task_id: uuid.UUID,
    payload: TaskStatusIn,
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> TaskOut:
    t = task_service.update_task_status(db, actor_id, task_id, payload.status)
    return TaskOut.model_validate(t)

@router.delete("/tasks/{task_id}")
def delete_task(
    task_id: uuid.UUID,
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> dict:
    task_service.delete_task(db, actor_id, task_id)
    return {"deleted": True}

@router.get("/tasks/{task_id}/activity", response_model=list[ActivityOut])
def task_activity(
    task_id: uuid.UUID,
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> list[ActivityOut]:
    return [ActivityOut.model_validate(a) for a in audit.list_for_task(db, actor_id, task_id)]

@router.get("/dashboard", response_model=DashboardOut)
def dashboard(
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> DashboardOut:
    return DashboardOut(**task_service.dashboard(db, actor_id))
