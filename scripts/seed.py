import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskflow.db import SessionLocal
from taskflow.models.task import Task
from taskflow.models.user import User
from taskflow.services.provisioning import register_identity
from taskflow.services.tasks import create_task

@dataclass
class SeedResult:
    manager_email: str
    user_email: str
    task_id: uuid.UUID

def get_or_register(db: Session, email: str, full_name: str, role: str) -> User:
    user, _ = register_identity(db, email, {"full_name": full_name, "role": role})
    return user

def get_or_create_task(
    db: Session,
    title: str,
    created_by: uuid.UUID,
    assigned_to: uuid.UUID | None,
) -> Task:
    t = db.scalar(select(Task).where(Task.created_by == created_by, Task.title == title))
    if t is not None:
        return t
    # through the service so the activity log gets its "created" row
    return create_task(
        db,
        created_by,
        {"title": title, "description": "seeded by scripts/seed.py", "assigned_to": assigned_to},
    )

def seed() -> SeedResult:
    db = SessionLocal()
    try:
        manager = get_or_register(db, "manager@example.com", "Demo Manager", "manager")
        user = get_or_register(db, "user@example.com", "Demo User", "user")

        task = get_or_create_task(db, "seeded task", created_by=manager.id, assigned_to=user.id)

        return SeedResult(
            manager_email=manager.email,
            user_email=user.email,
            task_id=task.id,
        )
    finally:
        db.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"task_id={r.task_id}")
    print("users:")
    print(f"  manager: {r.manager_email}")
    print(f"  user:    {r.user_email}")
