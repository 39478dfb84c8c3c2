import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from taskflow.errors import ConstraintViolation, NotFound, TransactionFailure, Unauthorized
from taskflow.models.activity_log import ActivityLog
from taskflow.models.enums import TaskStatus
from taskflow.models.task import Task
from taskflow.services import audit
from taskflow.services.tasks import (
    TaskScope,
    create_task,
    dashboard,
    delete_task,
    get_task,
    list_tasks,
    update_task,
    update_task_status,
)

def _count(db, model, *where) -> int:
    q = select(func.count()).select_from(model)
    if where:
        q = q.where(*where)
    return db.scalar(q)

def _logs(db, task_id) -> list[ActivityLog]:
    return list(db.scalars(select(ActivityLog).where(ActivityLog.task_id == task_id)).all())

def test_manager_creates_task_with_defaults_and_audit(db_session, manager, member):
    t = create_task(db_session, manager.id, {"title": "Write report", "assigned_to": member.id})

    assert t.status is TaskStatus.todo
    assert t.priority == 3
    assert t.created_by == manager.id

    logs = _logs(db_session, t.id)
    assert len(logs) == 1
    assert logs[0].action == "created"
    assert logs[0].user_id == manager.id
    assert logs[0].old_value is None
    assert logs[0].new_value["title"] == "Write report"
    assert logs[0].new_value["assigned_to"] == str(member.id)

def test_non_manager_cannot_create(db_session, member):
    with pytest.raises(Unauthorized):
        create_task(db_session, member.id, {"title": "nope"})
    assert _count(db_session, Task) == 0
    assert _count(db_session, ActivityLog) == 0

def test_authorization_is_checked_before_constraints(db_session, member):
    # a bad priority from a non-manager still reads as forbidden
    with pytest.raises(Unauthorized):
        create_task(db_session, member.id, {"title": "", "priority": 99})

@pytest.mark.parametrize(
    "values, field",
    [
        ({"title": ""}, "title"),
        ({"title": "x" * 201}, "title"),
        ({"title": "ok", "description": "d" * 2001}, "description"),
        ({"title": "ok", "priority": 0}, "priority"),
        ({"title": "ok", "priority": 6}, "priority"),
        ({"title": "ok", "status": "blocked"}, "status"),
        ({"title": "ok", "assigned_to": uuid.uuid4()}, "assigned_to"),
        ({"title": "ok", "org_id": uuid.uuid4()}, "org_id"),
    ],
)
def test_constraint_violations_name_the_field(db_session, manager, values, field):
    with pytest.raises(ConstraintViolation) as exc:
        create_task(db_session, manager.id, values)
    assert exc.value.field == field
    assert _count(db_session, Task) == 0

def test_read_visibility(db_session, manager, member, outsider):
    t = create_task(db_session, manager.id, {"title": "visible", "assigned_to": member.id})

    assert get_task(db_session, manager.id, t.id).id == t.id
    assert get_task(db_session, member.id, t.id).id == t.id
    with pytest.raises(NotFound):
        get_task(db_session, outsider.id, t.id)
    # unknown ids look the same as invisible ones
    with pytest.raises(NotFound):
        get_task(db_session, outsider.id, uuid.uuid4())

    assert [x.id for x in list_tasks(db_session, outsider.id)] == []
    assert [x.id for x in list_tasks(db_session, member.id, TaskScope.assigned)] == [t.id]
    assert [x.id for x in list_tasks(db_session, member.id, TaskScope.created)] == []
    assert [x.id for x in list_tasks(db_session, manager.id, TaskScope.created)] == [t.id]

def test_assignee_status_update_is_audited(db_session, manager, member, task_events):
    t = create_task(db_session, manager.id, {"title": "Write report", "priority": 3, "assigned_to": member.id})
    task_events.clear()

    updated = update_task_status(db_session, member.id, t.id, "completed")
    assert updated.status is TaskStatus.completed

    logs = [x for x in _logs(db_session, t.id) if x.action == "updated"]
    assert len(logs) == 1
    assert logs[0].user_id == member.id
    assert logs[0].old_value["status"] == "todo"
    assert logs[0].new_value["status"] == "completed"

    assert len(task_events) == 1
    assert task_events[0].kind.value == "UPDATE"
    assert task_events[0].row["status"] == "completed"

def test_update_then_read_round_trip(db_session, manager, member):
    t = create_task(db_session, manager.id, {"title": "before", "assigned_to": member.id})
    changes = {"title": "after", "description": "more detail", "priority": 5, "status": "in_progress"}

    update_task(db_session, manager.id, t.id, changes)

    again = get_task(db_session, member.id, t.id)
    assert again.title == "after"
    assert again.description == "more detail"
    assert again.priority == 5
    assert again.status is TaskStatus.in_progress

def test_update_permissions(db_session, manager, member, outsider):
    t = create_task(db_session, manager.id, {"title": "t", "assigned_to": member.id})

    # assignee edits are not column-restricted by default
    update_task(db_session, member.id, t.id, {"title": "assignee edit"})

    with pytest.raises(NotFound):
        update_task(db_session, outsider.id, t.id, {"status": "completed"})

    with pytest.raises(Unauthorized):
        update_task(db_session, member.id, t.id, {"assigned_to": outsider.id})

    # handing the task to another creator fails the managing-creator check first
    with pytest.raises(Unauthorized):
        update_task(db_session, manager.id, t.id, {"created_by": member.id})

    # an assignee passes the row checks but created_by is still immutable
    with pytest.raises(ConstraintViolation) as exc:
        update_task(db_session, member.id, t.id, {"created_by": outsider.id})
    assert exc.value.field == "created_by"

    with pytest.raises(ConstraintViolation) as exc:
        update_task(db_session, manager.id, t.id, {"priority": 10})
    assert exc.value.field == "priority"

    assert get_task(db_session, manager.id, t.id).priority == 3
    assert len(_logs(db_session, t.id)) == 2

def test_unassign_with_explicit_null(db_session, manager, member):
    t = create_task(db_session, manager.id, {"title": "t", "assigned_to": member.id})
    update_task(db_session, manager.id, t.id, {"assigned_to": None})
    assert get_task(db_session, manager.id, t.id).assigned_to is None
    with pytest.raises(NotFound):
        get_task(db_session, member.id, t.id)

def test_audit_failure_rolls_back_create(db_session, manager, monkeypatch, task_events):
    def _boom(*args, **kwargs):
        raise RuntimeError("audit down")

    monkeypatch.setattr(audit, "record", _boom)
    with pytest.raises(RuntimeError):
        create_task(db_session, manager.id, {"title": "doomed"})

    assert _count(db_session, Task) == 0
    assert task_events == []

def test_audit_storage_failure_rolls_back_update(db_session, manager, monkeypatch):
    t = create_task(db_session, manager.id, {"title": "stable"})

    def _boom(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(audit, "record", _boom)
    with pytest.raises(TransactionFailure):
        update_task(db_session, manager.id, t.id, {"title": "changed"})

    monkeypatch.undo()
    assert get_task(db_session, manager.id, t.id).title == "stable"
    assert len(_logs(db_session, t.id)) == 1

def test_delete_rules_and_cascade(db_session, manager, member, task_events):
    t = create_task(db_session, manager.id, {"title": "t", "assigned_to": member.id})
    update_task_status(db_session, member.id, t.id, "in_progress")
    assert len(_logs(db_session, t.id)) == 2

    with pytest.raises(Unauthorized):
        delete_task(db_session, member.id, t.id)

    task_events.clear()
    delete_task(db_session, manager.id, t.id)

    assert db_session.get(Task, t.id) is None
    assert _logs(db_session, t.id) == []
    assert [e.kind.value for e in task_events] == ["DELETE"]
    assert task_events[0].row["id"] == str(t.id)

def test_dashboard_counts(db_session, manager, member, outsider):
    create_task(db_session, manager.id, {"title": "a", "assigned_to": member.id})
    b = create_task(db_session, manager.id, {"title": "b", "assigned_to": member.id})
    create_task(db_session, manager.id, {"title": "c"})
    update_task_status(db_session, member.id, b.id, "completed")

    d = dashboard(db_session, member.id)
    assert d["total"] == 2
    assert d["by_status"] == {"todo": 1, "in_progress": 0, "completed": 1}
    assert d["assigned_to_me"] == 2
    assert d["created_by_me"] == 0

    assert dashboard(db_session, manager.id)["total"] == 3
    assert dashboard(db_session, outsider.id)["total"] == 0
