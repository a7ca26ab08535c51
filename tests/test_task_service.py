import asyncio
from datetime import datetime

import pytest

from infofix.models import User
from infofix.services import TaskService, PermissionDenied, NotFound
from infofix.store import InMemoryTaskStore, InMemoryUserStore


USERS = [
    User(id="a1", name="Owner", role="ADMIN"),
    User(id="m1", name="Mina", role="MANAGER"),
    User(id="m2", name="Mohan", role="MANAGER"),
    User(id="t1", name="Ravi", role="TECHNICIAN"),
    User(id="c1", name="Asha", role="CUSTOMER"),
]


def make_service():
    return TaskService(InMemoryTaskStore(), InMemoryUserStore(USERS))


def run(coro):
    return asyncio.run(coro)


def test_technician_tasks_are_self_assigned():
    service = make_service()
    task = run(service.create_task("t1", title="Replace screen", date="2026-10-18", assigned_to_id="m1"))
    assert task.assigned_to_id == "t1"
    assert task.created_by_id == "t1"


def test_manager_cannot_assign_other_manager():
    service = make_service()
    with pytest.raises(PermissionDenied):
        run(service.create_task("m1", title="Audit", date="2026-10-18", assigned_to_id="m2"))

    task = run(service.create_task("m1", title="Audit", date="2026-10-18", assigned_to_id="t1"))
    assert task.assigned_to_id == "t1"


def test_customers_cannot_create_tasks():
    with pytest.raises(PermissionDenied):
        run(make_service().create_task("c1", title="Help", date="2026-10-18"))


def test_assignee_toggles_status_both_ways():
    service = make_service()
    task = run(service.create_task("m1", title="Audit", date="2026-10-18", assigned_to_id="t1"))

    with pytest.raises(PermissionDenied):
        run(service.toggle_status(task.id, "m1"))

    done = run(service.toggle_status(task.id, "t1"))
    assert done.status == "completed"
    again = run(service.toggle_status(task.id, "t1"))
    assert again.status == "pending"


def test_delete_rules():
    service = make_service()
    task = run(service.create_task("m1", title="Audit", date="2026-10-18", assigned_to_id="t1"))

    with pytest.raises(PermissionDenied):
        run(service.delete_task(task.id, "t1"))
    with pytest.raises(PermissionDenied):
        run(service.delete_task(task.id, "a1"))

    run(service.delete_task(task.id, "m1"))
    with pytest.raises(NotFound):
        run(service.delete_task(task.id, "m1"))


def test_clear_completed_removes_only_visible_completed():
    service = make_service()
    done = run(service.create_task("m1", title="Done", date="2026-10-18", assigned_to_id="t1"))
    run(service.toggle_status(done.id, "t1"))
    run(service.create_task("m1", title="Open", date="2026-10-18", assigned_to_id="t1"))
    elsewhere = run(service.create_task("m2", title="Theirs", date="2026-10-18", assigned_to_id="m2"))
    run(service.toggle_status(elsewhere.id, "m2"))

    assert run(service.clear_completed("m1")) == 1
    assert [t.title for t in run(service.list_tasks("m1"))] == ["Open"]
    assert [t.title for t in run(service.list_tasks("m2"))] == ["Theirs"]

    with pytest.raises(PermissionDenied):
        run(service.clear_completed("t1"))


def test_leaderboard_uses_member_names():
    service = make_service()
    for _ in range(2):
        task = run(service.create_task("m1", title="Job", date="2026-10-18", assigned_to_id="t1"))
        run(service.toggle_status(task.id, "t1"))

    board = run(service.leaderboard())

    assert board[0].name == "Ravi"
    assert board[0].points == 20


def test_monthly_leaderboard_uses_service_clock():
    service = TaskService(
        InMemoryTaskStore(), InMemoryUserStore(USERS), clock=lambda: datetime(2026, 10, 18)
    )
    this_month = run(service.create_task("m1", title="Job", date="2026-10-05", assigned_to_id="t1"))
    last_month = run(service.create_task("m1", title="Old job", date="2026-09-28", assigned_to_id="m1"))
    run(service.toggle_status(this_month.id, "t1"))
    run(service.toggle_status(last_month.id, "m1"))

    monthly = run(service.leaderboard(monthly=True))
    assert [(r.name, r.points) for r in monthly] == [("Ravi", 10)]
    assert len(run(service.leaderboard())) == 2
