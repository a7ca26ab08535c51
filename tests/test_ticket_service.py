import asyncio
from datetime import datetime, timedelta

import pytest

from infofix.models import User, Customer, AppSettings, NamedItem
from infofix.services import (
    TicketService,
    TransitionContext,
    NotFound,
    PermissionDenied,
    WorkflowError,
)
from infofix.store import InMemoryTicketStore, InMemoryUserStore, InMemoryCustomerStore


NOW = datetime(2026, 10, 18, 12, 0, 0)

USERS = [
    User(id="a1", name="Owner", role="ADMIN"),
    User(id="m1", name="Mina", role="MANAGER"),
    User(id="t1", name="Ravi", role="TECHNICIAN"),
    User(id="t2", name="Sonu", role="TECHNICIAN"),
    User(id="c1", name="Asha Roy", role="CUSTOMER", email="asha@example.com"),
]


def make_service(clock=lambda: NOW):
    settings = AppSettings(
        stores=[NamedItem(name="Main Store"), NamedItem(name="Asansol")],
        team_members=USERS,
    )
    return TicketService(
        InMemoryTicketStore(),
        InMemoryUserStore(USERS),
        InMemoryCustomerStore([Customer(name="Asha Roy")]),
        settings=settings,
        clock=clock,
    )


def run(coro):
    return asyncio.run(coro)


def create(service, actor="a1", **fields):
    fields.setdefault("device_type", "Laptop")
    fields.setdefault("store", "Main Store")
    return run(service.create_ticket(actor, **fields))


def test_create_assigns_display_ids_in_sequence():
    service = make_service()
    first = create(service, name="Asha Roy")
    second = create(service, name="Bikash Das")

    assert first.ticket_id == "TKT-IF-001"
    assert second.ticket_id == "TKT-IF-002"
    assert first.status == "New"
    assert first.date == NOW
    assert [h.action for h in first.history] == ["Ticket Created"]


def test_create_with_hold_reason_starts_on_hold():
    ticket = create(make_service(), hold_reason="Waiting for Parts")
    assert ticket.status == "On Hold"


def test_create_rejected_needs_note():
    with pytest.raises(WorkflowError) as err:
        create(make_service(), status="Rejected")
    assert err.value.code == "missing_reason"


def test_customer_ticket_waits_for_review():
    service = make_service()
    ticket = create(service, actor="c1", email="asha@example.com")

    assert ticket.status == "Pending Approval"
    assert ticket.customer_id == "c1"
    assert run(service.list_tickets("a1")) == []
    assert [t.id for t in run(service.review_queue("m1"))] == [ticket.id]
    assert [t.id for t in run(service.list_tickets("c1"))] == [ticket.id]


def test_approve_moves_ticket_to_new():
    service = make_service()
    ticket = create(service, actor="c1")

    approved = run(service.approve_ticket(ticket.id, "m1"))

    assert approved.status == "New"
    assert approved.history[-1].action == "Review"
    assert run(service.review_queue("m1")) == []


def test_technician_cannot_review():
    service = make_service()
    ticket = create(service, actor="c1")
    with pytest.raises(PermissionDenied):
        run(service.approve_ticket(ticket.id, "t1"))


def test_reject_requires_note():
    service = make_service()
    ticket = create(service, actor="c1")

    with pytest.raises(WorkflowError) as err:
        run(service.reject_ticket(ticket.id, "m1", "  "))
    assert err.value.code == "missing_reason"

    rejected = run(service.reject_ticket(ticket.id, "m1", "Out of warranty, customer declined"))
    assert rejected.status == "Rejected"
    assert "rejected" in rejected.history[-1].details


def test_approve_only_pending_tickets():
    service = make_service()
    ticket = create(service)
    with pytest.raises(WorkflowError) as err:
        run(service.approve_ticket(ticket.id, "a1"))
    assert err.value.code == "not_pending"


def test_resolving_stamps_and_reopening_clears_resolved_at():
    service = make_service()
    ticket = create(service)

    resolved = run(service.update_ticket(ticket.id, "a1", {"status": "Resolved"}))
    assert resolved.resolved_at == NOW

    reopened = run(service.update_ticket(ticket.id, "a1", {"status": "In Progress"}))
    assert reopened.resolved_at is None


def test_history_only_grows():
    service = make_service()
    ticket = create(service)

    step1 = run(service.update_ticket(ticket.id, "a1", {"status": "In Progress"}))
    step2 = run(service.update_ticket(
        ticket.id, "a1", {"store": "Asansol"}, TransitionContext(transfer_note="Closer to customer")
    ))

    assert step2.history[:len(step1.history)] == step1.history
    assert len(step2.history) == len(step1.history) + 1
    assert step2.history[-1].action == "Store Transfer"


def test_store_transfer_without_note_leaves_ticket_untouched():
    service = make_service()
    ticket = create(service)

    with pytest.raises(WorkflowError) as err:
        run(service.update_ticket(ticket.id, "a1", {"store": "Asansol"}))
    assert err.value.code == "missing_transfer_note"

    stored = run(service.get_ticket(ticket.id))
    assert stored.store == "Main Store"


def test_assignment_history_uses_member_name():
    service = make_service()
    ticket = create(service)
    updated = run(service.update_ticket(ticket.id, "m1", {"assigned_to_id": "t1"}))
    assert updated.history[-1].details == "Assigned to Ravi"


def test_technician_edits_only_assigned_tickets():
    service = make_service()
    mine = create(service, assigned_to_id="t1")
    theirs = create(service, assigned_to_id="t2")

    updated = run(service.update_ticket(mine.id, "t1", {"status": "In Progress"}))
    assert updated.status == "In Progress"

    with pytest.raises(PermissionDenied):
        run(service.update_ticket(theirs.id, "t1", {"status": "In Progress"}))


def test_only_admin_deletes():
    service = make_service()
    ticket = create(service)

    with pytest.raises(PermissionDenied):
        run(service.delete_ticket(ticket.id, "m1"))

    run(service.delete_ticket(ticket.id, "a1"))
    with pytest.raises(NotFound):
        run(service.get_ticket(ticket.id))
    with pytest.raises(NotFound):
        run(service.delete_ticket(ticket.id, "a1"))


def test_unknown_actor_is_not_found():
    with pytest.raises(NotFound):
        create(make_service(), actor="nobody")


def test_dashboard_lists_every_store_and_technician():
    clock_time = [NOW - timedelta(days=5)]
    service = make_service(clock=lambda: clock_time[0])
    create(service, priority="High", assigned_to_id="t1")
    clock_time[0] = NOW
    create(service, store="Asansol")

    stats = run(service.dashboard("a1"))

    assert stats.active_count == 2
    assert stats.overdue_count == 1
    assert stats.customer_count == 1
    assert {e.name for e in stats.per_store_load} == {"Main Store", "Asansol"}
    assert [(e.key, e.percent) for e in stats.per_technician_load] == [("t1", 50), ("t2", 0)]


def test_technician_dashboard_covers_own_tickets():
    service = make_service()
    create(service, assigned_to_id="t1")
    create(service, assigned_to_id="t2")
    assert run(service.dashboard("t1")).active_count == 1


def test_customers_have_no_dashboard():
    with pytest.raises(PermissionDenied):
        run(make_service().dashboard("c1"))
