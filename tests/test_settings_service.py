import asyncio

import pytest

from infofix.models import AppSettings, Ticket, User
from infofix.services import SettingsService, PermissionDenied, NotFound, WorkflowError
from infofix.store import InMemoryTicketStore, InMemoryUserStore


USERS = [
    User(id="a1", name="Owner", role="ADMIN"),
    User(id="m1", name="Mina", role="MANAGER"),
]


def make_service(tickets=()):
    settings = AppSettings()
    service = SettingsService(settings, InMemoryTicketStore(list(tickets)), InMemoryUserStore(USERS))
    return service, settings


def run(coro):
    return asyncio.run(coro)


def item_id(settings, key, name):
    return next(i.id for i in settings.items(key) if i.name == name)


def test_only_admins_change_settings():
    service, _ = make_service()
    with pytest.raises(PermissionDenied):
        run(service.add_item("m1", "stores", "Durgapur"))
    with pytest.raises(PermissionDenied):
        run(service.update_sla("m1", "High", 2))


def test_add_item_rejects_blank_and_duplicates():
    service, settings = make_service()
    item = run(service.add_item("a1", "stores", "  Durgapur "))
    assert item.name == "Durgapur"
    assert "Durgapur" in settings.store_names

    with pytest.raises(WorkflowError) as err:
        run(service.add_item("a1", "stores", "main store"))
    assert err.value.code == "duplicate_item"
    with pytest.raises(WorkflowError) as err:
        run(service.add_item("a1", "stores", "   "))
    assert err.value.code == "blank_name"


def test_added_status_is_not_a_system_status():
    service, settings = make_service()
    item = run(service.add_item("a1", "ticket_statuses", "Awaiting Courier"))
    assert item.is_system is False
    run(service.remove_item("a1", "ticket_statuses", item.id))
    assert "Awaiting Courier" not in [s.name for s in settings.ticket_statuses]


def test_unknown_list_is_not_found():
    service, _ = make_service()
    with pytest.raises(NotFound):
        run(service.add_item("a1", "team_members", "Someone"))


def test_system_statuses_are_protected():
    service, settings = make_service()
    resolved = item_id(settings, "ticket_statuses", "Resolved")

    with pytest.raises(WorkflowError) as err:
        run(service.remove_item("a1", "ticket_statuses", resolved))
    assert err.value.code == "system_item"
    with pytest.raises(WorkflowError) as err:
        run(service.rename_item("a1", "ticket_statuses", resolved, "Done"))
    assert err.value.code == "system_item"


def test_item_in_use_cannot_be_removed():
    service, settings = make_service([Ticket(store="Asansol")])
    with pytest.raises(WorkflowError) as err:
        run(service.remove_item("a1", "stores", item_id(settings, "stores", "Asansol")))
    assert err.value.code == "item_in_use"

    run(service.remove_item("a1", "stores", item_id(settings, "stores", "Ukhra")))
    assert "Ukhra" not in settings.store_names


def test_hold_reasons_are_removed_regardless_of_tickets():
    service, settings = make_service([Ticket(status="On Hold", hold_reason="Waiting for Parts")])
    run(service.remove_item("a1", "hold_reasons", item_id(settings, "hold_reasons", "Waiting for Parts")))
    assert "Waiting for Parts" not in [h.name for h in settings.hold_reasons]


def test_rename_rewrites_tickets():
    ticket = Ticket(store="DGP Shop")
    service, settings = make_service([ticket])

    run(service.rename_item("a1", "stores", item_id(settings, "stores", "DGP Shop"), "Durgapur Shop"))

    assert "Durgapur Shop" in settings.store_names
    stored = run(service.ticket_repo.get(ticket.id))
    assert stored.store == "Durgapur Shop"


def test_update_sla_for_existing_and_custom_priority():
    service, settings = make_service()
    run(service.update_sla("a1", "High", 2))
    sla = run(service.update_sla("a1", "Urgent", 0.5))

    assert settings.sla.allowance("high") == 2
    assert sla.allowance("urgent") == 0.5
    assert sla.allowance("medium") == 3

    with pytest.raises(WorkflowError) as err:
        run(service.update_sla("a1", "Low", -1))
    assert err.value.code == "invalid_sla"


def test_save_and_delete_team_member():
    service, settings = make_service()
    tech = User(id="t9", name="Nilu", role="TECHNICIAN")

    run(service.save_member("a1", tech))
    run(service.save_member("a1", tech.model_copy(update={"name": "Nilu Paul"})))
    assert [m.name for m in settings.team_members] == ["Nilu Paul"]
    assert run(service.user_repo.get("t9")).name == "Nilu Paul"

    run(service.delete_member("a1", "t9"))
    assert settings.team_members == []
    with pytest.raises(NotFound):
        run(service.delete_member("a1", "t9"))
