"""
INFOFIX Settings Service

Admin-only edits to the shop's lookup lists, SLA thresholds and team.

- List items are unique by name, ignoring case
- System statuses can be neither renamed nor removed
- An item still used by a ticket cannot be removed
- Renaming an item rewrites the tickets that use it
"""

from typing import List

from ..logging_conf import get_logger
from ..models import (
    AppSettings,
    NamedItem,
    StatusItem,
    SLAConfig,
    User,
    Role,
    LIST_FIELDS,
)
from .errors import NotFound, PermissionDenied, WorkflowError


log = get_logger("settings")


class SettingsService:

    def __init__(self, settings: AppSettings, ticket_repo, user_repo):
        self.settings = settings
        self.ticket_repo = ticket_repo
        self.user_repo = user_repo

    async def _admin(self, actor_id: str) -> User:
        actor = await self.user_repo.get(actor_id)
        if actor is None:
            raise NotFound(f"User {actor_id} not found.")
        if actor.role != Role.ADMIN:
            log.warning("settings change denied", extra={"actor": actor.id})
            raise PermissionDenied("Only administrators can modify application settings.")
        return actor

    def _items(self, key: str) -> List[NamedItem]:
        try:
            return self.settings.items(key)
        except KeyError:
            raise NotFound(f"Unknown settings list {key}.") from None

    def _item(self, key: str, item_id: str) -> NamedItem:
        item = self.settings.find_item(key, item_id)
        if item is None:
            raise NotFound(f"No item {item_id} in {key}.")
        return item

    def _check_name(self, items: List[NamedItem], name: str, skip_id: str = None) -> str:
        name = (name or "").strip()
        if not name:
            raise WorkflowError("Name cannot be empty.", code="blank_name")
        lowered = name.lower()
        if any(i.name.lower() == lowered and i.id != skip_id for i in items):
            raise WorkflowError("Item already exists", code="duplicate_item")
        return name

    async def add_item(self, actor_id: str, key: str, name: str) -> NamedItem:
        actor = await self._admin(actor_id)
        items = self._items(key)
        name = self._check_name(items, name)

        item = StatusItem(name=name) if key == "ticket_statuses" else NamedItem(name=name)
        items.append(item)
        log.info("settings item added", extra={"actor": actor.id, "list": key, "item": name})
        return item

    async def rename_item(self, actor_id: str, key: str, item_id: str, name: str) -> NamedItem:
        actor = await self._admin(actor_id)
        items = self._items(key)
        item = self._item(key, item_id)
        if getattr(item, "is_system", False):
            raise WorkflowError("Cannot rename system default items", code="system_item")
        name = self._check_name(items, name, skip_id=item.id)

        old_name, item.name = item.name, name
        field = LIST_FIELDS[key]
        rewritten = 0
        if field is not None:
            for ticket in await self.ticket_repo.list():
                if getattr(ticket, field) == old_name:
                    await self.ticket_repo.save(ticket.model_copy(update={field: name}))
                    rewritten += 1

        log.info("settings item renamed", extra={
            "actor": actor.id, "list": key, "from": old_name, "to": name, "tickets": rewritten
        })
        return item

    async def remove_item(self, actor_id: str, key: str, item_id: str) -> None:
        actor = await self._admin(actor_id)
        self._items(key)
        item = self._item(key, item_id)
        if getattr(item, "is_system", False):
            raise WorkflowError("Cannot delete system default items", code="system_item")

        field = LIST_FIELDS[key]
        if field is not None:
            for ticket in await self.ticket_repo.list():
                if getattr(ticket, field) == item.name:
                    raise WorkflowError(
                        f'Cannot delete "{item.name}" because it is currently in use.',
                        code="item_in_use"
                    )

        self.settings.remove_item(key, item_id)
        log.info("settings item removed", extra={"actor": actor.id, "list": key, "item": item.name})

    async def update_sla(self, actor_id: str, priority: str, days: float) -> SLAConfig:
        """Set the overdue allowance for one priority, custom ones included."""
        actor = await self._admin(actor_id)
        key = (priority or "").strip().lower()
        if not key:
            raise WorkflowError("Priority is required.", code="blank_name")
        if days < 0:
            raise WorkflowError("SLA days cannot be negative.", code="invalid_sla")

        self.settings.sla = SLAConfig(**{**self.settings.sla.model_dump(), key: days})
        log.info("sla updated", extra={"actor": actor.id, "priority": key, "days": days})
        return self.settings.sla

    # =========================================================================
    # Team
    # =========================================================================

    async def save_member(self, actor_id: str, member: User) -> User:
        """Create or replace a team member, keyed by id."""
        actor = await self._admin(actor_id)
        await self.user_repo.save(member)

        team = self.settings.team_members
        for index, existing in enumerate(team):
            if existing.id == member.id:
                team[index] = member
                break
        else:
            team.append(member)

        log.info("team member saved", extra={"actor": actor.id, "member": member.id})
        return member

    async def delete_member(self, actor_id: str, member_id: str) -> None:
        actor = await self._admin(actor_id)
        if not await self.user_repo.delete(member_id):
            raise NotFound(f"User {member_id} not found.")
        self.settings.team_members = [
            m for m in self.settings.team_members if m.id != member_id
        ]
        log.info("team member deleted", extra={"actor": actor.id, "member": member_id})
