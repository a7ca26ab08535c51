"""
INFOFIX Stores

Narrow repository interfaces the services depend on, plus in-memory
implementations. A hosted backend plugs in by implementing the protocols.
"""

from typing import Dict, List, Optional, Protocol

from .models import Ticket, Task, User, Customer


class TicketStore(Protocol):
    async def get(self, ticket_id: str) -> Optional[Ticket]: ...
    async def list(self) -> List[Ticket]: ...
    async def save(self, ticket: Ticket) -> None: ...
    async def delete(self, ticket_id: str) -> bool: ...
    async def next_sequence(self) -> int: ...


class TaskStore(Protocol):
    async def get(self, task_id: str) -> Optional[Task]: ...
    async def list(self) -> List[Task]: ...
    async def save(self, task: Task) -> None: ...
    async def delete(self, task_id: str) -> bool: ...


class UserStore(Protocol):
    async def get(self, user_id: str) -> Optional[User]: ...
    async def list(self) -> List[User]: ...
    async def save(self, user: User) -> None: ...
    async def delete(self, user_id: str) -> bool: ...


class CustomerStore(Protocol):
    async def get(self, customer_id: str) -> Optional[Customer]: ...
    async def list(self) -> List[Customer]: ...
    async def save(self, customer: Customer) -> None: ...
    async def delete(self, customer_id: str) -> bool: ...


class _InMemory:
    """Insertion-ordered dict of records keyed by id."""

    def __init__(self, items=None) -> None:
        self._items: Dict[str, object] = {}
        for item in items or []:
            self._items[item.id] = item

    async def get(self, item_id: str):
        return self._items.get(item_id)

    async def list(self):
        return list(self._items.values())

    async def save(self, item) -> None:
        self._items[item.id] = item

    async def delete(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None


class InMemoryTicketStore(_InMemory):
    def __init__(self, items: Optional[List[Ticket]] = None) -> None:
        super().__init__(items)
        self._sequence = len(self._items)

    async def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence


class InMemoryTaskStore(_InMemory):
    pass


class InMemoryUserStore(_InMemory):
    pass


class InMemoryCustomerStore(_InMemory):
    pass
