"""
INFOFIX Ticket Workflow Engine

Pure rules over an already-loaded snapshot of tickets:
- Active vs closed classification
- SLA overdue detection
- Transition validation (rejection note, transfer note, hold reason)
- Role-based visibility and the review queue
- Dashboard aggregates

Nothing here touches a store. Validation failures come back as values,
the calling service decides whether to raise.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, List, Dict, Iterable

from pydantic import ValidationError

from ..models import (
    Ticket,
    Customer,
    User,
    Role,
    TicketStatus,
    Priority,
    SLAConfig,
    DashboardStats,
    LoadEntry,
)


class TransitionError(str, Enum):
    MISSING_REASON = "missing_reason"
    MISSING_TRANSFER_NOTE = "missing_transfer_note"
    MISSING_HOLD_REASON = "missing_hold_reason"
    INVALID_CHANGE = "invalid_change"


@dataclass
class TransitionContext:
    """Free-text notes that accompany an edit but are not ticket fields."""
    rejection_note: Optional[str] = None
    transfer_note: Optional[str] = None


@dataclass
class TransitionResult:
    ticket: Optional[Ticket] = None
    error: Optional[TransitionError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


# Fields an edit may never touch
IMMUTABLE_FIELDS = frozenset({"id", "ticket_id", "date", "history"})


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _percent(count: int, total: int) -> int:
    # Half rounds up
    return int(math.floor(count / max(total, 1) * 100 + 0.5))


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TicketWorkflowEngine:
    """
    Stateless evaluation of ticket business rules.

    Status rules:
    - Resolved and Rejected are closed, everything else is active
    - Rejected needs a rejection note
    - Moving store needs a transfer note
    - Picking a hold reason puts the ticket On Hold
    - On Hold without a hold reason is refused
    """

    # =========================================================================
    # Classification & SLA
    # =========================================================================

    def classify_active(self, tickets: Iterable[Ticket]) -> List[Ticket]:
        return [t for t in tickets if t.is_active]

    def age_in_days(self, ticket: Ticket, now: datetime) -> int:
        """Whole days since creation, any started day counts."""
        elapsed = abs((_as_utc(now) - _as_utc(ticket.date)).total_seconds())
        return math.ceil(elapsed / timedelta(days=1).total_seconds())

    def is_overdue(self, ticket: Ticket, sla: SLAConfig, now: datetime) -> bool:
        """
        True when an active ticket is older than its priority allows.

        Unknown priorities get the 7-day default instead of failing.
        """
        if not ticket.is_active:
            return False
        return self.age_in_days(ticket, now) > sla.allowance(ticket.priority)

    # =========================================================================
    # Transitions
    # =========================================================================

    def validate_transition(
        self,
        ticket: Ticket,
        changes: Dict[str, object],
        context: Optional[TransitionContext] = None
    ) -> TransitionResult:
        """
        Check an edit and return the ticket it would produce.

        `changes` maps ticket field names to new values. Fields not named
        in `changes` are carried over untouched. A non-empty hold reason
        switches the status to On Hold as part of the edit.
        """
        context = context or TransitionContext()

        touched = set(changes) & IMMUTABLE_FIELDS
        unknown = set(changes) - set(Ticket.model_fields)
        if touched or unknown:
            return TransitionResult(
                error=TransitionError.INVALID_CHANGE,
                message=f"Cannot change fields: {', '.join(sorted(touched | unknown))}"
            )

        updates = dict(changes)
        if not _blank(updates.get("hold_reason")):
            updates["status"] = TicketStatus.ON_HOLD.value

        new_status = updates.get("status", ticket.status)
        new_store = updates.get("store", ticket.store)
        hold_reason = updates.get("hold_reason", ticket.hold_reason)

        if new_status == TicketStatus.REJECTED and _blank(context.rejection_note):
            return TransitionResult(
                error=TransitionError.MISSING_REASON,
                message="A rejection reason is required to reject a ticket."
            )

        if new_store != ticket.store and _blank(context.transfer_note):
            return TransitionResult(
                error=TransitionError.MISSING_TRANSFER_NOTE,
                message=f"A reason is required to move the ticket from {ticket.store} to {new_store}."
            )

        if new_status == TicketStatus.ON_HOLD and _blank(hold_reason):
            return TransitionResult(
                error=TransitionError.MISSING_HOLD_REASON,
                message="Select a hold reason before putting a ticket On Hold."
            )

        data = ticket.model_dump()
        data.update(updates)
        try:
            updated = Ticket.model_validate(data)
        except ValidationError as e:
            return TransitionResult(
                error=TransitionError.INVALID_CHANGE,
                message=str(e)
            )
        return TransitionResult(ticket=updated)

    # =========================================================================
    # Visibility
    # =========================================================================

    def visible_to(self, tickets: Iterable[Ticket], user: User) -> List[Ticket]:
        """
        The general ticket list for a user.

        Pending Approval tickets never appear here, they go to the
        review queue. Technicians see only their own assignments and
        customers only their own tickets.
        """
        tickets = list(tickets)
        listed = [t for t in tickets if t.status != TicketStatus.PENDING_APPROVAL]

        if user.role == Role.TECHNICIAN:
            return [t for t in listed if t.assigned_to_id == user.id]

        if user.role == Role.CUSTOMER:
            return [t for t in tickets if self._belongs_to(t, user)]

        return listed

    def review_queue(self, tickets: Iterable[Ticket], user: User) -> List[Ticket]:
        """Pending Approval tickets, for admins and managers only."""
        if user.role not in (Role.ADMIN, Role.MANAGER):
            return []
        return [t for t in tickets if t.status == TicketStatus.PENDING_APPROVAL]

    def _belongs_to(self, ticket: Ticket, user: User) -> bool:
        if ticket.customer_id and ticket.customer_id == user.id:
            return True
        return bool(user.email) and ticket.email.lower() == user.email.lower()

    def search(self, tickets: Iterable[Ticket], term: str) -> List[Ticket]:
        term = (term or "").strip()
        if not term:
            return list(tickets)
        needle = term.lower()
        return [
            t for t in tickets
            if needle in t.name.lower()
            or term in t.number
            or needle in t.email.lower()
            or needle in t.ticket_id.lower()
        ]

    def urgent_tickets(self, tickets: Iterable[Ticket], limit: int = 5) -> List[Ticket]:
        """Active tickets that are High priority or On Hold."""
        urgent = [
            t for t in tickets
            if t.is_active and (t.priority == Priority.HIGH or t.status == TicketStatus.ON_HOLD)
        ]
        return urgent[:limit]

    # =========================================================================
    # Aggregates
    # =========================================================================

    def aggregate_stats(
        self,
        tickets: Iterable[Ticket],
        customers: Iterable[Customer],
        sla: SLAConfig,
        now: datetime,
        stores: Optional[List[str]] = None,
        team: Optional[List[User]] = None
    ) -> DashboardStats:
        """
        Dashboard figures in a single pass over the tickets.

        When `stores` or `team` are given, every listed store and every
        technician gets a load row, even with zero tickets. Otherwise only
        stores and assignees that hold active tickets appear.
        """
        stats = DashboardStats(customer_count=len(list(customers)))
        store_counts: Dict[str, int] = {name: 0 for name in stores or []}
        tech_counts: Dict[str, int] = {}
        devices: Dict[str, int] = {}
        today = now.date()

        for ticket in tickets:
            devices[ticket.device_type] = devices.get(ticket.device_type, 0) + 1

            if ticket.status == TicketStatus.NEW:
                stats.new_count += 1
            elif ticket.status == TicketStatus.PENDING_APPROVAL:
                stats.pending_approval_count += 1
            elif ticket.status == TicketStatus.RESOLVED:
                stats.total_resolved += 1
                if ticket.resolved_at is not None and ticket.resolved_at.date() == today:
                    stats.resolved_today += 1

            if not ticket.is_active:
                continue

            stats.active_count += 1
            if self.is_overdue(ticket, sla, now):
                stats.overdue_count += 1
            store_counts[ticket.store] = store_counts.get(ticket.store, 0) + 1
            if ticket.assigned_to_id:
                tech_counts[ticket.assigned_to_id] = tech_counts.get(ticket.assigned_to_id, 0) + 1

        total = stats.active_count
        if stores is not None:
            store_counts = {name: store_counts.get(name, 0) for name in stores}
        stats.per_store_load = self._load_rows(
            [(name, name, count) for name, count in store_counts.items()], total
        )

        if team is not None:
            rows = [
                (m.id, m.name, tech_counts.get(m.id, 0))
                for m in team if m.role == Role.TECHNICIAN
            ]
        else:
            rows = [(key, key, count) for key, count in tech_counts.items()]
        stats.per_technician_load = self._load_rows(rows, total)

        stats.device_type_distribution = dict(
            sorted(devices.items(), key=lambda kv: kv[1], reverse=True)
        )
        return stats

    def _load_rows(self, rows, total: int) -> List[LoadEntry]:
        entries = [
            LoadEntry(key=key, name=name, count=count, percent=_percent(count, total))
            for key, name, count in rows
        ]
        entries.sort(key=lambda e: e.count, reverse=True)
        return entries
