"""
INFOFIX Ticket Service

Loads tickets from the store, runs them through the workflow engine,
writes history and saves the result.

Permissions:
- Anyone on staff may create; customer-created tickets wait in review
- Technicians may only edit tickets assigned to them
- Only admins delete
- Admins and managers approve or reject the review queue
"""

from datetime import datetime
from typing import Optional, List, Callable

from ..config import TICKET_ID_PREFIX
from ..logging_conf import get_logger
from ..models import (
    Ticket,
    User,
    Role,
    TicketStatus,
    HistoryAction,
    AppSettings,
    DashboardStats,
    utc_now,
)
from .errors import NotFound, PermissionDenied, WorkflowError
from .history import create_history_entry, diff_entries, append_history
from .workflow import TicketWorkflowEngine, TransitionContext


log = get_logger("tickets")

STAFF_ROLES = (Role.ADMIN, Role.MANAGER, Role.TECHNICIAN)
REVIEWER_ROLES = (Role.ADMIN, Role.MANAGER)


class TicketService:

    def __init__(
        self,
        ticket_repo,
        user_repo,
        customer_repo,
        settings: Optional[AppSettings] = None,
        engine: Optional[TicketWorkflowEngine] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.ticket_repo = ticket_repo
        self.user_repo = user_repo
        self.customer_repo = customer_repo
        self.settings = settings or AppSettings()
        self.engine = engine or TicketWorkflowEngine()
        self.clock = clock

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self.ticket_repo.get(ticket_id)
        if ticket is None:
            raise NotFound(f"Ticket {ticket_id} not found.")
        return ticket

    async def get_actor(self, user_id: str) -> User:
        user = await self.user_repo.get(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found.")
        return user

    # =========================================================================
    # Create / update / delete
    # =========================================================================

    async def create_ticket(
        self,
        actor_id: str,
        context: Optional[TransitionContext] = None,
        **fields
    ) -> Ticket:
        """
        Open a new ticket.

        Customer submissions start as Pending Approval. Staff tickets start
        as New unless a status is given, and the same transition rules as
        an edit apply (hold reason, rejection note).
        """
        actor = await self.get_actor(actor_id)
        now = self.clock()

        for key in ("id", "ticket_id", "date", "history", "resolved_at"):
            fields.pop(key, None)
        status = fields.pop("status", None) or TicketStatus.NEW.value
        if actor.role == Role.CUSTOMER:
            status = TicketStatus.PENDING_APPROVAL.value
            fields["customer_id"] = fields.get("customer_id") or actor.id

        sequence = await self.ticket_repo.next_sequence()
        draft = Ticket(
            ticket_id=f"{TICKET_ID_PREFIX}-{sequence:03d}",
            date=now,
            **fields
        )

        result = self.engine.validate_transition(
            draft,
            {"status": status, "hold_reason": draft.hold_reason},
            context
        )
        if not result.ok:
            log.warning(
                "ticket create refused",
                extra={"actor": actor.id, "code": result.error.value}
            )
            raise WorkflowError(result.message, code=result.error.value)

        ticket = append_history(result.ticket, [create_history_entry(
            actor, HistoryAction.CREATED, f"Created with status {result.ticket.status}", now
        )])
        await self.ticket_repo.save(ticket)

        log.info("ticket created", extra={
            "actor": actor.id, "ticket_id": ticket.ticket_id, "status": ticket.status
        })
        return ticket

    async def update_ticket(
        self,
        ticket_id: str,
        actor_id: str,
        changes: dict,
        context: Optional[TransitionContext] = None
    ) -> Ticket:
        """
        Apply an edit through the workflow engine.

        resolved_at is stamped on entering Resolved and cleared on leaving it.
        """
        actor = await self.get_actor(actor_id)
        ticket = await self.get_ticket(ticket_id)
        self._require_can_edit(actor, ticket)

        result = self.engine.validate_transition(ticket, changes, context)
        if not result.ok:
            log.warning("ticket transition refused", extra={
                "actor": actor.id, "ticket_id": ticket.ticket_id, "code": result.error.value
            })
            raise WorkflowError(result.message, code=result.error.value)

        now = self.clock()
        updated = result.ticket
        if updated.status != ticket.status:
            if updated.status == TicketStatus.RESOLVED:
                updated = updated.model_copy(update={"resolved_at": now})
            elif ticket.status == TicketStatus.RESOLVED:
                updated = updated.model_copy(update={"resolved_at": None})

        names = {m.id: m.name for m in await self.user_repo.list()}
        entries = diff_entries(ticket, updated, actor, context, now, names)
        updated = append_history(updated, entries)
        await self.ticket_repo.save(updated)

        if updated.status != ticket.status:
            log.info("ticket status changed", extra={
                "actor": actor.id,
                "ticket_id": updated.ticket_id,
                "from_status": ticket.status,
                "to_status": updated.status
            })
        return updated

    async def delete_ticket(self, ticket_id: str, actor_id: str) -> None:
        actor = await self.get_actor(actor_id)
        if actor.role != Role.ADMIN:
            log.warning("ticket delete denied", extra={"actor": actor.id, "ticket_id": ticket_id})
            raise PermissionDenied("Only admins can delete tickets.")
        if not await self.ticket_repo.delete(ticket_id):
            raise NotFound(f"Ticket {ticket_id} not found.")
        log.info("ticket deleted", extra={"actor": actor.id, "ticket_id": ticket_id})

    # =========================================================================
    # Review queue
    # =========================================================================

    async def review_queue(self, actor_id: str) -> List[Ticket]:
        actor = await self.get_actor(actor_id)
        return self.engine.review_queue(await self.ticket_repo.list(), actor)

    async def approve_ticket(self, ticket_id: str, actor_id: str) -> Ticket:
        """Move a Pending Approval ticket into the normal workflow as New."""
        actor = await self.get_actor(actor_id)
        ticket = await self._pending_for_review(ticket_id, actor)
        approved = ticket.model_copy(update={"status": TicketStatus.NEW.value})
        approved = append_history(approved, [create_history_entry(
            actor, HistoryAction.REVIEW, "Approved from review queue", self.clock()
        )])
        await self.ticket_repo.save(approved)
        log.info("ticket approved", extra={"actor": actor.id, "ticket_id": ticket.ticket_id})
        return approved

    async def reject_ticket(self, ticket_id: str, actor_id: str, note: Optional[str]) -> Ticket:
        actor = await self.get_actor(actor_id)
        await self._pending_for_review(ticket_id, actor)
        return await self.update_ticket(
            ticket_id,
            actor_id,
            {"status": TicketStatus.REJECTED.value},
            TransitionContext(rejection_note=note)
        )

    async def _pending_for_review(self, ticket_id: str, actor: User) -> Ticket:
        if actor.role not in REVIEWER_ROLES:
            raise PermissionDenied("Only admins and managers review tickets.")
        ticket = await self.get_ticket(ticket_id)
        if ticket.status != TicketStatus.PENDING_APPROVAL:
            raise WorkflowError(
                f"Ticket {ticket.ticket_id} is not pending approval.",
                code="not_pending"
            )
        return ticket

    # =========================================================================
    # Views
    # =========================================================================

    async def list_tickets(self, actor_id: str, search: Optional[str] = None) -> List[Ticket]:
        actor = await self.get_actor(actor_id)
        visible = self.engine.visible_to(await self.ticket_repo.list(), actor)
        return self.engine.search(visible, search) if search else visible

    async def dashboard(self, actor_id: str) -> DashboardStats:
        actor = await self.get_actor(actor_id)
        if actor.role not in STAFF_ROLES:
            raise PermissionDenied("The dashboard is for staff only.")
        tickets = await self.ticket_repo.list()
        if actor.role == Role.TECHNICIAN:
            tickets = self.engine.visible_to(tickets, actor)
        team = self.settings.team_members or await self.user_repo.list()
        return self.engine.aggregate_stats(
            tickets,
            await self.customer_repo.list(),
            self.settings.sla,
            self.clock(),
            stores=self.settings.store_names,
            team=team
        )

    def _require_can_edit(self, actor: User, ticket: Ticket) -> None:
        if actor.role == Role.CUSTOMER:
            raise PermissionDenied("Customers cannot edit tickets.")
        if actor.role == Role.TECHNICIAN and ticket.assigned_to_id != actor.id:
            log.warning("ticket edit denied", extra={"actor": actor.id, "ticket_id": ticket.ticket_id})
            raise PermissionDenied("Technicians can only edit tickets assigned to them.")
