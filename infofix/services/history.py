"""
INFOFIX Ticket History

The audit log shown on the ticket's History tab.

- Entries are appended in chronological order, never edited
- Each entry records who (name + role), what (action) and details
- Store transfers and rejections carry the note the editor supplied
"""

from datetime import datetime
from typing import Optional, List, Dict

from ..models import Ticket, TicketHistory, TicketStatus, User, HistoryAction, utc_now
from .workflow import TransitionContext


def create_history_entry(
    actor: User,
    action: str,
    details: str,
    now: Optional[datetime] = None
) -> TicketHistory:
    now = now or utc_now()
    return TicketHistory(
        date=now.strftime("%Y-%m-%d %H:%M:%S"),
        timestamp=int(now.timestamp() * 1000),
        actor_name=actor.name,
        actor_role=actor.role.value,
        action=action.value if isinstance(action, HistoryAction) else action,
        details=details
    )


def diff_entries(
    before: Ticket,
    after: Ticket,
    actor: User,
    context: Optional[TransitionContext] = None,
    now: Optional[datetime] = None,
    names: Optional[Dict[str, str]] = None
) -> List[TicketHistory]:
    """
    History entries describing an edit from `before` to `after`.

    `names` maps user ids to display names for assignment entries.
    """
    context = context or TransitionContext()
    names = names or {}
    entries = []

    def add(action, details):
        entries.append(create_history_entry(actor, action, details, now))

    if after.store != before.store:
        add(
            HistoryAction.STORE_TRANSFER,
            f"Moved from {before.store} to {after.store}. Reason: {context.transfer_note}"
        )

    if after.status != before.status:
        if after.status == TicketStatus.REJECTED:
            add(
                HistoryAction.STATUS_CHANGE,
                f"Ticket rejected (was {before.status}). Reason: {context.rejection_note}"
            )
        elif after.status == TicketStatus.ON_HOLD:
            add(HistoryAction.HOLD, f"Put on hold: {after.hold_reason}")
        else:
            add(HistoryAction.STATUS_CHANGE, f"Changed from {before.status} to {after.status}")

    if after.assigned_to_id != before.assigned_to_id:
        if after.assigned_to_id:
            who = names.get(after.assigned_to_id, after.assigned_to_id)
            add(HistoryAction.ASSIGNMENT, f"Assigned to {who}")
        else:
            add(HistoryAction.ASSIGNMENT, "Unassigned")

    return entries


def append_history(ticket: Ticket, entries: List[TicketHistory]) -> Ticket:
    """Return a copy of the ticket with entries added after the existing log."""
    return ticket.model_copy(update={"history": list(ticket.history) + list(entries)})
