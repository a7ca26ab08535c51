"""
INFOFIX Schedule Service

Merges scheduled repair jobs and visible tasks into one calendar.
"""

from datetime import datetime
from typing import List, Iterable

from ..models import (
    Ticket,
    Task,
    User,
    TaskStatus,
    CalendarEvent,
    MonthlyTaskStats,
)
from .tasks import TaskSchedulingRules, POINTS_PER_TASK, in_month


class ScheduleService:

    def __init__(self, rules: TaskSchedulingRules = None):
        self.rules = rules or TaskSchedulingRules()

    def events(
        self,
        tickets: Iterable[Ticket],
        tasks: Iterable[Task],
        user: User,
        members: Iterable[User] = ()
    ) -> List[CalendarEvent]:
        """Tickets with a scheduled date first, then the user's visible tasks."""
        by_id = {m.id: m for m in members}
        events = []

        for ticket in tickets:
            if not ticket.scheduled_date:
                continue
            events.append(CalendarEvent(
                id=ticket.id,
                type="ticket",
                title=f"Job: {ticket.device_type} - {ticket.ticket_id}",
                date=ticket.scheduled_date,
                status=ticket.status,
                assignee=by_id.get(ticket.assigned_to_id),
                ticket=ticket
            ))

        for task in self.rules.visible_tasks(tasks, user):
            events.append(CalendarEvent(
                id=task.id,
                type="task",
                title=task.title,
                date=task.date,
                time=task.time,
                status=task.status.value,
                assignee=by_id.get(task.assigned_to_id),
                task=task
            ))

        return events

    def events_on(self, events: Iterable[CalendarEvent], day: str) -> List[CalendarEvent]:
        """Events for one YYYY-MM-DD date, untimed entries first."""
        selected = [e for e in events if e.date == day]
        selected.sort(key=lambda e: e.time or "")
        return selected

    def monthly_stats(self, tasks: Iterable[Task], user: User, now: datetime) -> MonthlyTaskStats:
        month = [
            t for t in self.rules.visible_tasks(tasks, user)
            if in_month(t.date, now)
        ]
        completed = sum(1 for t in month if t.status == TaskStatus.COMPLETED)
        total = len(month)
        return MonthlyTaskStats(
            total=total,
            completed=completed,
            pending=total - completed,
            efficiency=0 if total == 0 else round(completed / total * 100),
            score=completed * POINTS_PER_TASK
        )

