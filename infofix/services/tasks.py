"""
INFOFIX Task Scheduling Rules

Who sees which task, who may assign whom, and the points leaderboard.

Visibility:
- Admin / Manager: tasks they created or that are assigned to them
- Technician: tasks assigned to them
- Customer: none

Scoring: 10 points per completed task, ties keep first-seen order.
The monthly board counts only tasks dated in the given month.
"""

from datetime import datetime
from typing import Optional, List, Dict, Iterable

from ..models import Task, User, Role, TaskStatus, LeaderboardEntry


POINTS_PER_TASK = 10
UNASSIGNED = "Unassigned"


def _role(user: User) -> str:
    role = user.role.value if isinstance(user.role, Role) else str(user.role)
    return role.strip().upper()


class TaskSchedulingRules:

    def visible_tasks(self, tasks: Iterable[Task], user: User) -> List[Task]:
        role = _role(user)
        if role in (Role.ADMIN.value, Role.MANAGER.value):
            return [
                t for t in tasks
                if t.created_by_id == user.id or t.assigned_to_id == user.id
            ]
        if role == Role.TECHNICIAN.value:
            return [t for t in tasks if t.assigned_to_id == user.id]
        return []

    def can_assign(self, actor: User, target: User) -> bool:
        """Admins assign anyone, managers a technician or themselves."""
        role = _role(actor)
        if role == Role.ADMIN.value:
            return True
        if role == Role.MANAGER.value:
            return target.id == actor.id or _role(target) == Role.TECHNICIAN.value
        return False

    def assignable_members(
        self,
        actor: User,
        members: Iterable[User],
        editing: Optional[Task] = None
    ) -> List[User]:
        """
        Members the actor may pick as assignee.

        When editing, a manager keeps the task's current assignee in the list
        even if that person would not otherwise be assignable.
        """
        allowed = []
        for member in members:
            if self.can_assign(actor, member):
                allowed.append(member)
            elif (
                editing is not None
                and _role(actor) == Role.MANAGER.value
                and member.id == editing.assigned_to_id
            ):
                allowed.append(member)
        return allowed

    def can_delete(self, actor: User, task: Task) -> bool:
        if _role(actor) in (Role.TECHNICIAN.value, Role.CUSTOMER.value):
            return False
        return task.created_by_id == actor.id

    def can_toggle(self, actor: User, task: Task) -> bool:
        return task.assigned_to_id == actor.id

    def score(
        self,
        tasks: Iterable[Task],
        members: Optional[Iterable[User]] = None,
        month: Optional[datetime] = None
    ) -> List[LeaderboardEntry]:
        """
        Leaderboard of assignees by completed-task points.

        Tasks without an assignee are skipped. Assignees not found among
        `members` share a single "Unassigned" row instead of failing.
        With `month`, only tasks dated in that calendar month count, so
        staff with no tasks that month drop off the board.
        """
        names = {m.id: m.name for m in members or []}
        rows: Dict[Optional[str], LeaderboardEntry] = {}

        for task in tasks:
            if not task.assigned_to_id:
                continue
            if month is not None and not in_month(task.date, month):
                continue
            key = task.assigned_to_id if task.assigned_to_id in names else None
            row = rows.get(key)
            if row is None:
                row = LeaderboardEntry(assignee_id=key, name=names.get(key, UNASSIGNED))
                rows[key] = row
            row.total += 1
            if task.status == TaskStatus.COMPLETED:
                row.completed += 1
                row.points += POINTS_PER_TASK

        # sorted() is stable, so equal points keep insertion order
        return sorted(rows.values(), key=lambda r: r.points, reverse=True)


def in_month(day: str, month: datetime) -> bool:
    """True when a YYYY-MM-DD date falls in the month of `month`."""
    try:
        parsed = datetime.strptime(day, "%Y-%m-%d")
    except ValueError:
        return False
    return parsed.year == month.year and parsed.month == month.month
