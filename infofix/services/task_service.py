"""
INFOFIX Task Service

Staff task board backed by the task store.
"""

from datetime import datetime
from typing import Optional, List, Callable

from ..logging_conf import get_logger
from ..models import (
    Task,
    User,
    Role,
    TaskStatus,
    LeaderboardEntry,
    utc_now,
)
from .errors import NotFound, PermissionDenied
from .tasks import TaskSchedulingRules


log = get_logger("tasks")


class TaskService:

    def __init__(
        self,
        task_repo,
        user_repo,
        rules: Optional[TaskSchedulingRules] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.task_repo = task_repo
        self.user_repo = user_repo
        self.rules = rules or TaskSchedulingRules()
        self.clock = clock

    async def _actor(self, user_id: str) -> User:
        user = await self.user_repo.get(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found.")
        return user

    async def _task(self, task_id: str) -> Task:
        task = await self.task_repo.get(task_id)
        if task is None:
            raise NotFound(f"Task {task_id} not found.")
        return task

    async def create_task(self, actor_id: str, **fields) -> Task:
        """
        Add a task to the board.

        Technicians always get their own tasks. Admins and managers may
        leave it unassigned or pick someone they are allowed to assign.
        """
        actor = await self._actor(actor_id)
        if actor.role == Role.CUSTOMER:
            raise PermissionDenied("Customers cannot create tasks.")

        fields.pop("id", None)
        fields["created_by_id"] = actor.id
        if actor.role == Role.TECHNICIAN:
            fields["assigned_to_id"] = actor.id
        elif fields.get("assigned_to_id"):
            target = await self._actor(fields["assigned_to_id"])
            if not self.rules.can_assign(actor, target):
                log.warning("task assignment denied", extra={"actor": actor.id, "target": target.id})
                raise PermissionDenied(f"{actor.role.value} cannot assign tasks to {target.name}.")

        task = Task(**fields)
        await self.task_repo.save(task)
        log.info("task created", extra={"actor": actor.id, "task": task.id})
        return task

    async def toggle_status(self, task_id: str, actor_id: str) -> Task:
        """Flip pending/completed. Only the assignee may do this."""
        actor = await self._actor(actor_id)
        task = await self._task(task_id)
        if not self.rules.can_toggle(actor, task):
            raise PermissionDenied("You can only update your own assigned tasks.")

        status = TaskStatus.PENDING if task.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
        updated = task.model_copy(update={"status": status})
        await self.task_repo.save(updated)
        return updated

    async def delete_task(self, task_id: str, actor_id: str) -> None:
        actor = await self._actor(actor_id)
        task = await self._task(task_id)
        if not self.rules.can_delete(actor, task):
            log.warning("task delete denied", extra={"actor": actor.id, "task": task.id})
            raise PermissionDenied("You can only delete tasks you created.")
        await self.task_repo.delete(task_id)
        log.info("task deleted", extra={"actor": actor.id, "task": task.id})

    async def clear_completed(self, actor_id: str) -> int:
        """Remove the actor's visible completed tasks, returns how many."""
        actor = await self._actor(actor_id)
        if actor.role in (Role.TECHNICIAN, Role.CUSTOMER):
            raise PermissionDenied("You cannot bulk delete tasks.")
        visible = self.rules.visible_tasks(await self.task_repo.list(), actor)
        removed = 0
        for task in visible:
            if task.status == TaskStatus.COMPLETED:
                if await self.task_repo.delete(task.id):
                    removed += 1
        return removed

    async def list_tasks(self, actor_id: str) -> List[Task]:
        actor = await self._actor(actor_id)
        return self.rules.visible_tasks(await self.task_repo.list(), actor)

    async def leaderboard(self, monthly: bool = False) -> List[LeaderboardEntry]:
        """All-time board, or this month's when `monthly` is set."""
        month = self.clock() if monthly else None
        return self.rules.score(
            await self.task_repo.list(), await self.user_repo.list(), month=month
        )
