"""
INFOFIX Services

Workflow rules for tickets and tasks, and the async services around them.
"""

from .errors import InfofixError, NotFound, PermissionDenied, WorkflowError
from .workflow import (
    TicketWorkflowEngine,
    TransitionContext,
    TransitionError,
    TransitionResult,
)
from .tasks import TaskSchedulingRules, POINTS_PER_TASK
from .schedule import ScheduleService
from .history import create_history_entry, diff_entries, append_history
from .tickets import TicketService
from .task_service import TaskService
from .customers import CustomerService
from .settings import SettingsService

__all__ = [
    # Errors
    "InfofixError", "NotFound", "PermissionDenied", "WorkflowError",

    # Pure rules
    "TicketWorkflowEngine", "TransitionContext", "TransitionError", "TransitionResult",
    "TaskSchedulingRules", "POINTS_PER_TASK",
    "ScheduleService",

    # Audit history
    "create_history_entry", "diff_entries", "append_history",

    # Store-backed services
    "TicketService", "TaskService", "CustomerService", "SettingsService",
]
