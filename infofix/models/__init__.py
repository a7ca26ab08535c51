"""
INFOFIX Models

Tickets, tasks, people, tenant settings and the views derived from them.
"""

from .ticket import (
    # Enums
    Role,
    TicketStatus,
    Priority,
    TaskStatus,
    TaskPriority,
    TaskCategory,
    HistoryAction,
    CLOSED_STATUSES,

    # Core models
    Ticket,
    TicketHistory,
    Task,

    # Supporting models
    User,
    Customer,
    new_id,
    utc_now,
)
from .settings import SLAConfig, AppSettings, NamedItem, StatusItem, DEFAULT_SLA_DAYS, LIST_FIELDS
from .stats import (
    LoadEntry,
    DashboardStats,
    LeaderboardEntry,
    MonthlyTaskStats,
    CalendarEvent,
)

__all__ = [
    "Role", "TicketStatus", "Priority", "TaskStatus", "TaskPriority", "TaskCategory",
    "HistoryAction", "CLOSED_STATUSES",
    "Ticket", "TicketHistory", "Task", "User", "Customer", "new_id", "utc_now",
    "SLAConfig", "AppSettings", "NamedItem", "StatusItem", "DEFAULT_SLA_DAYS", "LIST_FIELDS",
    "LoadEntry", "DashboardStats", "LeaderboardEntry", "MonthlyTaskStats", "CalendarEvent",
]
