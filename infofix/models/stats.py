"""
INFOFIX Derived Views

Read-only records computed from tickets and tasks: dashboard figures,
workload bars, the leaderboard and calendar events.
"""

from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from .ticket import Ticket, Task, User


class LoadEntry(BaseModel):
    """Share of active tickets held by one store or technician."""
    key: str
    name: str
    count: int
    percent: int


class DashboardStats(BaseModel):
    active_count: int = 0
    overdue_count: int = 0
    resolved_today: int = 0
    customer_count: int = 0
    new_count: int = 0
    total_resolved: int = 0
    pending_approval_count: int = 0
    per_store_load: List[LoadEntry] = Field(default_factory=list)
    per_technician_load: List[LoadEntry] = Field(default_factory=list)
    device_type_distribution: Dict[str, int] = Field(default_factory=dict)


class LeaderboardEntry(BaseModel):
    assignee_id: Optional[str] = None
    name: str
    total: int = 0
    completed: int = 0
    points: int = 0


class MonthlyTaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    efficiency: int = 0  # Percent completed
    score: int = 0


class CalendarEvent(BaseModel):
    """A scheduled ticket or a task placed on the calendar."""
    id: str
    type: str  # "ticket" | "task"
    title: str
    date: str
    time: Optional[str] = None
    status: str
    assignee: Optional[User] = None
    ticket: Optional[Ticket] = None
    task: Optional[Task] = None
