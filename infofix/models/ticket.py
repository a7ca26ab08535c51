"""
INFOFIX Ticket Model

Repair-shop records: tickets, their audit history, tasks and people.

Core principles:
1. Ticket = one repair job walking through the status workflow
2. History is append-only (entries are frozen once created)
3. Status and priority are tenant-configurable strings, system names below
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List
from uuid import uuid4
from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


# =============================================================================
# ENUMS
# =============================================================================

class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    TECHNICIAN = "TECHNICIAN"
    CUSTOMER = "CUSTOMER"


class TicketStatus(str, Enum):
    """System statuses. Tenants may add more names in settings."""
    NEW = "New"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    PENDING_APPROVAL = "Pending Approval"
    RESOLVED = "Resolved"
    REJECTED = "Rejected"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"


class TaskCategory(str, Enum):
    GENERAL = "general"
    MEETING = "meeting"
    MAINTENANCE = "maintenance"


class HistoryAction(str, Enum):
    CREATED = "Ticket Created"
    STATUS_CHANGE = "Status Change"
    STORE_TRANSFER = "Store Transfer"
    ASSIGNMENT = "Assignment"
    HOLD = "On Hold"
    REVIEW = "Review"


CLOSED_STATUSES = frozenset({TicketStatus.RESOLVED.value, TicketStatus.REJECTED.value})


# =============================================================================
# CORE MODELS
# =============================================================================

class TicketHistory(BaseModel):
    """
    One audit record on a ticket.

    Frozen: entries are appended, never edited.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    date: str  # Display form, e.g. "2026-10-18 14:05:00"
    timestamp: int  # Epoch milliseconds
    actor_name: str
    actor_role: str
    action: str
    details: str


class Ticket(BaseModel):
    """
    A repair job.

    Customer fields are denormalised for display, the customer record
    itself lives in the customer store.
    """
    id: str = Field(default_factory=new_id)
    ticket_id: str = ""  # Display ID, e.g. TKT-IF-001

    # Customer
    customer_id: Optional[str] = None
    name: str = ""
    number: str = ""
    email: str = ""
    address: str = ""

    date: datetime = Field(default_factory=utc_now)

    # Device
    device_type: str = ""
    brand: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None
    charger_included: bool = False
    device_description: Optional[str] = None

    # Workflow
    store: str = ""
    status: str = TicketStatus.NEW.value
    priority: str = Priority.MEDIUM.value
    issue_description: str = ""
    estimated_amount: float = 0.0
    hold_reason: Optional[str] = None
    progress_reason: Optional[str] = None
    progress_note: Optional[str] = None  # Internal, hidden from customer

    # Warranty
    warranty: bool = False
    bill_number: Optional[str] = None

    # Assignment & scheduling
    assigned_to_id: Optional[str] = None
    scheduled_date: Optional[str] = None  # YYYY-MM-DD
    resolved_at: Optional[datetime] = None

    history: List[TicketHistory] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status not in CLOSED_STATUSES


class Task(BaseModel):
    """Internal work item, never shown to customers."""
    id: str = Field(default_factory=new_id)
    title: str
    description: Optional[str] = None
    date: str  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM
    assigned_to_id: Optional[str] = None
    created_by_id: str
    type: TaskCategory = TaskCategory.GENERAL
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.NORMAL


# =============================================================================
# SUPPORTING MODELS
# =============================================================================

class User(BaseModel):
    """Staff member or portal customer."""
    id: str = Field(default_factory=new_id)
    name: str
    role: Role
    email: str = ""
    mobile: Optional[str] = None
    address: Optional[str] = None
    experience: Optional[str] = None
    photo: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class Customer(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    email: str = ""
    mobile: str = ""
    address: str = ""
    city: Optional[str] = None
    pincode: Optional[str] = None
    notes: List[str] = Field(default_factory=list)
    photo: Optional[str] = None
