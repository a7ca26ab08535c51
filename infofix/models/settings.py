"""
INFOFIX Tenant Settings

Lookup lists and SLA thresholds a shop configures for itself.
"""

from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from .ticket import User, new_id


DEFAULT_SLA_DAYS = 7

# Editable lists and the ticket field holding their values
LIST_FIELDS = {
    "stores": "store",
    "device_types": "device_type",
    "ticket_statuses": "status",
    "priorities": "priority",
    "hold_reasons": None,
    "progress_reasons": None,
}


class SLAConfig(BaseModel):
    """
    Days a ticket may stay active before it counts as overdue.

    Keyed by lowercased priority name. Custom priorities are accepted
    as extra fields, e.g. SLAConfig(critical=0.5).
    """
    model_config = ConfigDict(extra="allow")

    high: float = 1
    medium: float = 3
    low: float = 5

    def allowance(self, priority: Optional[str]) -> float:
        """Allowed days for a priority; unknown or zero falls back to 7."""
        key = (priority or "").strip().lower()
        days = self.model_dump().get(key)
        return days or DEFAULT_SLA_DAYS


class NamedItem(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str


class StatusItem(NamedItem):
    is_system: bool = False


def _items(*names: str) -> List[NamedItem]:
    return [NamedItem(name=n) for n in names]


def default_statuses() -> List[StatusItem]:
    return [
        StatusItem(name="New", is_system=True),
        StatusItem(name="In Progress", is_system=False),
        StatusItem(name="On Hold", is_system=True),
        StatusItem(name="Resolved", is_system=True),
        StatusItem(name="Rejected", is_system=True),
        StatusItem(name="Pending Approval", is_system=True),
    ]


class AppSettings(BaseModel):
    """Everything the settings screen edits, seeded with shop defaults."""
    stores: List[NamedItem] = Field(default_factory=lambda: _items(
        "Main Store", "DGP Shop", "Asansol", "Ukhra", "Service Center"
    ))
    device_types: List[NamedItem] = Field(default_factory=lambda: _items(
        "Smartphone", "Laptop", "Desktop", "Brand Service", "Accessory", "CCTV", "Other"
    ))
    ticket_statuses: List[StatusItem] = Field(default_factory=default_statuses)
    priorities: List[NamedItem] = Field(default_factory=lambda: _items("Low", "Medium", "High"))
    hold_reasons: List[NamedItem] = Field(default_factory=lambda: _items(
        "Waiting for Parts", "Customer Response", "Approval Pending"
    ))
    progress_reasons: List[NamedItem] = Field(default_factory=lambda: _items(
        "Diagnostics", "Repairing", "Testing"
    ))
    sla: SLAConfig = Field(default_factory=SLAConfig)
    team_members: List[User] = Field(default_factory=list)

    @property
    def store_names(self) -> List[str]:
        return [s.name for s in self.stores]

    def items(self, key: str) -> List[NamedItem]:
        if key not in LIST_FIELDS:
            raise KeyError(key)
        return getattr(self, key)

    def find_item(self, key: str, item_id: str) -> Optional[NamedItem]:
        for item in self.items(key):
            if item.id == item_id:
                return item
        return None

    def remove_item(self, key: str, item_id: str) -> bool:
        """Drop an item by id. System items cannot be removed."""
        item = self.find_item(key, item_id)
        if item is None or getattr(item, "is_system", False):
            return False
        self.items(key).remove(item)
        return True
