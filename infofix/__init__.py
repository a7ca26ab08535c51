"""
INFOFIX Services CRM Engine

Repair-shop ticket workflow with:
- SLA overdue tracking
- Hold, rejection and store-transfer rules
- Role-based ticket and task visibility
- Technician task leaderboard
- Append-only ticket history
"""

__version__ = "0.1.0"
