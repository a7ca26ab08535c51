import os

from .models.settings import SLAConfig


SERVICE_NAME = os.getenv("SERVICE_NAME", "infofix")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
TICKET_ID_PREFIX = os.getenv("TICKET_ID_PREFIX", "TKT-IF")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def default_sla() -> SLAConfig:
    return SLAConfig(
        high=float(os.getenv("SLA_HIGH_DAYS", "1")),
        medium=float(os.getenv("SLA_MEDIUM_DAYS", "3")),
        low=float(os.getenv("SLA_LOW_DAYS", "5")),
    )
