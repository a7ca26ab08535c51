import logging
import time
from pythonjsonlogger import jsonlogger

from .config import SERVICE_NAME, LOG_LEVEL


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("timestamp", time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime()))
        log_record.setdefault("level", record.levelname)
        log_record.setdefault("service", getattr(record, 'service', SERVICE_NAME))
        # Acting user, when the caller passes it via extra
        actor = getattr(record, 'actor', None)
        if actor:
            log_record["actor"] = actor


def configure_logging(service_name: str = SERVICE_NAME, level: str = LOG_LEVEL) -> logging.Logger:
    logger = logging.getLogger(service_name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the service logger, e.g. infofix.tickets."""
    return logging.getLogger(f"{SERVICE_NAME}.{name}")
