# storage/__init__.py
from payment_monitor.storage.log_ring import (
    DEFAULT_CAPACITY,
    DEFAULT_READ_LIMIT,
    LogEntry,
    LogLevel,
    LogRing,
)

__all__ = [
    "DEFAULT_CAPACITY",
    "DEFAULT_READ_LIMIT",
    "LogEntry",
    "LogLevel",
    "LogRing",
]
