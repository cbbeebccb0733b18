# storage/log_ring.py
# ============================================================================
# STRIPE PAYMENT FAILURE MONITOR - IN-MEMORY LOG RING
# ============================================================================
# Bounded, newest-first activity log served by GET /logs and mirrored to
# structlog. Process-local; lost on restart.
# ============================================================================

import uuid
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

import structlog
from pydantic import BaseModel, Field

DEFAULT_CAPACITY = 100
DEFAULT_READ_LIMIT = 50


class LogLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class LogEntry(BaseModel):
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    level: LogLevel
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))


class LogRing:
    """
    Fixed-capacity log buffer.

    New entries go to the head; once capacity is exceeded the oldest entry
    falls off the tail. Reads return the newest entries first.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, logger=None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._logger = logger or structlog.get_logger().bind(component="log_ring")

    def __len__(self) -> int:
        return len(self._entries)

    def add(
        self,
        level: LogLevel,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> LogEntry:
        entry = LogEntry(level=LogLevel(level), message=message, data=data or {})
        # deque(maxlen) drops from the opposite end on appendleft
        self._entries.appendleft(entry)
        self._emit(entry)
        return entry

    def info(self, message: str, **data) -> LogEntry:
        return self.add(LogLevel.INFO, message, data)

    def success(self, message: str, **data) -> LogEntry:
        return self.add(LogLevel.SUCCESS, message, data)

    def warning(self, message: str, **data) -> LogEntry:
        return self.add(LogLevel.WARNING, message, data)

    def error(self, message: str, **data) -> LogEntry:
        return self.add(LogLevel.ERROR, message, data)

    def recent(self, limit: int = DEFAULT_READ_LIMIT) -> List[LogEntry]:
        """Newest `limit` entries, newest first."""
        if limit <= 0:
            return []
        return list(self._entries)[:limit]

    def clear(self) -> None:
        self._entries.clear()

    def _emit(self, entry: LogEntry) -> None:
        # structlog has no "success" level; keep it as an outcome tag on info
        if entry.level == LogLevel.ERROR:
            emit = self._logger.error
        elif entry.level == LogLevel.WARNING:
            emit = self._logger.warning
        else:
            emit = self._logger.info
        emit(entry.message, ring_level=entry.level.value, entry_id=entry.id, data=entry.data)
