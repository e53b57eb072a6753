"""
Notification sink: every message is logged, and the most recent ones are
queued for the UI to pick up.
"""

import logging
import time
from collections import deque
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


class Notification(BaseModel):
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    created_at: float = Field(default_factory=time.time)


class Notifier:
    def __init__(self, limit: int = 50):
        self._queue: deque = deque(maxlen=limit)

    def notify(self, message: str, level: NotificationLevel | str = NotificationLevel.INFO) -> Notification:
        level = NotificationLevel(level)
        logger.log(_LOG_LEVELS[level], f"[notify:{level.value}] {message}")
        notification = Notification(message=message, level=level)
        self._queue.append(notification)
        return notification

    def pending(self) -> List[Notification]:
        return list(self._queue)

    def drain(self) -> List[Notification]:
        """Return and clear the queued notifications."""
        items = list(self._queue)
        self._queue.clear()
        return items
