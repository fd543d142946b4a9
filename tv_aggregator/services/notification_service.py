"""
User-visible notifications

Non-fatal problems (such as a failed EPG refresh) are reported here instead
of through the pipeline state.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol


logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notification:
    message: str
    severity: Severity
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier(Protocol):
    def notify(self, message: str, severity: Severity) -> None: ...


class NotificationCenter:
    """Logs notifications and keeps the most recent ones for readers."""

    _LOG_LEVELS = {
        Severity.INFO: logging.INFO,
        Severity.WARNING: logging.WARNING,
        Severity.ERROR: logging.ERROR,
    }

    def __init__(self, max_items: int = 50):
        self._recent: deque[Notification] = deque(maxlen=max_items)

    def notify(self, message: str, severity: Severity) -> None:
        self._recent.append(Notification(message=message, severity=severity))
        logger.log(self._LOG_LEVELS[severity], f"Notification ({severity.value}): {message}")

    def recent(self) -> list[Notification]:
        """Most recent notifications, newest last."""
        return list(self._recent)
