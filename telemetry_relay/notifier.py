"""User-visible status notifications."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, List, Optional

import structlog

logger = structlog.get_logger(__name__)


class Severity(str, Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    severity: Severity
    channel: str
    message: str
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """Raises notifications on a named channel.

    Every notification is logged; the most recent ``history_size`` are
    kept for inspection.
    """

    def __init__(self, history_size: int = 50) -> None:
        self._history: Deque[Notification] = deque(maxlen=history_size)

    def notify(self, severity: Severity, channel: str, message: str) -> Notification:
        notification = Notification(Severity(severity), channel, message)
        self._history.append(notification)
        log = logger.error if notification.severity is Severity.ERROR else logger.info
        log("notification", channel=channel, severity=notification.severity.value, text=message)
        return notification

    def info(self, channel: str, message: str) -> Notification:
        return self.notify(Severity.INFO, channel, message)

    def error(self, channel: str, message: str) -> Notification:
        return self.notify(Severity.ERROR, channel, message)

    def history(
        self,
        channel: Optional[str] = None,
        severity: Optional[Severity] = None,
    ) -> List[Notification]:
        return [
            n
            for n in self._history
            if (channel is None or n.channel == channel)
            and (severity is None or n.severity is severity)
        ]
