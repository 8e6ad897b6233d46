"""Notification sink for workflow events.

Fire-and-forget: the service calls :func:`notify_safely`, which logs and drops
any failure so a broken sink never blocks a committed transition.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    recipient_id: str
    document_id: str
    kind: str
    message: str
    data: Dict[str, object] = field(default_factory=dict)


class NotificationSink(Protocol):
    def send(self, notification: Notification) -> None:
        ...


class LoggingNotificationSink:
    """Default sink: writes notifications to the application log."""

    def send(self, notification: Notification) -> None:
        logger.info("notify %s [%s] doc=%s: %s", notification.recipient_id, notification.kind,
                    notification.document_id, notification.message)


class RecordingNotificationSink:
    """Keeps every notification in memory (inbox views, tests)."""

    def __init__(self) -> None:
        self.sent: List[Notification] = []

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)

    def for_recipient(self, recipient_id: str) -> List[Notification]:
        return [n for n in self.sent if n.recipient_id == recipient_id]


def notify_safely(sink: Optional[NotificationSink], notification: Notification) -> bool:
    if sink is None:
        return False
    try:
        sink.send(notification)
        return True
    except Exception:
        logger.exception("Notification %s for %s failed; transition unaffected",
                         notification.kind, notification.document_id)
        return False
