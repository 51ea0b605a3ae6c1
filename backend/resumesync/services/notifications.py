"""
Notification port: the core emits events, the presentation layer decides how to show them.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from resumesync.models.enums import NotificationKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationEvent:
    kind: NotificationKind
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


class NotificationBus:
    """Synchronous fan-out to subscribers."""

    def __init__(self):
        self._subscribers: List[Callable[[NotificationEvent], None]] = []

    def subscribe(self, callback: Callable[[NotificationEvent], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, kind: NotificationKind, message: str, **data) -> NotificationEvent:
        event = NotificationEvent(kind=kind, message=message, data=data)
        logger.info("Notification", extra={"kind": kind.value, **data})
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Notification subscriber failed", extra={"kind": kind.value})
        return event
