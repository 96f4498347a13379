"""
Outbound notification events.

The controller never renders feedback itself; it emits a Notification (kind,
message, payload) and the UI layer decides how to show and dismiss it.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from nirapod_map.logging_config import get_logger

logger = get_logger(__name__)


class NotificationKind(str, Enum):
    GUIDANCE = "guidance"            # phase-specific instruction text
    REJECTED = "rejected"            # ValidationError surfaced to the user
    ROUTE_READY = "route_ready"
    ROUTE_FAILED = "route_failed"
    FEED_ERROR = "feed_error"
    SEARCH_ERROR = "search_error"
    CENTER_MAP = "center_map"        # command: re-center the map view
    REPORT_SUBMITTED = "report_submitted"
    REPORT_FAILED = "report_failed"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.kind in (
            NotificationKind.REJECTED,
            NotificationKind.ROUTE_FAILED,
            NotificationKind.FEED_ERROR,
            NotificationKind.SEARCH_ERROR,
            NotificationKind.REPORT_FAILED,
        )


Listener = Callable[[Notification], None]


class NotificationChannel:
    """Fan-out of notifications to subscribed listeners."""

    def __init__(self, keep_history: bool = True):
        self._listeners: List[Listener] = []
        self.keep_history = keep_history
        self.history: List[Notification] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(
        self,
        kind: NotificationKind,
        message: str = "",
        payload: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(kind=kind, message=message, payload=payload or {})
        if notification.is_error:
            logger.info(f"notify {kind.value}: {message}")
        else:
            logger.debug(f"notify {kind.value}: {message}")
        if self.keep_history:
            self.history.append(notification)
        for listener in list(self._listeners):
            listener(notification)
        return notification

    def of_kind(self, kind: NotificationKind) -> List[Notification]:
        return [n for n in self.history if n.kind == kind]

    def clear(self) -> None:
        self.history.clear()
