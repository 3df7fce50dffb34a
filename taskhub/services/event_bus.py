"""
Typed in-process event bus
"""

import inspect
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from taskhub.utils.date_utils import get_current_datetime
from taskhub.utils.logger import logger


class EventType(str, Enum):
    """Events published by controllers and the collaboration subsystem"""
    TASK_CREATED = "task.created"
    TASK_UPDATED = "task.updated"
    TASK_DELETED = "task.deleted"
    TASK_STATUS_CHANGED = "task.status_changed"
    TASK_ASSIGNED = "task.assigned"
    TASK_SHARED = "task.shared"
    TASK_UNSHARED = "task.unshared"
    DEPENDENCY_ADDED = "dependency.added"
    DEPENDENCY_REMOVED = "dependency.removed"
    REVIEW_REQUESTED = "review.requested"
    TASK_APPROVED = "task.approved"
    COLLABORATOR_ADDED = "collaborator.added"
    COLLABORATOR_REMOVED = "collaborator.removed"
    WATCHER_ADDED = "watcher.added"
    WATCHER_REMOVED = "watcher.removed"
    COMMENT_ADDED = "comment.added"
    COMMENT_UPDATED = "comment.updated"
    COMMENT_DELETED = "comment.deleted"
    COMMENT_RESOLVED = "comment.resolved"
    REACTION_ADDED = "reaction.added"
    REACTION_REMOVED = "reaction.removed"
    TEAM_CREATED = "team.created"
    TEAM_MEMBER_INVITED = "team.member_invited"
    ACTIVITY_RECORDED = "activity.recorded"
    NOTIFICATION_CREATED = "notification.created"


@dataclass
class Event:
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=get_current_datetime)


Handler = Callable[[Event], Union[None, Awaitable[None]]]


class EventBus:
    """
    Publish/subscribe dispatcher

    Handlers for an event type run in subscription order. A failing handler
    is logged and skipped; the remaining handlers still run and publish()
    never raises on their behalf. Coroutine handlers are awaited in turn.
    """

    def __init__(self):
        self.logger = logger
        self._handlers: Dict[Optional[EventType], List[Handler]] = {}

    def subscribe(self, event_type: Optional[EventType], handler: Handler) -> Callable[[], None]:
        """
        Register handler

        Args:
            event_type: Event type to receive, or None for every event
            handler: Sync or async callable taking the Event

        Returns:
            Callable that removes this subscription
        """
        self._handlers.setdefault(event_type, []).append(handler)
        self.logger.debug(f"[EventBus] Subscribed {getattr(handler, '__name__', handler)} to {event_type}")

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        return len(self._handlers.get(event_type, []))

    async def publish(self, event_type: EventType, payload: Optional[Dict[str, Any]] = None) -> Event:
        """
        Deliver event to subscribers of its type, then to catch-all subscribers

        Returns:
            Published event
        """
        event = Event(type=event_type, payload=payload or {})
        handlers = list(self._handlers.get(event_type, [])) + list(self._handlers.get(None, []))

        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(
                    f"[EventBus] Handler {getattr(handler, '__name__', handler)} failed for {event_type.value}: {e}",
                    exc_info=True,
                )

        return event
