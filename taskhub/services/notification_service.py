"""
Notification service
"""

from typing import Any, Dict, List, Optional, Set
from taskhub.config.settings import settings
from taskhub.config.constants import DEFAULT_NOTIFICATION_LIMIT
from taskhub.models.activity import Activity, ActivityType, Notification
from taskhub.services.event_bus import Event, EventBus, EventType
from taskhub.services.user_repository import UserRepository
from taskhub.utils.formatters import format_notification_message, format_notification_title
from taskhub.utils.logger import logger

# Activity type -> User.notification_settings key
SETTING_BY_ACTIVITY = {
    ActivityType.TASK_ASSIGNED: "task_assigned",
    ActivityType.TASK_COMPLETED: "task_completed",
    ActivityType.TASK_SHARED: "task_shared",
    ActivityType.COMMENT_ADDED: "task_commented",
    ActivityType.REVIEW_REQUESTED: "review_requested",
    ActivityType.TEAM_INVITATION: "team_invitation",
}


class RecipientResolver:
    """Decides who hears about an activity"""

    def resolve(self, activity: Activity) -> Set[str]:
        """
        Resolve recipients

        Explicit recipients, mentioned users, assignees and, for task
        activities, the task owner. The acting user is never included.

        Args:
            activity: Activity to fan out

        Returns:
            Set of user ids
        """
        if not activity.notify:
            return set()

        recipients: Set[str] = set(activity.recipients)
        recipients.update(activity.mentions)
        recipients.update(activity.assignees)

        owner_id = activity.data.get("task_owner_id")
        if owner_id and activity.type.value.startswith("task_"):
            recipients.add(owner_id)

        recipients.discard(activity.user_id)
        recipients.discard("")
        return recipients


class NotificationService:
    """Per-user notification inboxes fed from the activity feed"""

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        user_repository: Optional[UserRepository] = None,
        resolver: Optional[RecipientResolver] = None,
        max_per_user: Optional[int] = None,
        enabled: Optional[bool] = None,
        real_time: Optional[bool] = None,
    ):
        """
        Initialize notification service

        Args:
            event_bus: Bus to receive ACTIVITY_RECORDED from and publish
                NOTIFICATION_CREATED to
            user_repository: Used to honor per-user notification settings
            resolver: Recipient resolver
            max_per_user: Inbox cap per user (defaults to settings)
            enabled: Master switch (defaults to settings)
            real_time: Publish NOTIFICATION_CREATED events (defaults to settings)
        """
        self.event_bus = event_bus
        self.user_repository = user_repository
        self.resolver = resolver or RecipientResolver()
        self.max_per_user = max_per_user or settings.MAX_NOTIFICATIONS_PER_USER
        self.enabled = settings.ENABLE_NOTIFICATIONS if enabled is None else enabled
        self.real_time = settings.ENABLE_REAL_TIME_UPDATES if real_time is None else real_time
        self.logger = logger
        self._notifications: Dict[str, List[Notification]] = {}
        self._preferences: Dict[str, Dict[str, Any]] = {}
        self._unsubscribe = None

        if event_bus is not None:
            self._unsubscribe = event_bus.subscribe(EventType.ACTIVITY_RECORDED, self._on_activity)

    async def _on_activity(self, event: Event) -> None:
        await self.process_activity(event.payload["activity"])

    def close(self) -> None:
        """Stop listening to the event bus"""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def process_activity(self, activity: Activity) -> List[Notification]:
        """
        Fan an activity out to its recipients

        Returns:
            Notifications created
        """
        if not self.enabled:
            return []

        created = []
        for user_id in sorted(self.resolver.resolve(activity)):
            notification = await self.create_notification(user_id, activity)
            if notification is not None:
                created.append(notification)

        if created:
            self.logger.debug(
                f"[NotificationService] {activity.type.value}: notified {len(created)} user(s)"
            )
        return created

    async def _wants(self, user_id: str, activity: Activity) -> bool:
        if not self._preferences.get(user_id, {}).get("notifications", True):
            return False

        if self.user_repository is None:
            return True

        user = await self.user_repository.find_by_id(user_id)
        if user is None:
            return True

        if user_id in activity.mentions and not user.get_notification_setting("mention_received"):
            return False
        setting = SETTING_BY_ACTIVITY.get(activity.type)
        return setting is None or user.get_notification_setting(setting)

    async def create_notification(self, user_id: str, activity: Activity) -> Optional[Notification]:
        """
        Create notification unless the user opted out

        Returns:
            Notification or None when suppressed
        """
        if not await self._wants(user_id, activity):
            self.logger.debug(f"[NotificationService] {user_id} opted out of {activity.type.value}")
            return None

        notification = Notification(
            user_id=user_id,
            activity_id=activity.id,
            type=activity.type,
            title=format_notification_title(activity),
            message=format_notification_message(activity),
            data=dict(activity.data),
        )

        inbox = self._notifications.setdefault(user_id, [])
        inbox.insert(0, notification)
        if len(inbox) > self.max_per_user:
            del inbox[self.max_per_user:]

        if self.real_time and self.event_bus is not None:
            await self.event_bus.publish(
                EventType.NOTIFICATION_CREATED,
                {"user_id": user_id, "notification": notification},
            )

        return notification

    def get_notifications(
        self,
        user_id: str,
        limit: int = DEFAULT_NOTIFICATION_LIMIT,
        offset: int = 0,
        unread_only: bool = False,
    ) -> List[Notification]:
        inbox = self._notifications.get(user_id, [])
        if unread_only:
            inbox = [n for n in inbox if not n.is_read]
        return inbox[offset:offset + limit]

    def get_unread_count(self, user_id: str) -> int:
        return sum(1 for n in self._notifications.get(user_id, []) if not n.is_read)

    def mark_as_read(self, user_id: str, notification_id: str) -> bool:
        for notification in self._notifications.get(user_id, []):
            if notification.id == notification_id:
                notification.is_read = True
                return True
        return False

    def mark_all_as_read(self, user_id: str) -> int:
        """Mark every notification read, returning how many changed"""
        changed = 0
        for notification in self._notifications.get(user_id, []):
            if not notification.is_read:
                notification.is_read = True
                changed += 1
        return changed

    def set_preferences(self, user_id: str, **preferences: Any) -> None:
        self._preferences[user_id] = {**self._preferences.get(user_id, {}), **preferences}

    def get_preferences(self, user_id: str) -> Dict[str, Any]:
        return dict(self._preferences.get(user_id, {"notifications": True}))
