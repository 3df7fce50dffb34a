"""
Activity feed service
"""

from typing import Any, Dict, Iterable, List, Optional
from taskhub.config.settings import settings
from taskhub.config.constants import DEFAULT_ACTIVITY_LIMIT, DEFAULT_TEAM_ACTIVITY_LIMIT
from taskhub.models.activity import Activity, ActivityType
from taskhub.services.event_bus import EventBus, EventType
from taskhub.utils.logger import logger


class ActivityFeed:
    """Capped in-memory log of user actions, newest first"""

    def __init__(self, event_bus: Optional[EventBus] = None, max_activities: Optional[int] = None):
        """
        Initialize activity feed

        Args:
            event_bus: Bus receiving ACTIVITY_RECORDED for each new entry
            max_activities: Cap on kept entries (defaults to settings)
        """
        self.event_bus = event_bus
        self.max_activities = max_activities or settings.MAX_ACTIVITIES
        self.logger = logger
        self._activities: List[Activity] = []

    async def add_activity(
        self,
        activity_type: ActivityType,
        user_id: str,
        data: Optional[Dict[str, Any]] = None,
        target_id: Optional[str] = None,
        mentions: Optional[Iterable[str]] = None,
        assignees: Optional[Iterable[str]] = None,
        recipients: Optional[Iterable[str]] = None,
        notify: bool = True,
    ) -> Activity:
        """
        Record activity and publish it

        Args:
            activity_type: Kind of action
            user_id: Acting user
            data: Extra details (task title, actor name, ...)
            target_id: Task or team the action targeted
            mentions: Mentioned user ids
            assignees: Assigned user ids
            recipients: Users that should hear about the action
            notify: False records the action without notifying anyone

        Returns:
            Recorded activity
        """
        activity = Activity(
            type=activity_type,
            user_id=user_id,
            target_id=target_id,
            data=data or {},
            mentions=list(mentions or []),
            assignees=list(assignees or []),
            recipients=list(recipients or []),
            notify=notify,
        )

        self._activities.insert(0, activity)
        if len(self._activities) > self.max_activities:
            del self._activities[self.max_activities:]

        self.logger.debug(f"[ActivityFeed] {activity.type.value} by {user_id} on {target_id}")

        if self.event_bus is not None:
            await self.event_bus.publish(EventType.ACTIVITY_RECORDED, {"activity": activity})

        return activity

    def get_activity(self, activity_id: str) -> Optional[Activity]:
        return next((a for a in self._activities if a.id == activity_id), None)

    def get_activities_for_user(
        self,
        user_id: str,
        limit: int = DEFAULT_ACTIVITY_LIMIT,
        offset: int = 0,
    ) -> List[Activity]:
        """Activities the user performed, was mentioned in, assigned to or addressed by"""
        relevant = [a for a in self._activities if a.involves(user_id)]
        return relevant[offset:offset + limit]

    def get_team_activities(
        self,
        limit: int = DEFAULT_TEAM_ACTIVITY_LIMIT,
        offset: int = 0,
        member_ids: Optional[Iterable[str]] = None,
    ) -> List[Activity]:
        """
        Feed for a team view

        Args:
            limit: Page size
            offset: Entries to skip
            member_ids: Only keep activities performed by these users

        Returns:
            Activities, newest first
        """
        activities = self._activities
        if member_ids is not None:
            members = set(member_ids)
            activities = [a for a in activities if a.user_id in members]
        return activities[offset:offset + limit]

    def get_activities_for_target(self, target_id: str) -> List[Activity]:
        return [a for a in self._activities if a.target_id == target_id]

    def mark_as_read(self, activity_id: str, user_id: str) -> bool:
        activity = self.get_activity(activity_id)
        if activity is None:
            return False
        if user_id not in activity.read_by:
            activity.read_by.append(user_id)
        return True

    def clear(self) -> None:
        self._activities.clear()

    def __len__(self) -> int:
        return len(self._activities)
