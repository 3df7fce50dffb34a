"""
Activity and notification models
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from taskhub.config.constants import ACTIVITY_ID_PREFIX, NOTIFICATION_ID_PREFIX
from taskhub.utils.date_utils import generate_id, get_current_datetime


class ActivityType(str, Enum):
    """Kinds of recorded user actions"""
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    TASK_COMPLETED = "task_completed"
    TASK_REOPENED = "task_reopened"
    TASK_ASSIGNED = "task_assigned"
    TASK_SHARED = "task_shared"
    TASK_UNSHARED = "task_unshared"
    COLLABORATOR_ADDED = "collaborator_added"
    COLLABORATOR_REMOVED = "collaborator_removed"
    COMMENT_ADDED = "comment_added"
    COMMENT_UPDATED = "comment_updated"
    COMMENT_DELETED = "comment_deleted"
    COMMENT_RESOLVED = "comment_resolved"
    REVIEW_REQUESTED = "review_requested"
    TASK_APPROVED = "task_approved"
    TEAM_CREATED = "team_created"
    TEAM_INVITATION = "team_invitation"


class Activity(BaseModel):
    """
    Feed entry

    mentions, assignees and recipients drive both the per-user feed filter
    and notification fan-out.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = Field(default_factory=lambda: generate_id(ACTIVITY_ID_PREFIX))
    type: ActivityType
    user_id: str
    target_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    mentions: List[str] = Field(default_factory=list)
    assignees: List[str] = Field(default_factory=list)
    recipients: List[str] = Field(default_factory=list)
    notify: bool = True
    read_by: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=get_current_datetime)

    def involves(self, user_id: str) -> bool:
        return (
            self.user_id == user_id
            or user_id in self.mentions
            or user_id in self.assignees
            or user_id in self.recipients
        )

    def is_read_by(self, user_id: str) -> bool:
        return user_id in self.read_by


class Notification(BaseModel):
    """Per-user notification derived from an activity"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = Field(default_factory=lambda: generate_id(NOTIFICATION_ID_PREFIX))
    user_id: str
    activity_id: str
    type: ActivityType
    title: str
    message: str
    is_read: bool = False
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=get_current_datetime)
