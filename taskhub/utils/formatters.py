"""
Message formatting utilities
"""

from typing import Any, Dict
from taskhub.config.constants import COMMENT_PREVIEW_LENGTH
from taskhub.models.activity import Activity, ActivityType

NOTIFICATION_TITLES = {
    ActivityType.TASK_CREATED: "New Task Created",
    ActivityType.TASK_UPDATED: "Task Updated",
    ActivityType.TASK_DELETED: "Task Deleted",
    ActivityType.TASK_COMPLETED: "Task Completed",
    ActivityType.TASK_REOPENED: "Task Reopened",
    ActivityType.TASK_ASSIGNED: "Task Assigned to You",
    ActivityType.TASK_SHARED: "Task Shared with You",
    ActivityType.TASK_UNSHARED: "Task Access Removed",
    ActivityType.COLLABORATOR_ADDED: "Added as Collaborator",
    ActivityType.COLLABORATOR_REMOVED: "Removed as Collaborator",
    ActivityType.COMMENT_ADDED: "New Comment",
    ActivityType.COMMENT_UPDATED: "Comment Edited",
    ActivityType.COMMENT_DELETED: "Comment Deleted",
    ActivityType.COMMENT_RESOLVED: "Comment Resolved",
    ActivityType.REVIEW_REQUESTED: "Review Requested",
    ActivityType.TASK_APPROVED: "Task Approved",
    ActivityType.TEAM_CREATED: "Team Created",
    ActivityType.TEAM_INVITATION: "Team Invitation",
}


def format_notification_title(activity: Activity) -> str:
    return NOTIFICATION_TITLES.get(activity.type, "New Activity")


def format_notification_message(activity: Activity) -> str:
    """
    Format notification body for an activity

    Args:
        activity: Source activity

    Returns:
        Human-readable message
    """
    data = activity.data
    actor = data.get("author_name") or activity.user_id
    title = data.get("task_title", "")

    messages = {
        ActivityType.TASK_CREATED: f'{actor} created task "{title}"',
        ActivityType.TASK_UPDATED: f'{actor} updated task "{title}"',
        ActivityType.TASK_DELETED: f'{actor} deleted task "{title}"',
        ActivityType.TASK_COMPLETED: f'{actor} completed task "{title}"',
        ActivityType.TASK_REOPENED: f'{actor} reopened task "{title}"',
        ActivityType.TASK_ASSIGNED: f'{actor} assigned you to task "{title}"',
        ActivityType.TASK_SHARED: f'{actor} shared task "{title}" with you',
        ActivityType.TASK_UNSHARED: f'{actor} stopped sharing task "{title}" with you',
        ActivityType.COLLABORATOR_ADDED: f'{actor} added you as a collaborator on "{title}"',
        ActivityType.COLLABORATOR_REMOVED: f'{actor} removed you from "{title}"',
        ActivityType.COMMENT_ADDED: f'{actor} commented on "{title}"',
        ActivityType.COMMENT_UPDATED: f'{actor} edited a comment on "{title}"',
        ActivityType.COMMENT_DELETED: f'{actor} deleted a comment on "{title}"',
        ActivityType.COMMENT_RESOLVED: f'{actor} resolved a comment on "{title}"',
        ActivityType.REVIEW_REQUESTED: f'{actor} asked you to review "{title}"',
        ActivityType.TASK_APPROVED: f'{actor} approved "{title}"',
        ActivityType.TEAM_CREATED: f'{actor} created team "{data.get("team_name", "")}"',
        ActivityType.TEAM_INVITATION: f'{actor} invited you to team "{data.get("team_name", "")}"',
    }
    message = messages.get(activity.type, "New activity occurred")

    preview = data.get("comment_preview")
    if preview and activity.type == ActivityType.COMMENT_ADDED:
        message += f": {preview}"

    return message


def format_comment_preview(content: str, length: int = COMMENT_PREVIEW_LENGTH) -> str:
    content = content.strip()
    if len(content) <= length:
        return content
    return content[:length].rstrip() + "..."


def format_task_deleted(title: str) -> str:
    return f'Task "{title}" deleted'


def format_stats_summary(stats: Dict[str, Any]) -> str:
    """One-line summary of task statistics"""
    return (
        f"{stats.get('total', 0)} tasks: {stats.get('completed', 0)} completed, "
        f"{stats.get('pending', 0)} pending, {stats.get('overdue', 0)} overdue "
        f"({stats.get('completion_rate', 0)}% done)"
    )
