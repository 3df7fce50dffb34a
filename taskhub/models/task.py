"""
Task model
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from taskhub.config.constants import (
    MAX_COMMENTS_PER_TASK,
    NOTE_ID_PREFIX,
    TASK_DESCRIPTION_MAX_LENGTH,
    TASK_TITLE_MAX_LENGTH,
)
from taskhub.models.comment import Comment
from taskhub.utils.date_utils import generate_id, get_current_datetime, parse_datetime
from taskhub.utils.error_handler import NotFoundError, PermissionDeniedError, ValidationError


class TaskStatus(str, Enum):
    """Task status"""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Task priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskCategory(str, Enum):
    """Task category"""
    WORK = "work"
    PERSONAL = "personal"
    SHOPPING = "shopping"
    HEALTH = "health"
    FINANCE = "finance"
    EDUCATION = "education"
    TESTING = "testing"
    OTHER = "other"


class TaskVisibility(str, Enum):
    """Who can see a task besides its participants"""
    PRIVATE = "private"
    TEAM = "team"
    PUBLIC = "public"


class WorkflowStage(str, Enum):
    """Team workflow stage"""
    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    TESTING = "testing"
    DONE = "done"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class TaskPermission(_CamelModel):
    """Per-user permission entry"""
    can_view: bool = True
    can_edit: bool = False
    can_comment: bool = True
    can_share: bool = False
    role: Optional[str] = None
    shared_by: Optional[str] = None
    granted_at: datetime = Field(default_factory=get_current_datetime)


class ShareRecord(_CamelModel):
    user_id: str
    shared_by: Optional[str] = None
    shared_at: datetime = Field(default_factory=get_current_datetime)


class AssignmentRecord(_CamelModel):
    user_id: str
    assigned_by: Optional[str] = None
    previous_assignee: Optional[str] = None
    assigned_at: datetime = Field(default_factory=get_current_datetime)


class Approval(_CamelModel):
    user_id: str
    comment: str = ""
    approved_at: datetime = Field(default_factory=get_current_datetime)


class CollaborationMetrics(_CamelModel):
    total_collaborators: int = 0
    total_comments: int = 0
    total_shares: int = 0
    total_assignments: int = 0


class TaskNote(_CamelModel):
    """Private working note kept on a task"""
    id: str = Field(default_factory=lambda: generate_id(NOTE_ID_PREFIX))
    content: str
    author_id: Optional[str] = None
    created_at: datetime = Field(default_factory=get_current_datetime)


def _unique_ids(values: List[str]) -> List[str]:
    """Drop blanks and duplicates, keep first-seen order"""
    result: List[str] = []
    for value in values:
        if isinstance(value, str) and value.strip() and value not in result:
            result.append(value)
    return result


def _clean_tag(tag: Any) -> str:
    if not isinstance(tag, str) or not tag.strip():
        raise ValueError("Tag must be a non-empty string")
    return tag.strip().lower()


def _clean_title(value: str) -> str:
    value = value.strip()
    if len(value) > TASK_TITLE_MAX_LENGTH:
        raise ValueError(f"Task title must be no more than {TASK_TITLE_MAX_LENGTH} characters")
    return value


def _clean_description(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError("Task description must be a string")
    value = value.strip()
    if len(value) > TASK_DESCRIPTION_MAX_LENGTH:
        raise ValueError(
            f"Task description must be no more than {TASK_DESCRIPTION_MAX_LENGTH} characters"
        )
    return value


def _clean_hours(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValueError("Hours must be a positive number")
    return value


def _coerce_enum(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")


class Task(_CamelModel):
    """
    Task with ownership, sharing and comment threads

    Mutating methods keep updated_at and last_activity_at current. The
    repository persists the result; methods never touch storage.
    """

    id: Optional[str] = None
    title: str
    description: str = ""
    owner_id: str
    assignee_id: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    category: TaskCategory = TaskCategory.OTHER
    tags: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    notes: List[TaskNote] = Field(default_factory=list)

    # Collaboration
    comments: List[Comment] = Field(default_factory=list)
    collaborators: List[str] = Field(default_factory=list)
    shared_with: List[str] = Field(default_factory=list)
    watchers: List[str] = Field(default_factory=list)
    permissions: Dict[str, TaskPermission] = Field(default_factory=dict)
    visibility: TaskVisibility = TaskVisibility.PRIVATE

    # Workflow
    workflow_stage: WorkflowStage = WorkflowStage.BACKLOG
    reviewers: List[str] = Field(default_factory=list)
    approvals: List[Approval] = Field(default_factory=list)
    blocked_by: List[str] = Field(default_factory=list)
    blocking: List[str] = Field(default_factory=list)

    # History
    share_history: List[ShareRecord] = Field(default_factory=list)
    assignment_history: List[AssignmentRecord] = Field(default_factory=list)
    collaboration_metrics: CollaborationMetrics = Field(default_factory=CollaborationMetrics)

    version: int = 0
    created_at: datetime = Field(default_factory=get_current_datetime)
    updated_at: datetime = Field(default_factory=get_current_datetime)
    last_activity_at: datetime = Field(default_factory=get_current_datetime)
    last_comment_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _check_required(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValueError("Task title is required")

        owner = data.get("owner_id", data.get("ownerId"))
        if not isinstance(owner, str) or not owner.strip():
            raise ValueError("User ID is required")

        # Owner watches new tasks
        if "watchers" not in data:
            data = {**data, "watchers": [owner]}
        return data

    @field_validator("title")
    @classmethod
    def _validate_title(cls, value: str) -> str:
        return _clean_title(value)

    @field_validator("description", mode="before")
    @classmethod
    def _validate_description(cls, value: Any) -> str:
        return _clean_description(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _validate_tags(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple, set)):
            raise ValueError("Tags must be a list")
        tags: List[str] = []
        for tag in value:
            cleaned = _clean_tag(tag)
            if cleaned not in tags:
                tags.append(cleaned)
        return tags

    @field_validator("estimated_hours", "actual_hours", mode="before")
    @classmethod
    def _validate_hours(cls, value: Any) -> Optional[float]:
        return None if value is None else _clean_hours(value)

    @field_validator("due_date", "completed_at", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)

    @field_validator("collaborators", "shared_with", "watchers", "reviewers", "blocked_by", "blocking")
    @classmethod
    def _validate_id_lists(cls, value: List[str]) -> List[str]:
        return _unique_ids(value)

    @model_validator(mode="after")
    def _check_completion(self) -> "Task":
        self._sync_completion()
        return self

    def _sync_completion(self) -> None:
        if self.status == TaskStatus.COMPLETED and self.completed_at is None:
            self.completed_at = get_current_datetime()
        elif self.status != TaskStatus.COMPLETED:
            self.completed_at = None

    # Derived properties

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def is_overdue(self) -> bool:
        if self.due_date is None or self.is_completed:
            return False
        return self.due_date < get_current_datetime()

    @property
    def days_until_due(self) -> Optional[int]:
        """Whole days from today (UTC) to the due date; negative once past"""
        if self.due_date is None:
            return None
        return (self.due_date.date() - get_current_datetime().date()).days

    @property
    def progress(self) -> int:
        """Percent of estimated hours spent, capped at 100; completed tasks are 100"""
        if self.is_completed:
            return 100
        if not self.estimated_hours:
            return 0
        return min(100, round((self.actual_hours or 0) / self.estimated_hours * 100))

    @property
    def is_shared(self) -> bool:
        return self.visibility != TaskVisibility.PRIVATE or bool(self.shared_with)

    @property
    def is_blocked(self) -> bool:
        return bool(self.blocked_by)

    @property
    def has_approvals(self) -> bool:
        return bool(self.approvals)

    @property
    def needs_review(self) -> bool:
        return bool(self.reviewers) and not self.approvals

    @property
    def comment_count(self) -> int:
        return len(self.comments)

    @property
    def total_collaborators(self) -> int:
        users = {self.owner_id, *self.collaborators, *self.shared_with, *self.watchers}
        if self.assignee_id:
            users.add(self.assignee_id)
        return len(users)

    def touch(self) -> None:
        now = get_current_datetime()
        self.updated_at = now
        self.last_activity_at = now

    # Field setters

    def set_title(self, title: str) -> None:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Task title cannot be empty")
        try:
            self.title = _clean_title(title)
        except ValueError as e:
            raise ValidationError(str(e))
        self.touch()

    def set_description(self, description: Optional[str]) -> None:
        try:
            self.description = _clean_description(description)
        except ValueError as e:
            raise ValidationError(str(e))
        self.touch()

    def set_priority(self, priority: str) -> None:
        self.priority = _coerce_enum(TaskPriority, priority, "priority")
        self.touch()

    def set_status(self, status: str) -> None:
        self.status = _coerce_enum(TaskStatus, status, "status")
        self._sync_completion()
        self.touch()

    def set_category(self, category: str) -> None:
        self.category = _coerce_enum(TaskCategory, category, "category")
        self.touch()

    def set_due_date(self, due_date: Any) -> None:
        try:
            self.due_date = parse_datetime(due_date)
        except ValueError as e:
            raise ValidationError(str(e))
        self.touch()

    def mark_completed(self) -> None:
        self.status = TaskStatus.COMPLETED
        self.completed_at = get_current_datetime()
        self.touch()

    def mark_pending(self) -> None:
        self.status = TaskStatus.PENDING
        self.completed_at = None
        self.touch()

    def toggle_status(self) -> TaskStatus:
        """Completed goes back to pending, anything else completes"""
        if self.is_completed:
            self.mark_pending()
        else:
            self.mark_completed()
        return self.status

    def add_tag(self, tag: str) -> None:
        try:
            cleaned = _clean_tag(tag)
        except ValueError as e:
            raise ValidationError(str(e))
        if cleaned not in self.tags:
            self.tags.append(cleaned)
            self.touch()

    def remove_tag(self, tag: str) -> None:
        cleaned = tag.strip().lower() if isinstance(tag, str) else tag
        if cleaned in self.tags:
            self.tags.remove(cleaned)
            self.touch()

    # Time tracking

    def set_estimated_hours(self, hours: Optional[float]) -> None:
        self.estimated_hours = self._hours(hours)
        self.touch()

    def set_actual_hours(self, hours: Optional[float]) -> None:
        self.actual_hours = self._hours(hours)
        self.touch()

    def add_time_spent(self, hours: float) -> float:
        """Add hours to actual_hours and return the new total"""
        if hours is None:
            raise ValidationError("Hours must be a positive number")
        self.actual_hours = (self.actual_hours or 0) + self._hours(hours)
        self.touch()
        return self.actual_hours

    @staticmethod
    def _hours(hours: Any) -> Optional[float]:
        if hours is None:
            return None
        try:
            return _clean_hours(hours)
        except ValueError as e:
            raise ValidationError(str(e))

    # Notes

    def add_note(self, content: str, author_id: Optional[str] = None) -> TaskNote:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Note must be a non-empty string")
        note = TaskNote(content=content.strip(), author_id=author_id)
        self.notes.append(note)
        self.touch()
        return note

    def remove_note(self, note_id: str) -> bool:
        for note in self.notes:
            if note.id == note_id:
                self.notes.remove(note)
                self.touch()
                return True
        return False

    # Permission checks

    def _permission(self, user_id: str) -> Optional[TaskPermission]:
        return self.permissions.get(user_id)

    def can_access(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        if user_id in (self.owner_id, self.assignee_id):
            return True
        if user_id in self.collaborators or user_id in self.shared_with or user_id in self.reviewers:
            return True
        permission = self._permission(user_id)
        if permission is not None and permission.can_view:
            return True
        # Team visibility is not scoped to a team here
        return self.visibility in (TaskVisibility.PUBLIC, TaskVisibility.TEAM)

    def can_edit(self, user_id: Optional[str]) -> bool:
        if not self.can_access(user_id):
            return False
        if user_id in (self.owner_id, self.assignee_id):
            return True
        permission = self._permission(user_id)
        return permission is not None and permission.can_edit

    def can_delete(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in (self.owner_id, self.assignee_id)

    def can_comment(self, user_id: Optional[str]) -> bool:
        if not self.can_access(user_id):
            return False
        permission = self._permission(user_id)
        return permission is None or permission.can_comment

    def can_share(self, user_id: Optional[str]) -> bool:
        if not self.can_access(user_id):
            return False
        if user_id == self.owner_id:
            return True
        permission = self._permission(user_id)
        return permission is not None and permission.can_share

    # Sharing

    def share_with(
        self,
        user_id: str,
        can_edit: bool = False,
        can_comment: bool = True,
        can_share: bool = False,
        shared_by: Optional[str] = None,
    ) -> bool:
        """
        Share task with a user

        Returns:
            True if the user was newly added, False if already shared
        """
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("Valid user ID is required for sharing")
        if user_id == self.owner_id:
            raise ValidationError("Cannot share task with creator")
        if user_id in self.shared_with:
            return False

        self.shared_with.append(user_id)
        self.permissions[user_id] = TaskPermission(
            can_edit=can_edit,
            can_comment=can_comment,
            can_share=can_share,
            shared_by=shared_by,
        )
        self.share_history.append(ShareRecord(user_id=user_id, shared_by=shared_by))
        self.collaboration_metrics.total_shares += 1
        self.touch()
        return True

    def unshare_with(self, user_id: str) -> bool:
        if user_id not in self.shared_with:
            return False
        self.shared_with.remove(user_id)
        self.permissions.pop(user_id, None)
        self.touch()
        return True

    def set_visibility(self, visibility: str) -> None:
        self.visibility = _coerce_enum(TaskVisibility, visibility, "visibility")
        self.touch()

    def add_collaborator(self, user_id: str, role: str = "contributor") -> bool:
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("Valid user ID is required")
        if user_id in self.collaborators:
            return False

        self.collaborators.append(user_id)
        self.permissions[user_id] = TaskPermission(
            can_edit=role in ("editor", "owner"),
            can_share=role == "owner",
            role=role,
        )
        self.collaboration_metrics.total_collaborators += 1
        self.touch()
        return True

    def remove_collaborator(self, user_id: str) -> bool:
        if user_id not in self.collaborators:
            return False
        self.collaborators.remove(user_id)
        self.permissions.pop(user_id, None)
        self.touch()
        return True

    def assign_to(self, user_id: str, assigned_by: Optional[str] = None) -> None:
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("Valid user ID is required")

        self.assignment_history.append(
            AssignmentRecord(user_id=user_id, assigned_by=assigned_by, previous_assignee=self.assignee_id)
        )
        self.assignee_id = user_id
        self.collaboration_metrics.total_assignments += 1
        if user_id not in self.watchers:
            self.watchers.append(user_id)
        self.touch()

    # Comments

    def find_comment(self, comment_id: str) -> Comment:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        raise NotFoundError("Comment not found")

    def add_comment(
        self,
        content: str,
        author_id: str,
        parent_id: Optional[str] = None,
        mentions: Optional[List[str]] = None,
    ) -> Comment:
        """
        Append a comment

        Args:
            content: Comment text
            author_id: Author user id
            parent_id: Parent comment id for replies
            mentions: Resolved user ids; extracted handles are used when omitted

        Returns:
            Created comment
        """
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Comment content is required")
        if not self.can_comment(author_id):
            raise PermissionDeniedError("User does not have permission to comment")
        if len(self.comments) >= MAX_COMMENTS_PER_TASK:
            raise ValidationError("Maximum number of comments reached")
        if parent_id is not None:
            self.find_comment(parent_id)

        comment = Comment.create(content, author_id, parent_id=parent_id, mentions=mentions)
        self.comments.append(comment)
        self.last_comment_at = comment.created_at

        for user_id in comment.mentions:
            if user_id not in self.watchers:
                self.watchers.append(user_id)

        self.collaboration_metrics.total_comments += 1
        self.touch()
        return comment

    def update_comment(
        self,
        comment_id: str,
        content: str,
        user_id: str,
        mentions: Optional[List[str]] = None,
    ) -> Comment:
        comment = self.find_comment(comment_id)
        if comment.author_id != user_id:
            raise PermissionDeniedError("Only comment author can edit comment")
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Comment content is required")

        comment.edit(content, mentions=mentions)
        for mentioned in comment.mentions:
            if mentioned not in self.watchers:
                self.watchers.append(mentioned)
        self.touch()
        return comment

    def delete_comment(self, comment_id: str, user_id: str, force: bool = False) -> Comment:
        comment = self.find_comment(comment_id)
        if not force and user_id not in (comment.author_id, self.owner_id):
            raise PermissionDeniedError("Only comment author or task creator can delete comment")

        self.comments.remove(comment)
        self.touch()
        return comment

    def resolve_comment(self, comment_id: str, user_id: str, force: bool = False) -> Comment:
        comment = self.find_comment(comment_id)
        if not force and not self.can_edit(user_id):
            raise PermissionDeniedError("User does not have permission to resolve comments")

        comment.resolve()
        self.touch()
        return comment

    # Watchers

    def add_watcher(self, user_id: str) -> bool:
        if user_id in self.watchers:
            return False
        self.watchers.append(user_id)
        self.touch()
        return True

    def remove_watcher(self, user_id: str) -> bool:
        if user_id not in self.watchers:
            return False
        self.watchers.remove(user_id)
        self.touch()
        return True

    # Workflow

    def set_workflow_stage(self, stage: str) -> None:
        self.workflow_stage = _coerce_enum(WorkflowStage, stage, "workflow stage")
        self.touch()

    def add_reviewer(self, user_id: str) -> bool:
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("Valid user ID is required")
        if user_id in self.reviewers:
            return False
        self.reviewers.append(user_id)
        if user_id not in self.watchers:
            self.watchers.append(user_id)
        self.touch()
        return True

    def approve(self, user_id: str, comment: str = "") -> Approval:
        if user_id not in self.reviewers:
            raise PermissionDeniedError("User is not a reviewer for this task")
        approval = Approval(user_id=user_id, comment=comment or "")
        self.approvals.append(approval)
        self.touch()
        return approval

    # Dependencies (blocked_by holds the tasks this one depends on)

    def add_dependency(self, task_id: str) -> bool:
        """
        Depend on another task

        Returns:
            True if added, False if the dependency already existed
        """
        if not isinstance(task_id, str) or not task_id.strip():
            raise ValidationError("Valid task ID is required")
        if task_id == self.id:
            raise ValidationError("Task cannot depend on itself")
        if task_id in self.blocked_by:
            return False
        self.blocked_by.append(task_id)
        self.touch()
        return True

    def remove_dependency(self, task_id: str) -> bool:
        if task_id not in self.blocked_by:
            return False
        self.blocked_by.remove(task_id)
        self.touch()
        return True

    def has_dependency(self, task_id: str) -> bool:
        return task_id in self.blocked_by

    def add_blocked_task(self, task_id: str) -> None:
        if task_id not in self.blocking:
            self.blocking.append(task_id)
            self.touch()

    def remove_blocked_task(self, task_id: str) -> None:
        if task_id in self.blocking:
            self.blocking.remove(task_id)
            self.touch()


class TaskCreate(_CamelModel):
    """Task creation payload"""

    title: Optional[str] = None
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    priority: Optional[TaskPriority] = None
    category: Optional[TaskCategory] = None
    tags: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    visibility: Optional[TaskVisibility] = None
    estimated_hours: Optional[float] = None
    id: Optional[str] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def _parse_due_date(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)


class TaskUpdate(_CamelModel):
    """Task update payload; only explicitly set fields are applied"""

    title: Optional[str] = None
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category: Optional[TaskCategory] = None
    tags: Optional[List[str]] = None
    due_date: Optional[datetime] = None
    visibility: Optional[TaskVisibility] = None
    workflow_stage: Optional[WorkflowStage] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def _parse_due_date(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)
