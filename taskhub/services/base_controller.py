"""
Base controller with shared permission and side-effect helpers
"""

from typing import Any, Dict, Iterable, Optional
from taskhub.models.activity import ActivityType
from taskhub.models.context import RequestContext
from taskhub.models.task import Task
from taskhub.models.user import User
from taskhub.services.activity_feed import ActivityFeed
from taskhub.services.event_bus import EventBus, EventType
from taskhub.services.task_repository import TaskRepository
from taskhub.services.user_repository import UserRepository
from taskhub.utils.error_handler import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from taskhub.utils.logger import logger

VIEW_DENIED = "Permission denied: Cannot view this task"
MODIFY_DENIED = "Permission denied: Cannot modify this task"
DELETE_DENIED = "Permission denied: Cannot delete this task"
SHARE_DENIED = "Permission denied: Cannot share this task"


class BaseController:
    """Common plumbing for controllers operating on tasks"""

    def __init__(
        self,
        task_repository: TaskRepository,
        user_repository: Optional[UserRepository] = None,
        event_bus: Optional[EventBus] = None,
        activity_feed: Optional[ActivityFeed] = None,
    ):
        self.tasks = task_repository
        self.users = user_repository
        self.event_bus = event_bus
        self.activity_feed = activity_feed
        self.logger = logger
        self._log_prefix = f"[{type(self).__name__}]"

    # Identity

    def _require_user(self, ctx: Optional[RequestContext]) -> RequestContext:
        if ctx is None or not ctx.user_id:
            raise AuthenticationError()
        return ctx

    async def _load_task(self, task_id: str) -> Task:
        if not isinstance(task_id, str) or not task_id.strip():
            raise ValidationError("Missing required parameters: task_id")
        task = await self.tasks.find_by_id(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def _load_user(self, user_id: str, message: str = "User not found") -> Optional[User]:
        """Load user when a directory is configured; without one any id is accepted"""
        if self.users is None:
            return None
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(message)
        return user

    # Permission checks (admins bypass ownership)

    def _ensure_can_view(self, ctx: RequestContext, task: Task) -> None:
        if not (ctx.is_admin or task.can_access(ctx.user_id)):
            raise PermissionDeniedError(VIEW_DENIED)

    def _ensure_can_modify(self, ctx: RequestContext, task: Task) -> None:
        if not (ctx.is_admin or task.can_edit(ctx.user_id)):
            raise PermissionDeniedError(MODIFY_DENIED)

    def _ensure_can_delete(self, ctx: RequestContext, task: Task) -> None:
        if not (ctx.is_admin or task.can_delete(ctx.user_id)):
            raise PermissionDeniedError(DELETE_DENIED)

    def _ensure_can_share(self, ctx: RequestContext, task: Task) -> None:
        if not (ctx.is_admin or task.can_share(ctx.user_id)):
            raise PermissionDeniedError(SHARE_DENIED)

    async def _save_task(self, task: Task) -> Task:
        updated = await self.tasks.update(task.id, task)
        if updated is None:
            # Deleted between load and save
            raise NotFoundError("Task not found")
        return updated

    # Side effects

    async def _emit(self, event_type: EventType, payload: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event_type, payload)

    async def _record(
        self,
        activity_type: ActivityType,
        ctx: RequestContext,
        task: Optional[Task] = None,
        data: Optional[Dict[str, Any]] = None,
        target_id: Optional[str] = None,
        mentions: Optional[Iterable[str]] = None,
        assignees: Optional[Iterable[str]] = None,
        recipients: Optional[Iterable[str]] = None,
        notify: bool = True,
    ) -> None:
        if self.activity_feed is None:
            return

        details: Dict[str, Any] = {"author_name": ctx.username or ctx.user_id}
        if task is not None:
            details["task_title"] = task.title
            details["task_owner_id"] = task.owner_id
            target_id = target_id or task.id
        details.update(data or {})

        await self.activity_feed.add_activity(
            activity_type,
            ctx.user_id,
            data=details,
            target_id=target_id,
            mentions=mentions,
            assignees=assignees,
            recipients=recipients,
            notify=notify,
        )

    async def _bump_stat(self, user_id: Optional[str], stat: str) -> None:
        if self.users is None or not user_id:
            return
        user = await self.users.find_by_id(user_id)
        if user is None:
            return
        user.update_collaboration_stats(stat)
        await self.users.update(user.id, user)

    # Shared task operations

    async def _share(
        self,
        ctx: RequestContext,
        task_id: str,
        user_id: str,
        can_edit: bool = False,
        can_comment: bool = True,
        can_share: bool = False,
    ) -> Task:
        task = await self._load_task(task_id)
        self._ensure_can_share(ctx, task)
        await self._load_user(user_id)

        if not task.share_with(
            user_id,
            can_edit=can_edit,
            can_comment=can_comment,
            can_share=can_share,
            shared_by=ctx.user_id,
        ):
            raise ValidationError("Task is already shared with this user")

        saved = await self._save_task(task)
        await self._bump_stat(ctx.user_id, "tasks_shared")
        await self._emit(EventType.TASK_SHARED, {"task": saved, "user_id": user_id, "shared_by": ctx.user_id})
        await self._record(ActivityType.TASK_SHARED, ctx, saved, recipients=[user_id], data={"shared_with": user_id})
        self.logger.info(f"{self._log_prefix} Task {task_id} shared with {user_id} by {ctx.user_id}")
        return saved

    async def _unshare(self, ctx: RequestContext, task_id: str, user_id: str) -> Task:
        task = await self._load_task(task_id)
        self._ensure_can_share(ctx, task)

        if not task.unshare_with(user_id):
            raise ValidationError("Task is not shared with this user")

        saved = await self._save_task(task)
        await self._emit(EventType.TASK_UNSHARED, {"task": saved, "user_id": user_id, "unshared_by": ctx.user_id})
        await self._record(ActivityType.TASK_UNSHARED, ctx, saved, recipients=[user_id], data={"unshared_with": user_id})
        self.logger.info(f"{self._log_prefix} Task {task_id} unshared from {user_id} by {ctx.user_id}")
        return saved

    async def _assign(self, ctx: RequestContext, task_id: str, assignee_id: str) -> Task:
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)
        if not assignee_id:
            raise ValidationError("Missing required parameters: assignee_id")
        await self._load_user(assignee_id, message="Assignee not found")

        previous = task.assignee_id
        task.assign_to(assignee_id, assigned_by=ctx.user_id)
        saved = await self._save_task(task)

        await self._bump_stat(assignee_id, "tasks_assigned")
        await self._emit(
            EventType.TASK_ASSIGNED,
            {"task": saved, "assignee_id": assignee_id, "previous_assignee_id": previous, "assigned_by": ctx.user_id},
        )
        await self._record(ActivityType.TASK_ASSIGNED, ctx, saved, assignees=[assignee_id])
        return saved
