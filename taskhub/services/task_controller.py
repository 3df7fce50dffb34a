"""
Task controller
"""

from typing import Any, Dict, List, Optional
from pydantic import ValidationError as PydanticValidationError
from taskhub.models.activity import ActivityType
from taskhub.models.context import RequestContext
from taskhub.models.response import Response
from taskhub.models.task import (
    Task,
    TaskCategory,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
)
from taskhub.services.base_controller import BaseController
from taskhub.services.event_bus import EventType
from taskhub.services.task_repository import TaskRepository
from taskhub.utils.error_handler import (
    NotFoundError,
    ValidationError,
    handles_errors,
    validation_error_from_pydantic,
)
from taskhub.utils.formatters import format_stats_summary, format_task_deleted
from taskhub.utils.validators import validate_due_date, validate_task_data

PAGING_KEYS = ("sort_by", "sort_order", "limit", "offset")
FILTER_TYPES = ("all", "pending", "in-progress", "completed", "overdue", "priority", "category")


def _parse(model_class, data: Dict[str, Any]):
    try:
        return model_class.model_validate(data)
    except PydanticValidationError as e:
        raise validation_error_from_pydantic(e)


def _check_form(data: Dict[str, Any], partial: bool = False) -> None:
    result = validate_task_data(data, partial=partial)
    if not result.is_valid:
        raise ValidationError("; ".join(result.errors))


class TaskController(BaseController):
    """
    Task CRUD with ownership-based permissions

    Every operation takes the caller's RequestContext and returns a Response
    envelope. Expected failures become {success: False, error}; storage
    errors propagate.
    """

    # Queries

    @handles_errors
    async def get_task(self, ctx: Optional[RequestContext], task_id: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_view(ctx, task)
        return Response.ok(task)

    @handles_errors
    async def get_tasks(self, ctx: Optional[RequestContext], filters: Optional[Dict[str, Any]] = None) -> Response:
        """
        List tasks visible to the caller

        Args:
            ctx: Caller context
            filters: Field filters plus optional sort_by, sort_order, limit, offset

        Returns:
            Response with list of tasks
        """
        ctx = self._require_user(ctx)
        filters = dict(filters or {})
        paging = {key: filters.pop(key) for key in PAGING_KEYS if key in filters}

        tasks = await self.tasks.find_all(
            filters,
            sort_by=paging.get("sort_by"),
            sort_order=paging.get("sort_order", "asc"),
        )
        tasks = self._visible(ctx, tasks)

        offset = paging.get("offset", 0)
        limit = paging.get("limit")
        tasks = tasks[offset:] if limit is None else tasks[offset:offset + limit]
        return Response.ok(tasks)

    def _visible(self, ctx: RequestContext, tasks: List[Task]) -> List[Task]:
        if ctx.is_admin:
            return tasks
        return [task for task in tasks if task.can_access(ctx.user_id)]

    @handles_errors
    async def filter_tasks(self, ctx: Optional[RequestContext], filter_type: str, value: Optional[str] = None) -> Response:
        ctx = self._require_user(ctx)
        if filter_type not in FILTER_TYPES:
            raise ValidationError(f"Unknown filter type: {filter_type}")

        tasks = self._visible(ctx, await self.tasks.find_all())

        if filter_type in ("pending", "in-progress", "completed"):
            tasks = [t for t in tasks if t.status == filter_type]
        elif filter_type == "overdue":
            tasks = [t for t in tasks if t.is_overdue]
        elif filter_type == "priority":
            if value not in [p.value for p in TaskPriority]:
                raise ValidationError("Invalid priority")
            tasks = [t for t in tasks if t.priority == value]
        elif filter_type == "category":
            if value not in [c.value for c in TaskCategory]:
                raise ValidationError("Invalid category")
            tasks = [t for t in tasks if t.category == value]

        self.logger.debug(f"[TaskController] Filter '{filter_type}' matched {len(tasks)} task(s)")
        return Response.ok(tasks)

    @handles_errors
    async def search_tasks(self, ctx: Optional[RequestContext], query: str) -> Response:
        ctx = self._require_user(ctx)
        user_id = None if ctx.is_admin else ctx.user_id
        return Response.ok(await self.tasks.search(query, user_id=user_id))

    @handles_errors
    async def get_task_stats(self, ctx: Optional[RequestContext]) -> Response:
        ctx = self._require_user(ctx)
        tasks = self._visible(ctx, await self.tasks.find_all())
        stats = TaskRepository.summarize(tasks)
        self.logger.debug(f"[TaskController] Stats for {ctx.user_id}: {format_stats_summary(stats)}")
        return Response.ok(stats)

    # Mutations

    @handles_errors
    async def create_task(self, ctx: Optional[RequestContext], data: Optional[Dict[str, Any]]) -> Response:
        """
        Create task owned by the caller

        Args:
            ctx: Caller context
            data: Task fields (title required; assignee defaults to the caller)

        Returns:
            Response with created task
        """
        ctx = self._require_user(ctx)
        data = data or {}
        if data.get("title") is None:
            raise ValidationError("Missing required parameters: title")
        _check_form(data)

        payload = _parse(TaskCreate, data)
        assignee_id = payload.assignee_id or ctx.user_id
        if assignee_id != ctx.user_id:
            await self._load_user(assignee_id, message="Assignee not found")

        fields = payload.model_dump(exclude_none=True, exclude={"assignee_id"})
        watchers = [ctx.user_id] if assignee_id == ctx.user_id else [ctx.user_id, assignee_id]
        task = _parse(Task, {**fields, "owner_id": ctx.user_id, "assignee_id": assignee_id, "watchers": watchers})

        created = await self.tasks.create(task)
        await self._bump_stat(ctx.user_id, "tasks_created")
        await self._emit(EventType.TASK_CREATED, {"task": created, "user_id": ctx.user_id})
        assignees = [assignee_id] if assignee_id != ctx.user_id else []
        await self._record(ActivityType.TASK_CREATED, ctx, created, assignees=assignees)

        self.logger.info(f"[TaskController] Task {created.id} created by {ctx.user_id}")
        return Response.ok(created)

    @handles_errors
    async def update_task(
        self,
        ctx: Optional[RequestContext],
        task_id: str,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Response:
        """
        Update task fields

        Args:
            ctx: Caller context
            task_id: Task id
            updates: Fields to change
            expected_version: Reject if the task changed since this version

        Returns:
            Response with updated task
        """
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        updates = updates or {}
        if "title" in updates and (not isinstance(updates["title"], str) or not updates["title"].strip()):
            raise ValidationError("Task title cannot be empty")
        _check_form(updates, partial=True)
        changes = _parse(TaskUpdate, updates).model_dump(exclude_unset=True)

        was_completed = task.is_completed
        new_assignee = changes.pop("assignee_id", None)
        if new_assignee and new_assignee != task.assignee_id:
            await self._load_user(new_assignee, message="Assignee not found")
            task.assign_to(new_assignee, assigned_by=ctx.user_id)

        setters = {
            "title": task.set_title,
            "description": task.set_description,
            "status": task.set_status,
            "priority": task.set_priority,
            "category": task.set_category,
            "due_date": task.set_due_date,
            "visibility": task.set_visibility,
            "workflow_stage": task.set_workflow_stage,
            "estimated_hours": task.set_estimated_hours,
            "actual_hours": task.set_actual_hours,
        }
        for field, value in changes.items():
            if field == "tags":
                task.tags = []
                for tag in value or []:
                    task.add_tag(tag)
            elif value is not None or field == "due_date":
                setters[field](value)

        updated = await self.tasks.update(task_id, task, expected_version=expected_version)
        if updated is None:
            raise NotFoundError("Task not found")

        await self._emit(
            EventType.TASK_UPDATED,
            {"task": updated, "user_id": ctx.user_id, "changes": sorted(updates.keys())},
        )
        if updated.is_completed and not was_completed:
            await self._bump_stat(ctx.user_id, "tasks_completed")
            await self._record(ActivityType.TASK_COMPLETED, ctx, updated)
        else:
            await self._record(
                ActivityType.TASK_UPDATED,
                ctx,
                updated,
                assignees=[new_assignee] if new_assignee else None,
                data={"changes": sorted(updates.keys())},
            )
        return Response.ok(updated)

    @handles_errors
    async def delete_task(self, ctx: Optional[RequestContext], task_id: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_delete(ctx, task)

        if not await self.tasks.delete(task_id):
            raise NotFoundError("Task not found")

        await self._emit(EventType.TASK_DELETED, {"task_id": task_id, "user_id": ctx.user_id})
        await self._record(ActivityType.TASK_DELETED, ctx, task, notify=False)
        self.logger.info(f"[TaskController] Task {task_id} deleted by {ctx.user_id}")
        return Response.done(format_task_deleted(task.title))

    @handles_errors
    async def toggle_task_status(self, ctx: Optional[RequestContext], task_id: str) -> Response:
        """Completed tasks go back to pending, any other status completes"""
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        previous = task.status
        status = task.toggle_status()
        updated = await self._save_task(task)

        await self._emit(
            EventType.TASK_STATUS_CHANGED,
            {"task": updated, "user_id": ctx.user_id, "previous_status": previous.value, "status": status.value},
        )
        if status == TaskStatus.COMPLETED:
            await self._bump_stat(ctx.user_id, "tasks_completed")
            await self._record(ActivityType.TASK_COMPLETED, ctx, updated)
        else:
            await self._record(ActivityType.TASK_REOPENED, ctx, updated)
        return Response.ok(updated)

    @handles_errors
    async def assign_task(self, ctx: Optional[RequestContext], task_id: str, assignee_id: str) -> Response:
        ctx = self._require_user(ctx)
        return Response.ok(await self._assign(ctx, task_id, assignee_id))

    @handles_errors
    async def add_tag(self, ctx: Optional[RequestContext], task_id: str, tag: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        task.add_tag(tag)
        updated = await self._save_task(task)
        await self._emit(EventType.TASK_UPDATED, {"task": updated, "user_id": ctx.user_id, "changes": ["tags"]})
        return Response.ok(updated)

    @handles_errors
    async def remove_tag(self, ctx: Optional[RequestContext], task_id: str, tag: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        task.remove_tag(tag)
        updated = await self._save_task(task)
        await self._emit(EventType.TASK_UPDATED, {"task": updated, "user_id": ctx.user_id, "changes": ["tags"]})
        return Response.ok(updated)

    @handles_errors
    async def set_due_date(self, ctx: Optional[RequestContext], task_id: str, due_date: Any) -> Response:
        """Set due date (today or later); None clears it"""
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        result = validate_due_date(due_date)
        if not result.is_valid:
            raise ValidationError(result.errors[0])

        task.set_due_date(result.sanitized)
        updated = await self._save_task(task)
        await self._emit(EventType.TASK_UPDATED, {"task": updated, "user_id": ctx.user_id, "changes": ["due_date"]})
        return Response.ok(updated)

    @handles_errors
    async def add_time_spent(self, ctx: Optional[RequestContext], task_id: str, hours: float) -> Response:
        """
        Log hours worked on a task

        Args:
            ctx: Caller context
            task_id: Task id
            hours: Non-negative hours added to actual_hours

        Returns:
            Response with updated task
        """
        ctx = self._require_user(ctx)
        if hours is None:
            raise ValidationError("Missing required parameters: hours")
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        total = task.add_time_spent(hours)
        updated = await self._save_task(task)
        await self._emit(EventType.TASK_UPDATED, {"task": updated, "user_id": ctx.user_id, "changes": ["actual_hours"]})
        self.logger.debug(f"[TaskController] {ctx.user_id} logged {hours}h on {task_id} ({total}h total)")
        return Response.ok(updated)

    # Notes

    @handles_errors
    async def add_note(self, ctx: Optional[RequestContext], task_id: str, content: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        note = task.add_note(content, author_id=ctx.user_id)
        updated = await self._save_task(task)
        await self._emit(EventType.TASK_UPDATED, {"task": updated, "user_id": ctx.user_id, "changes": ["notes"]})
        return Response.ok(note)

    @handles_errors
    async def remove_note(self, ctx: Optional[RequestContext], task_id: str, note_id: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        if not task.remove_note(note_id):
            raise NotFoundError("Note not found")
        updated = await self._save_task(task)
        await self._emit(EventType.TASK_UPDATED, {"task": updated, "user_id": ctx.user_id, "changes": ["notes"]})
        return Response.done("Note removed")

    # Dependencies

    @handles_errors
    async def add_dependency(self, ctx: Optional[RequestContext], task_id: str, dependency_id: str) -> Response:
        """
        Make task_id depend on dependency_id

        The caller must be able to modify the task and view the dependency.
        The dependency records the reverse link in its blocking list.

        Returns:
            Response with the updated task
        """
        ctx = self._require_user(ctx)
        if not isinstance(dependency_id, str) or not dependency_id.strip():
            raise ValidationError("Missing required parameters: dependency_id")
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)
        if dependency_id == task.id:
            raise ValidationError("Task cannot depend on itself")

        dependency = await self.tasks.find_by_id(dependency_id)
        if dependency is None:
            raise NotFoundError("Dependency task not found")
        self._ensure_can_view(ctx, dependency)

        if not task.add_dependency(dependency.id):
            return Response.done("Dependency already exists")

        updated = await self._save_task(task)
        dependency.add_blocked_task(task.id)
        await self._save_task(dependency)

        await self._emit(
            EventType.DEPENDENCY_ADDED,
            {"task": updated, "dependency_id": dependency.id, "user_id": ctx.user_id},
        )
        self.logger.info(f"[TaskController] Task {task.id} now depends on {dependency.id}")
        return Response.ok(updated)

    @handles_errors
    async def remove_dependency(self, ctx: Optional[RequestContext], task_id: str, dependency_id: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)

        if not task.remove_dependency(dependency_id):
            raise NotFoundError("Dependency not found")
        updated = await self._save_task(task)

        # The dependency may have been deleted since
        dependency = await self.tasks.find_by_id(dependency_id)
        if dependency is not None:
            dependency.remove_blocked_task(task.id)
            await self._save_task(dependency)

        await self._emit(
            EventType.DEPENDENCY_REMOVED,
            {"task": updated, "dependency_id": dependency_id, "user_id": ctx.user_id},
        )
        return Response.ok(updated)

    @handles_errors
    async def share_task(
        self,
        ctx: Optional[RequestContext],
        task_id: str,
        user_id: str,
        can_edit: bool = False,
        can_comment: bool = True,
    ) -> Response:
        ctx = self._require_user(ctx)
        return Response.ok(await self._share(ctx, task_id, user_id, can_edit=can_edit, can_comment=can_comment))

    @handles_errors
    async def unshare_task(self, ctx: Optional[RequestContext], task_id: str, user_id: str) -> Response:
        ctx = self._require_user(ctx)
        return Response.ok(await self._unshare(ctx, task_id, user_id))
