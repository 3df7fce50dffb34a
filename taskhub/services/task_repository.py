"""
Task repository
"""

from typing import Any, Dict, List, Optional
from taskhub.config.constants import TASK_ID_PREFIX, TASKS_KEY
from taskhub.models.task import Task, TaskCategory, TaskPriority, TaskStatus
from taskhub.services.base_repository import BaseRepository, PROTECTED_FIELDS
from taskhub.storage.base_storage import BaseStorage
from taskhub.utils.date_utils import parse_datetime


class TaskRepository(BaseRepository[Task]):
    """Repository for tasks with task-specific finders"""

    protected_fields = PROTECTED_FIELDS | {"owner_id"}

    def __init__(self, storage: BaseStorage, cache_ttl: Optional[float] = None):
        super().__init__(
            storage,
            storage_key=TASKS_KEY,
            model_class=Task,
            entity_label="Task",
            id_prefix=TASK_ID_PREFIX,
            cache_ttl=cache_ttl,
        )

    async def find_by_owner(self, owner_id: str) -> List[Task]:
        return await self.find_all({"owner_id": owner_id})

    async def find_by_assignee(self, assignee_id: str) -> List[Task]:
        return await self.find_all({"assignee_id": assignee_id})

    async def find_by_category(self, category: str) -> List[Task]:
        return await self.find_all({"category": category})

    async def find_by_priority(self, priority: str) -> List[Task]:
        return await self.find_all({"priority": priority})

    async def find_by_status(self, status: str) -> List[Task]:
        return await self.find_all({"status": status})

    async def find_accessible(self, user_id: str) -> List[Task]:
        """Tasks the user owns, is assigned, collaborates on or can see"""
        return await self.find_where(lambda task: task.can_access(user_id))

    async def find_overdue(self) -> List[Task]:
        return await self.find_where(lambda task: task.is_overdue)

    async def find_by_due_date_range(self, start: Any, end: Any) -> List[Task]:
        """
        Find tasks due within [start, end]

        Args:
            start: Range start (datetime, date or ISO string)
            end: Range end (datetime, date or ISO string)

        Returns:
            Tasks with a due date inside the range, earliest first
        """
        range_start = parse_datetime(start)
        range_end = parse_datetime(end)
        tasks = await self.find_where(
            lambda task: task.due_date is not None and range_start <= task.due_date <= range_end
        )
        return sorted(tasks, key=lambda task: task.due_date)

    async def search(self, query: str, user_id: Optional[str] = None) -> List[Task]:
        """
        Case-insensitive search over title, description and tags

        Args:
            query: Search text
            user_id: Restrict to tasks this user can access

        Returns:
            Matching tasks
        """
        needle = (query or "").strip().lower()
        if not needle:
            return []

        def matches(task: Task) -> bool:
            if user_id is not None and not task.can_access(user_id):
                return False
            return (
                needle in task.title.lower()
                or needle in task.description.lower()
                or any(needle in tag for tag in task.tags)
            )

        return await self.find_where(matches)

    async def get_statistics(self, owner_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Aggregate task counts

        Args:
            owner_id: Only count tasks owned by this user

        Returns:
            Totals by status, priority and category plus completion rate
        """
        tasks = await self.find_by_owner(owner_id) if owner_id else await self.find_all()
        return self.summarize(tasks)

    @staticmethod
    def summarize(tasks: List[Task]) -> Dict[str, Any]:
        total = len(tasks)
        completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        stats = {
            "total": total,
            "completed": completed,
            "pending": sum(1 for t in tasks if t.status == TaskStatus.PENDING),
            "in_progress": sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
            "overdue": sum(1 for t in tasks if t.is_overdue),
            "by_priority": {p.value: 0 for p in TaskPriority},
            "by_category": {c.value: 0 for c in TaskCategory},
            "completion_rate": round(completed / total * 100) if total else 0,
        }
        for task in tasks:
            stats["by_priority"][task.priority.value] += 1
            stats["by_category"][task.category.value] += 1
        return stats
