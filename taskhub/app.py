"""
Application wiring
"""

from typing import Optional
from taskhub.config.settings import settings
from taskhub.services.activity_feed import ActivityFeed
from taskhub.services.collaboration_controller import CollaborationController
from taskhub.services.event_bus import EventBus
from taskhub.services.notification_service import NotificationService
from taskhub.services.task_controller import TaskController
from taskhub.services.task_repository import TaskRepository
from taskhub.services.team_repository import TeamRepository
from taskhub.services.user_repository import UserRepository
from taskhub.storage.base_storage import BaseStorage
from taskhub.storage.json_file_storage import JsonFileStorage
from taskhub.storage.memory_storage import MemoryStorage
from taskhub.utils.logger import logger


def create_storage() -> BaseStorage:
    """Storage backend selected by STORAGE_BACKEND"""
    if settings.STORAGE_BACKEND == "json":
        return JsonFileStorage(settings.STORAGE_FILE_PATH)
    return MemoryStorage()


class TaskHub:
    """Task management core: repositories, events, feed, notifications and controllers"""

    def __init__(self, storage: Optional[BaseStorage] = None, cache_ttl: Optional[float] = None):
        """
        Initialize application

        Args:
            storage: Storage backend (defaults to the configured one)
            cache_ttl: Repository cache TTL override
        """
        self.storage = storage or create_storage()

        self.task_repository = TaskRepository(self.storage, cache_ttl=cache_ttl)
        self.user_repository = UserRepository(self.storage, cache_ttl=cache_ttl)
        self.team_repository = TeamRepository(self.storage, cache_ttl=cache_ttl)

        self.event_bus = EventBus()
        self.activity_feed = ActivityFeed(event_bus=self.event_bus)
        self.notification_service = NotificationService(
            event_bus=self.event_bus,
            user_repository=self.user_repository,
        )

        self.task_controller = TaskController(
            self.task_repository,
            user_repository=self.user_repository,
            event_bus=self.event_bus,
            activity_feed=self.activity_feed,
        )
        self.collaboration_controller = CollaborationController(
            self.task_repository,
            self.user_repository,
            self.team_repository,
            activity_feed=self.activity_feed,
            notification_service=self.notification_service,
            event_bus=self.event_bus,
        )

        self.logger = logger
        self.logger.info(f"TaskHub initialized ({type(self.storage).__name__})")

    def close(self) -> None:
        """Detach notification service from the bus"""
        self.notification_service.close()
        self.logger.info("TaskHub stopped")


def create_app(storage: Optional[BaseStorage] = None, cache_ttl: Optional[float] = None) -> TaskHub:
    """
    Build application from settings

    Raises:
        ValueError: If settings are invalid
    """
    settings.validate()
    return TaskHub(storage=storage, cache_ttl=cache_ttl)
