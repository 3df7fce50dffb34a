"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from taskhub.models.context import RequestContext
from taskhub.models.user import User, UserRole
from taskhub.services.activity_feed import ActivityFeed
from taskhub.services.collaboration_controller import CollaborationController
from taskhub.services.event_bus import EventBus
from taskhub.services.notification_service import NotificationService
from taskhub.services.task_controller import TaskController
from taskhub.services.task_repository import TaskRepository
from taskhub.services.team_repository import TeamRepository
from taskhub.services.user_repository import UserRepository
from taskhub.storage.base_storage import BaseStorage
from taskhub.storage.memory_storage import MemoryStorage

CACHE_TTL = 0.1


@pytest.fixture
def storage():
    """Fresh in-memory storage"""
    return MemoryStorage()


@pytest.fixture
def mock_storage():
    """Storage double with an empty collection"""
    storage = MagicMock(spec=BaseStorage)
    storage.load = AsyncMock(return_value={})
    storage.save = AsyncMock(return_value=None)
    storage.remove = AsyncMock(return_value=False)
    storage.clear = AsyncMock(return_value=None)
    storage.keys = AsyncMock(return_value=[])
    return storage


@pytest.fixture
def task_repository(storage):
    return TaskRepository(storage, cache_ttl=CACHE_TTL)


@pytest.fixture
def user_repository(storage):
    return UserRepository(storage, cache_ttl=CACHE_TTL)


@pytest.fixture
def team_repository(storage):
    return TeamRepository(storage, cache_ttl=CACHE_TTL)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def activity_feed(event_bus):
    return ActivityFeed(event_bus=event_bus, max_activities=1000)


@pytest.fixture
def notification_service(event_bus, user_repository):
    """Notification service listening on the shared bus"""
    service = NotificationService(
        event_bus=event_bus,
        user_repository=user_repository,
        max_per_user=100,
        enabled=True,
        real_time=True,
    )
    yield service
    service.close()


@pytest.fixture
def task_controller(task_repository, user_repository, event_bus, activity_feed):
    return TaskController(
        task_repository,
        user_repository=user_repository,
        event_bus=event_bus,
        activity_feed=activity_feed,
    )


@pytest.fixture
def collaboration_controller(
    task_repository,
    user_repository,
    team_repository,
    event_bus,
    activity_feed,
    notification_service,
):
    return CollaborationController(
        task_repository,
        user_repository,
        team_repository,
        activity_feed=activity_feed,
        notification_service=notification_service,
        event_bus=event_bus,
        max_collaborators_per_task=50,
        max_comments_per_task=1000,
        enable_notifications=True,
        enable_real_time_updates=True,
    )


@pytest_asyncio.fixture
async def users(user_repository):
    """Seeded users keyed by username"""
    seeded = {}
    for user_id, username, role in [
        ("user123", "alice", UserRole.USER),
        ("user456", "bob", UserRole.USER),
        ("user789", "carol", UserRole.USER),
        ("admin1", "admin", UserRole.ADMIN),
    ]:
        user = User(id=user_id, username=username, email=f"{username}@example.com", role=role)
        seeded[username] = await user_repository.create(user)
    return seeded


@pytest.fixture
def contexts(users):
    """Request contexts keyed by username"""
    return {name: RequestContext.for_user(user) for name, user in users.items()}
