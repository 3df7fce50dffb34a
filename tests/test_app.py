"""
Tests for application wiring
"""

import pytest
from taskhub.app import TaskHub, create_app
from taskhub.config.settings import settings
from taskhub.models.context import RequestContext
from taskhub.models.user import User
from taskhub.storage.json_file_storage import JsonFileStorage
from taskhub.storage.memory_storage import MemoryStorage


@pytest.mark.asyncio
async def test_create_app_end_to_end():
    """Test the wired application shares one bus between feed and notifications"""
    app = create_app(storage=MemoryStorage(), cache_ttl=0)
    alice = await app.user_repository.create(User(username="alice", email="alice@example.com"))
    bob = await app.user_repository.create(User(username="bob", email="bob@example.com"))
    ctx = RequestContext.for_user(alice)

    created = await app.task_controller.create_task(ctx, {"title": "Wire it up"})
    await app.collaboration_controller.share_task(ctx, created.data.id, bob.id)

    notifications = await app.collaboration_controller.get_user_notifications(RequestContext.for_user(bob))
    assert notifications.data["unread_count"] == 1

    app.close()


def test_json_backend_from_settings(monkeypatch, tmp_path):
    """Test storage selection from settings"""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "json")
    monkeypatch.setattr(settings, "STORAGE_FILE_PATH", str(tmp_path / "taskhub.json"))

    app = create_app()

    assert isinstance(app.storage, JsonFileStorage)
    app.close()


def test_invalid_settings(monkeypatch):
    """Test settings validation"""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "redis")

    with pytest.raises(ValueError, match="Unsupported STORAGE_BACKEND: redis"):
        create_app()

    monkeypatch.setattr(settings, "STORAGE_BACKEND", "json")
    monkeypatch.setattr(settings, "STORAGE_FILE_PATH", None)
    with pytest.raises(ValueError, match="STORAGE_FILE_PATH is required"):
        create_app()


def test_default_memory_backend(monkeypatch):
    """Test the default backend"""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "memory")

    assert isinstance(TaskHub().storage, MemoryStorage)
