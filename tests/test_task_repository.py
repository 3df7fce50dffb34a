"""
Tests for task repository
"""

import asyncio
import pytest
from unittest.mock import AsyncMock
from taskhub.models.task import Task, TaskStatus
from taskhub.services.task_repository import TaskRepository
from taskhub.utils.error_handler import ConflictError, DuplicateError, ValidationError


def make_task(title="Test Task", owner_id="user123", **fields):
    return Task(title=title, owner_id=owner_id, **fields)


@pytest.mark.asyncio
async def test_create_and_find_by_id(task_repository):
    """Test that a created task reads back with identical fields"""
    created = await task_repository.create(make_task(description="Details", tags=["Work"]))

    assert created.id.startswith("task_")
    assert created.version == 0

    found = await task_repository.find_by_id(created.id)
    assert found.model_dump() == created.model_dump()

    task_repository.clear_cache()
    reloaded = await task_repository.find_by_id(created.id)
    assert reloaded.model_dump() == created.model_dump()


@pytest.mark.asyncio
async def test_create_accepts_dict(task_repository):
    """Test creating from a camelCase field dict"""
    created = await task_repository.create({"title": "From Dict", "ownerId": "user123", "priority": "high"})

    assert created.owner_id == "user123"
    assert created.priority == "high"
    assert created.watchers == ["user123"]


@pytest.mark.asyncio
async def test_create_duplicate_id(task_repository):
    """Test that reusing an id is rejected"""
    await task_repository.create(make_task(id="task_fixed"))

    with pytest.raises(DuplicateError, match="Task with ID task_fixed already exists"):
        await task_repository.create(make_task(id="task_fixed"))

    assert await task_repository.count() == 1


@pytest.mark.asyncio
async def test_create_invalid_data(task_repository):
    """Test that model validation failures surface as ValidationError"""
    with pytest.raises(ValidationError, match="Task title is required"):
        await task_repository.create({"title": "   ", "ownerId": "user123"})

    with pytest.raises(ValidationError, match="User ID is required"):
        await task_repository.create({"title": "Test Task"})


@pytest.mark.asyncio
async def test_find_by_id_unknown(task_repository):
    """Test looking up ids that do not exist"""
    assert await task_repository.find_by_id("missing") is None
    assert await task_repository.find_by_id(None) is None


@pytest.mark.asyncio
async def test_find_by_id_returns_copies(task_repository):
    """Test that mutating a returned task does not leak into the cache"""
    created = await task_repository.create(make_task())

    found = await task_repository.find_by_id(created.id)
    found.title = "Mutated"

    assert (await task_repository.find_by_id(created.id)).title == "Test Task"


@pytest.mark.asyncio
async def test_find_all_filters_sorting_and_paging(task_repository):
    """Test filtering, sorting and paging"""
    await task_repository.create(make_task(title="B", priority="high"))
    await task_repository.create(make_task(title="A", priority="low"))
    await task_repository.create(make_task(title="C", priority="high", owner_id="user456"))

    high = await task_repository.find_all({"priority": "high"})
    assert sorted(t.title for t in high) == ["B", "C"]

    mine = await task_repository.find_all({"ownerId": "user123"}, sort_by="title")
    assert [t.title for t in mine] == ["A", "B"]

    either = await task_repository.find_all({"title": ["A", "C"]})
    assert sorted(t.title for t in either) == ["A", "C"]

    page = await task_repository.find_all(sort_by="title", sort_order="desc", limit=2, offset=1)
    assert [t.title for t in page] == ["B", "A"]

    with pytest.raises(ValidationError, match="Unknown field: nope"):
        await task_repository.find_all({"nope": 1})


@pytest.mark.asyncio
async def test_update_with_changes(task_repository):
    """Test partial updates bump the version"""
    created = await task_repository.create(make_task())

    updated = await task_repository.update(created.id, {"title": "Renamed", "status": "completed"})

    assert updated.title == "Renamed"
    assert updated.status == TaskStatus.COMPLETED
    assert updated.completed_at is not None
    assert updated.version == 1
    assert updated.created_at == created.created_at
    assert (await task_repository.find_by_id(created.id)).title == "Renamed"


@pytest.mark.asyncio
async def test_update_with_entity(task_repository):
    """Test storing a mutated entity"""
    created = await task_repository.create(make_task())
    task = await task_repository.find_by_id(created.id)
    task.add_tag("urgent")

    updated = await task_repository.update(task.id, task)

    assert updated.tags == ["urgent"]
    assert updated.version == 1


@pytest.mark.asyncio
async def test_update_rejects_protected_and_unknown_fields(task_repository):
    """Test that ids, versions and ownership cannot be changed"""
    created = await task_repository.create(make_task())

    with pytest.raises(ValidationError, match="Field cannot be updated: owner_id"):
        await task_repository.update(created.id, {"ownerId": "user456"})

    with pytest.raises(ValidationError, match="Field cannot be updated: id"):
        await task_repository.update(created.id, {"id": "other"})

    with pytest.raises(ValidationError, match="Unknown field: color"):
        await task_repository.update(created.id, {"color": "red"})


@pytest.mark.asyncio
async def test_update_unknown_id(task_repository):
    """Test that updating a missing task returns None"""
    assert await task_repository.update("missing", {"title": "X"}) is None


@pytest.mark.asyncio
async def test_update_expected_version_conflict(task_repository):
    """Test optimistic concurrency check"""
    created = await task_repository.create(make_task())
    await task_repository.update(created.id, {"title": "First"}, expected_version=0)

    with pytest.raises(ConflictError, match="modified concurrently"):
        await task_repository.update(created.id, {"title": "Second"}, expected_version=0)

    assert (await task_repository.find_by_id(created.id)).title == "First"


@pytest.mark.asyncio
async def test_delete(task_repository):
    """Test deleting a task"""
    created = await task_repository.create(make_task())

    assert await task_repository.delete(created.id) is True
    assert await task_repository.find_by_id(created.id) is None
    assert await task_repository.exists(created.id) is False


@pytest.mark.asyncio
async def test_delete_unknown_id_does_not_save(mock_storage):
    """Test that deleting an unknown id leaves storage untouched"""
    repository = TaskRepository(mock_storage, cache_ttl=0.1)

    assert await repository.delete("missing") is False
    mock_storage.save.assert_not_awaited()


@pytest.mark.asyncio
async def test_storage_errors_propagate(mock_storage):
    """Test that storage failures are not swallowed"""
    repository = TaskRepository(mock_storage, cache_ttl=0.1)
    mock_storage.save = AsyncMock(side_effect=RuntimeError("disk full"))

    with pytest.raises(RuntimeError, match="disk full"):
        await repository.create(make_task())

    mock_storage.load = AsyncMock(side_effect=RuntimeError("disk gone"))
    with pytest.raises(RuntimeError, match="disk gone"):
        await repository.find_all()


@pytest.mark.asyncio
async def test_cache_serves_reads_until_ttl(storage, task_repository):
    """Test that reads within the TTL come from the cache"""
    created = await task_repository.create(make_task())

    records = await storage.load("tasks")
    records[created.id]["title"] = "Changed Elsewhere"
    await storage.save("tasks", records)

    assert (await task_repository.find_by_id(created.id)).title == "Test Task"

    await asyncio.sleep(0.15)
    assert (await task_repository.find_by_id(created.id)).title == "Changed Elsewhere"


@pytest.mark.asyncio
async def test_concurrent_creates(task_repository):
    """Test that concurrent creates all persist"""
    await asyncio.gather(*(task_repository.create(make_task(title=f"Task {i}")) for i in range(10)))

    assert await task_repository.count() == 10


@pytest.mark.asyncio
async def test_concurrent_updates_are_serialized(task_repository):
    """Test that concurrent updates each apply and bump the version"""
    created = await task_repository.create(make_task())

    await asyncio.gather(
        *(task_repository.update(created.id, {"description": f"rev {i}"}) for i in range(5))
    )

    assert (await task_repository.find_by_id(created.id)).version == 5


@pytest.mark.asyncio
async def test_malformed_records_are_skipped(storage, task_repository):
    """Test that records failing validation are ignored on read"""
    await storage.save("tasks", {
        "good": {"id": "good", "title": "Good", "ownerId": "user123"},
        "bad": {"id": "bad", "title": "", "ownerId": "user123"},
    })

    tasks = await task_repository.find_all()

    assert [t.id for t in tasks] == ["good"]
    assert await task_repository.find_by_id("bad") is None


@pytest.mark.asyncio
async def test_legacy_list_payload_is_indexed(storage, task_repository):
    """Test reading a collection stored as a plain list"""
    await storage.save("tasks", [{"id": "t1", "title": "Listed", "ownerId": "user123"}])

    task = await task_repository.find_by_id("t1")

    assert task.title == "Listed"


@pytest.mark.asyncio
async def test_finders(task_repository):
    """Test task-specific finders"""
    await task_repository.create(make_task(title="Buy milk", category="shopping", tags=["groceries"]))
    await task_repository.create(make_task(title="Report", category="work", assignee_id="user456"))
    await task_repository.create(make_task(title="Old", due_date="2020-01-01"))

    assert [t.title for t in await task_repository.find_by_category("shopping")] == ["Buy milk"]
    assert [t.title for t in await task_repository.find_by_assignee("user456")] == ["Report"]
    assert [t.title for t in await task_repository.find_overdue()] == ["Old"]
    assert [t.title for t in await task_repository.search("GROCER")] == ["Buy milk"]
    assert await task_repository.search("   ") == []
    assert await task_repository.search("report", user_id="user789") == []

    in_range = await task_repository.find_by_due_date_range("2019-12-01", "2020-02-01")
    assert [t.title for t in in_range] == ["Old"]


@pytest.mark.asyncio
async def test_get_statistics(task_repository):
    """Test aggregate counts"""
    await task_repository.create(make_task(title="Done", status="completed", priority="high"))
    await task_repository.create(make_task(title="Doing", status="in-progress"))
    await task_repository.create(make_task(title="Late", due_date="2020-01-01"))
    await task_repository.create(make_task(title="Elsewhere", owner_id="user456"))

    stats = await task_repository.get_statistics("user123")

    assert stats["total"] == 3
    assert stats["completed"] == 1
    assert stats["in_progress"] == 1
    assert stats["pending"] == 1
    assert stats["overdue"] == 1
    assert stats["by_priority"]["high"] == 1
    assert stats["by_priority"]["medium"] == 2
    assert stats["completion_rate"] == 33
