"""
Tests for notification service
"""

import pytest
from taskhub.models.activity import Activity, ActivityType
from taskhub.services.activity_feed import ActivityFeed
from taskhub.services.event_bus import EventBus, EventType
from taskhub.services.notification_service import NotificationService, RecipientResolver


def make_activity(activity_type=ActivityType.TASK_SHARED, user_id="user123", **fields):
    fields.setdefault("data", {"author_name": "alice", "task_title": "Test Task", "task_owner_id": "user123"})
    return Activity(type=activity_type, user_id=user_id, **fields)


def test_resolver_collects_recipients_and_skips_actor():
    """Test recipient resolution"""
    activity = make_activity(
        ActivityType.TASK_ASSIGNED,
        user_id="user456",
        recipients=["user789"],
        mentions=["user456"],
        assignees=["user999"],
    )

    assert RecipientResolver().resolve(activity) == {"user789", "user999", "user123"}


def test_resolver_owner_only_for_task_activities():
    """Test the task owner is added for task activities only"""
    comment = make_activity(ActivityType.COMMENT_ADDED, user_id="user456")

    assert RecipientResolver().resolve(comment) == set()


def test_resolver_respects_notify_flag():
    """Test activities recorded without notification"""
    activity = make_activity(recipients=["user456"], notify=False)

    assert RecipientResolver().resolve(activity) == set()


@pytest.mark.asyncio
async def test_activity_fans_out_through_bus():
    """Test notifications created from recorded activities"""
    bus = EventBus()
    service = NotificationService(event_bus=bus, max_per_user=100, enabled=True, real_time=False)
    feed = ActivityFeed(event_bus=bus)

    await feed.add_activity(
        ActivityType.TASK_SHARED,
        "user123",
        data={"author_name": "alice", "task_title": "Test Task"},
        recipients=["user456"],
    )

    notifications = service.get_notifications("user456")
    assert len(notifications) == 1
    assert notifications[0].title == "Task Shared with You"
    assert notifications[0].message == 'alice shared task "Test Task" with you'
    assert service.get_notifications("user123") == []
    assert service.get_unread_count("user456") == 1


@pytest.mark.asyncio
async def test_read_tracking():
    """Test marking notifications read"""
    service = NotificationService(max_per_user=100, enabled=True, real_time=False)
    await service.process_activity(make_activity(recipients=["user456"]))
    await service.process_activity(make_activity(recipients=["user456"]))
    first = service.get_notifications("user456")[0]

    assert service.mark_as_read("user456", first.id) is True
    assert service.mark_as_read("user789", first.id) is False
    assert service.get_unread_count("user456") == 1
    assert len(service.get_notifications("user456", unread_only=True)) == 1

    assert service.mark_all_as_read("user456") == 1
    assert service.mark_all_as_read("user456") == 0
    assert service.get_unread_count("user456") == 0


@pytest.mark.asyncio
async def test_inbox_is_capped():
    """Test the per-user cap keeps the newest notifications"""
    service = NotificationService(max_per_user=2, enabled=True, real_time=False)

    for i in range(3):
        await service.process_activity(make_activity(recipients=["user456"], data={"task_title": f"T{i}"}))

    titles = [n.data["task_title"] for n in service.get_notifications("user456")]
    assert titles == ["T2", "T1"]


@pytest.mark.asyncio
async def test_disabled_service_creates_nothing():
    """Test the master switch"""
    service = NotificationService(max_per_user=100, enabled=False, real_time=False)

    assert await service.process_activity(make_activity(recipients=["user456"])) == []
    assert service.get_notifications("user456") == []


@pytest.mark.asyncio
async def test_user_preferences():
    """Test per-user opt out"""
    service = NotificationService(max_per_user=100, enabled=True, real_time=False)
    service.set_preferences("user456", notifications=False)

    assert service.get_preferences("user456") == {"notifications": False}
    assert service.get_preferences("user789") == {"notifications": True}
    assert await service.process_activity(make_activity(recipients=["user456", "user789"])) != []
    assert service.get_notifications("user456") == []
    assert len(service.get_notifications("user789")) == 1


@pytest.mark.asyncio
async def test_user_notification_settings(user_repository, users):
    """Test stored notification settings suppress matching types"""
    bob = users["bob"]
    bob.set_notification_setting("task_shared", False)
    await user_repository.update(bob.id, bob)
    service = NotificationService(user_repository=user_repository, max_per_user=100, enabled=True, real_time=False)

    await service.process_activity(make_activity(ActivityType.TASK_SHARED, recipients=[bob.id]))
    await service.process_activity(make_activity(ActivityType.TASK_ASSIGNED, assignees=[bob.id]))

    assert [n.type for n in service.get_notifications(bob.id)] == [ActivityType.TASK_ASSIGNED]


@pytest.mark.asyncio
async def test_real_time_publishes_notification_events():
    """Test NOTIFICATION_CREATED events"""
    bus = EventBus()
    received = []
    bus.subscribe(EventType.NOTIFICATION_CREATED, lambda event: received.append(event.payload["user_id"]))
    service = NotificationService(event_bus=bus, max_per_user=100, enabled=True, real_time=True)

    await service.process_activity(make_activity(recipients=["user456", "user789"]))

    assert received == ["user456", "user789"]


def test_close_unsubscribes():
    """Test detaching from the bus"""
    bus = EventBus()
    service = NotificationService(event_bus=bus, max_per_user=100, enabled=True, real_time=False)

    assert bus.subscriber_count(EventType.ACTIVITY_RECORDED) == 1
    service.close()
    service.close()
    assert bus.subscriber_count(EventType.ACTIVITY_RECORDED) == 0
