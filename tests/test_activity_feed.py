"""
Tests for activity feed
"""

import pytest
from taskhub.models.activity import ActivityType
from taskhub.services.activity_feed import ActivityFeed
from taskhub.services.event_bus import EventBus, EventType


@pytest.mark.asyncio
async def test_add_activity_newest_first():
    """Test activities are kept newest first"""
    feed = ActivityFeed(max_activities=10)

    first = await feed.add_activity(ActivityType.TASK_CREATED, "user123", target_id="task_1")
    second = await feed.add_activity(ActivityType.TASK_UPDATED, "user123", target_id="task_1")

    assert [a.id for a in feed.get_team_activities()] == [second.id, first.id]
    assert feed.get_activity(first.id) is first
    assert len(feed) == 2


@pytest.mark.asyncio
async def test_feed_is_capped():
    """Test the oldest entries are dropped past the cap"""
    feed = ActivityFeed(max_activities=3)

    for i in range(5):
        await feed.add_activity(ActivityType.TASK_CREATED, "user123", data={"n": i})

    assert len(feed) == 3
    assert [a.data["n"] for a in feed.get_team_activities()] == [4, 3, 2]


@pytest.mark.asyncio
async def test_add_activity_publishes_event():
    """Test each activity is announced on the bus"""
    bus = EventBus()
    received = []
    bus.subscribe(EventType.ACTIVITY_RECORDED, lambda event: received.append(event.payload["activity"]))
    feed = ActivityFeed(event_bus=bus)

    activity = await feed.add_activity(ActivityType.TASK_SHARED, "user123", recipients=["user456"])

    assert received == [activity]


@pytest.mark.asyncio
async def test_activities_for_user():
    """Test per-user view covers actor, mentions, assignees and recipients"""
    feed = ActivityFeed()
    await feed.add_activity(ActivityType.TASK_CREATED, "user123")
    await feed.add_activity(ActivityType.COMMENT_ADDED, "user123", mentions=["user456"])
    await feed.add_activity(ActivityType.TASK_ASSIGNED, "user123", assignees=["user789"])
    await feed.add_activity(ActivityType.TASK_SHARED, "user123", recipients=["user456"])

    assert len(feed.get_activities_for_user("user123")) == 4
    assert [a.type for a in feed.get_activities_for_user("user456")] == [
        ActivityType.TASK_SHARED,
        ActivityType.COMMENT_ADDED,
    ]
    assert len(feed.get_activities_for_user("user456", limit=1)) == 1
    assert feed.get_activities_for_user("nobody") == []


@pytest.mark.asyncio
async def test_team_activities_and_targets():
    """Test filtering by team members and by target"""
    feed = ActivityFeed()
    await feed.add_activity(ActivityType.TASK_CREATED, "user123", target_id="task_1")
    await feed.add_activity(ActivityType.TASK_CREATED, "user456", target_id="task_2")
    await feed.add_activity(ActivityType.TASK_UPDATED, "user789", target_id="task_1")

    team = feed.get_team_activities(member_ids=["user123", "user456"])
    assert [a.user_id for a in team] == ["user456", "user123"]
    assert len(feed.get_team_activities(limit=1, offset=1)) == 1
    assert [a.user_id for a in feed.get_activities_for_target("task_1")] == ["user789", "user123"]


@pytest.mark.asyncio
async def test_mark_as_read():
    """Test read tracking"""
    feed = ActivityFeed()
    activity = await feed.add_activity(ActivityType.TASK_CREATED, "user123")

    assert feed.mark_as_read(activity.id, "user456") is True
    assert feed.mark_as_read(activity.id, "user456") is True
    assert activity.read_by == ["user456"]
    assert activity.is_read_by("user456")
    assert feed.mark_as_read("missing", "user456") is False

    feed.clear()
    assert len(feed) == 0
