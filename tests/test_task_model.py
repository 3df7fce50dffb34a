"""
Tests for task model
"""

import pytest
from datetime import timedelta
from pydantic import ValidationError as PydanticValidationError
from taskhub.models.task import Task, TaskStatus
from taskhub.utils.date_utils import get_current_datetime
from taskhub.utils.error_handler import NotFoundError, PermissionDeniedError, ValidationError


def make_task(**fields):
    data = {"title": "Test Task", "owner_id": "user123"}
    data.update(fields)
    return Task(**data)


def test_task_defaults():
    """Test default values of a new task"""
    task = make_task()

    assert task.status == TaskStatus.PENDING
    assert task.priority == "medium"
    assert task.category == "other"
    assert task.visibility == "private"
    assert task.watchers == ["user123"]
    assert task.completed_at is None


def test_task_requires_title_and_owner():
    """Test required fields"""
    with pytest.raises(PydanticValidationError, match="Task title is required"):
        Task(title="  ", owner_id="user123")

    with pytest.raises(PydanticValidationError, match="User ID is required"):
        Task(title="Test Task", owner_id="")


def test_task_title_length():
    """Test title length limit"""
    with pytest.raises(PydanticValidationError, match="no more than 100 characters"):
        make_task(title="x" * 101)

    assert make_task(title="  Trimmed  ").title == "Trimmed"


def test_task_rejects_invalid_enum():
    """Test invalid status values"""
    with pytest.raises(PydanticValidationError):
        make_task(status="archived")

    task = make_task()
    with pytest.raises(ValidationError, match="Invalid priority: urgent"):
        task.set_priority("urgent")


def test_tags_are_normalized():
    """Test tags are trimmed, lowercased and deduplicated"""
    task = make_task(tags=[" Work ", "work", "Home"])

    assert task.tags == ["work", "home"]

    task.add_tag("HOME")
    task.add_tag("Urgent")
    task.remove_tag("work")
    assert task.tags == ["home", "urgent"]


def test_toggle_status_twice_restores_status():
    """Test toggling back and forth"""
    task = make_task()

    assert task.toggle_status() == TaskStatus.COMPLETED
    assert task.completed_at is not None

    assert task.toggle_status() == TaskStatus.PENDING
    assert task.completed_at is None


def test_completed_status_sets_completed_at():
    """Test completion timestamp follows status"""
    task = make_task(status="completed")
    assert task.completed_at is not None

    task.set_status("in-progress")
    assert task.completed_at is None


def test_is_overdue():
    """Test overdue detection"""
    yesterday = get_current_datetime() - timedelta(days=1)
    tomorrow = get_current_datetime() + timedelta(days=1)

    assert make_task(due_date=yesterday).is_overdue is True
    assert make_task(due_date=tomorrow).is_overdue is False
    assert make_task(due_date=yesterday, status="completed").is_overdue is False
    assert make_task().is_overdue is False


def test_owner_and_assignee_permissions():
    """Test owner and assignee may edit and delete"""
    task = make_task(assignee_id="user456")

    for user_id in ("user123", "user456"):
        assert task.can_access(user_id)
        assert task.can_edit(user_id)
        assert task.can_delete(user_id)

    assert not task.can_access("user789")
    assert not task.can_edit("user789")
    assert not task.can_delete("user789")
    assert not task.can_access(None)


def test_visibility_grants_access():
    """Test team and public tasks are readable but not editable"""
    task = make_task(visibility="public")

    assert task.can_access("user789")
    assert not task.can_edit("user789")
    assert task.is_shared


def test_share_with():
    """Test sharing grants access with the given permissions"""
    task = make_task()

    assert task.share_with("user456", can_edit=False, shared_by="user123") is True
    assert task.share_with("user456") is False

    assert task.can_access("user456")
    assert task.can_comment("user456")
    assert not task.can_edit("user456")
    assert not task.can_share("user456")
    assert task.share_history[0].user_id == "user456"

    assert task.unshare_with("user456") is True
    assert not task.can_access("user456")
    assert "user456" not in task.permissions


def test_share_with_invalid_users():
    """Test sharing with the owner or a blank id"""
    task = make_task()

    with pytest.raises(ValidationError, match="Cannot share task with creator"):
        task.share_with("user123")

    with pytest.raises(ValidationError, match="Valid user ID is required for sharing"):
        task.share_with("  ")


def test_collaborator_roles():
    """Test collaborator role grants"""
    task = make_task()
    task.add_collaborator("user456", role="editor")
    task.add_collaborator("user789")

    assert task.can_edit("user456")
    assert not task.can_edit("user789")
    assert task.add_collaborator("user456") is False
    assert task.total_collaborators == 3

    assert task.remove_collaborator("user456") is True
    assert not task.can_access("user456")


def test_assign_to_records_history():
    """Test assignment updates assignee, history and watchers"""
    task = make_task()

    task.assign_to("user456", assigned_by="user123")

    assert task.assignee_id == "user456"
    assert task.assignment_history[0].previous_assignee is None
    assert "user456" in task.watchers


def test_add_comment_with_mentions():
    """Test comments and mentioned users becoming watchers"""
    task = make_task()

    comment = task.add_comment("Please look @user456", "user123", mentions=["user456"])

    assert task.comment_count == 1
    assert comment.mentions == ["user456"]
    assert "user456" in task.watchers
    assert task.last_comment_at == comment.created_at

    reply = task.add_comment("Done", "user123", parent_id=comment.id)
    assert reply.parent_id == comment.id


def test_add_comment_validation():
    """Test comment permission and content checks"""
    task = make_task()

    with pytest.raises(PermissionDeniedError, match="User does not have permission to comment"):
        task.add_comment("Hello", "user789")

    with pytest.raises(ValidationError, match="Comment content is required"):
        task.add_comment("   ", "user123")

    with pytest.raises(NotFoundError, match="Comment not found"):
        task.add_comment("Reply", "user123", parent_id="missing")


def test_comment_edit_delete_resolve_permissions():
    """Test who may change comments"""
    task = make_task()
    task.share_with("user456", can_edit=False)
    comment = task.add_comment("From bob", "user456")

    with pytest.raises(PermissionDeniedError, match="Only comment author can edit comment"):
        task.update_comment(comment.id, "Changed", "user123")

    edited = task.update_comment(comment.id, "Changed by bob", "user456")
    assert edited.is_edited

    with pytest.raises(PermissionDeniedError, match="User does not have permission to resolve comments"):
        task.resolve_comment(comment.id, "user456")
    assert task.resolve_comment(comment.id, "user123").is_resolved

    with pytest.raises(PermissionDeniedError, match="Only comment author or task creator can delete comment"):
        task.delete_comment(comment.id, "user789")

    task.delete_comment(comment.id, "user123")
    assert task.comment_count == 0


def test_comment_reactions():
    """Test reaction bookkeeping"""
    task = make_task()
    comment = task.add_comment("Ship it", "user123")

    assert comment.add_reaction("+1", "user123") is True
    assert comment.add_reaction("+1", "user456") is True
    assert comment.add_reaction("+1", "user456") is False
    assert comment.remove_reaction("+1", "user123") is True
    assert comment.remove_reaction("+1", "user123") is False

    assert comment.reaction_summary() == {"+1": 1}

    with pytest.raises(ValidationError, match="Reaction must be a non-empty string"):
        comment.add_reaction("  ", "user123")


def test_workflow():
    """Test workflow stage and reviews"""
    task = make_task()
    task.set_workflow_stage("review")

    assert task.add_reviewer("user456") is True
    assert task.add_reviewer("user456") is False
    assert task.needs_review
    assert task.can_access("user456")
    assert "user456" in task.watchers

    with pytest.raises(PermissionDeniedError):
        task.approve("user789")

    task.approve("user456", comment="LGTM")
    assert task.has_approvals and not task.needs_review

    with pytest.raises(ValidationError, match="Invalid workflow stage: shipped"):
        task.set_workflow_stage("shipped")


def test_dependencies():
    """Test dependency bookkeeping"""
    task = make_task(id="task_1")

    assert task.add_dependency("task_2") is True
    assert task.add_dependency("task_2") is False
    assert task.add_dependency("task_3") is True
    assert task.blocked_by == ["task_2", "task_3"]
    assert task.is_blocked
    assert task.has_dependency("task_2")

    with pytest.raises(ValidationError, match="Task cannot depend on itself"):
        task.add_dependency("task_1")

    assert task.remove_dependency("task_2") is True
    assert task.remove_dependency("task_2") is False
    assert not task.has_dependency("task_2")
    assert task.has_dependency("task_3")

    other = make_task(id="task_3")
    other.add_blocked_task("task_1")
    other.add_blocked_task("task_1")
    assert other.blocking == ["task_1"]
    other.remove_blocked_task("task_1")
    assert other.blocking == []


def test_time_tracking():
    """Test hours and progress"""
    task = make_task()
    assert task.progress == 0
    assert task.add_time_spent(3) == 3
    task.set_actual_hours(4)
    assert task.add_time_spent(2) == 6
    assert task.add_time_spent(0) == 6

    task.set_estimated_hours(10)
    task.set_actual_hours(5)
    assert task.progress == 50

    task.set_actual_hours(15)
    assert task.progress == 100

    task.set_actual_hours(5)
    task.mark_completed()
    assert task.progress == 100

    with pytest.raises(ValidationError, match="Hours must be a positive number"):
        task.set_estimated_hours(-1)
    with pytest.raises(ValidationError, match="Hours must be a positive number"):
        task.add_time_spent(-2)
    with pytest.raises(ValidationError, match="Hours must be a positive number"):
        task.add_time_spent("two")

    with pytest.raises(PydanticValidationError, match="Hours must be a positive number"):
        make_task(estimated_hours=-3)


def test_notes():
    """Test adding and removing notes"""
    task = make_task()
    first = task.add_note("  Note 1 ", author_id="user123")
    task.add_note("Note 2")

    assert first.content == "Note 1"
    assert first.author_id == "user123"
    assert first.id.startswith("note_")

    assert task.remove_note(first.id) is True
    assert task.remove_note(first.id) is False
    assert [n.content for n in task.notes] == ["Note 2"]

    with pytest.raises(ValidationError, match="Note must be a non-empty string"):
        task.add_note("")
    with pytest.raises(ValidationError, match="Note must be a non-empty string"):
        task.add_note(None)


def test_days_until_due():
    """Test whole days to the due date"""
    today = get_current_datetime().replace(hour=12, minute=0, second=0, microsecond=0)

    assert make_task().days_until_due is None
    assert make_task(due_date=today + timedelta(days=7)).days_until_due == 7
    assert make_task(due_date=today).days_until_due == 0
    assert make_task(due_date=today - timedelta(days=3)).days_until_due == -3


def test_dump_uses_camel_case():
    """Test serialized field names"""
    data = make_task(due_date="2030-01-01").model_dump(mode="json", by_alias=True)

    assert data["ownerId"] == "user123"
    assert data["dueDate"].startswith("2030-01-01")
    assert "owner_id" not in data
