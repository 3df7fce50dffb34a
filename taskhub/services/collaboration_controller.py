"""
Collaboration controller
"""

from typing import Any, Dict, List, Optional
from taskhub.config.settings import settings
from taskhub.config.constants import (
    DEFAULT_ACTIVITY_LIMIT,
    DEFAULT_COLLABORATOR_LIMIT,
    DEFAULT_NOTIFICATION_LIMIT,
    DEFAULT_TEAM_ACTIVITY_LIMIT,
)
from taskhub.models.activity import ActivityType
from taskhub.models.context import RequestContext
from taskhub.models.response import Response
from taskhub.models.task import Task
from taskhub.models.team import Team
from taskhub.models.user import TeamRole
from taskhub.services.activity_feed import ActivityFeed
from taskhub.services.base_controller import BaseController
from taskhub.services.event_bus import EventBus, EventType
from taskhub.services.notification_service import NotificationService
from taskhub.services.task_repository import TaskRepository
from taskhub.services.team_repository import TeamRepository
from taskhub.services.user_repository import UserRepository
from taskhub.utils.error_handler import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    handles_errors,
    validation_error_from_pydantic,
)
from taskhub.utils.formatters import format_comment_preview
from taskhub.utils.mentions import extract_mentions
from pydantic import ValidationError as PydanticValidationError

COMMENT_DENIED = "Permission denied: Cannot comment on this task"
TEAM_DENIED = "Permission denied: Cannot manage this team"


class CollaborationController(BaseController):
    """Sharing, assignment, comments, teams, activity and notifications"""

    def __init__(
        self,
        task_repository: TaskRepository,
        user_repository: UserRepository,
        team_repository: TeamRepository,
        activity_feed: ActivityFeed,
        notification_service: NotificationService,
        event_bus: Optional[EventBus] = None,
        max_collaborators_per_task: Optional[int] = None,
        max_comments_per_task: Optional[int] = None,
        enable_notifications: Optional[bool] = None,
        enable_real_time_updates: Optional[bool] = None,
    ):
        """
        Initialize collaboration controller

        Args:
            task_repository: Task repository
            user_repository: User repository
            team_repository: Team repository
            activity_feed: Activity feed
            notification_service: Notification inboxes
            event_bus: Event bus for real-time events (optional)
            max_collaborators_per_task: Cap on shared users plus collaborators
            max_comments_per_task: Cap on comments per task
            enable_notifications: Record activities with notification fan-out
            enable_real_time_updates: Publish events on the bus
        """
        super().__init__(task_repository, user_repository, event_bus, activity_feed)
        self.teams = team_repository
        self.notifications = notification_service
        self.max_collaborators_per_task = max_collaborators_per_task or settings.MAX_COLLABORATORS_PER_TASK
        self.max_comments_per_task = max_comments_per_task or settings.MAX_COMMENTS_PER_TASK
        self.enable_notifications = (
            settings.ENABLE_NOTIFICATIONS if enable_notifications is None else enable_notifications
        )
        self.enable_real_time_updates = (
            settings.ENABLE_REAL_TIME_UPDATES if enable_real_time_updates is None else enable_real_time_updates
        )

    async def _emit(self, event_type: EventType, payload: Dict[str, Any]) -> None:
        if self.enable_real_time_updates:
            await super()._emit(event_type, payload)

    async def _record(self, activity_type: ActivityType, ctx: RequestContext, task: Optional[Task] = None, **kwargs) -> None:
        kwargs.setdefault("notify", self.enable_notifications)
        await super()._record(activity_type, ctx, task, **kwargs)

    def _ensure_capacity(self, task: Task) -> None:
        if len(set(task.shared_with) | set(task.collaborators)) >= self.max_collaborators_per_task:
            raise ValidationError(
                f"Maximum number of collaborators ({self.max_collaborators_per_task}) reached"
            )

    async def _resolve_mentions(self, content: str) -> List[str]:
        """Map @handles to user ids; handles matching neither a username nor an id are dropped"""
        user_ids: List[str] = []
        for handle in extract_mentions(content):
            user = await self.users.find_by_username(handle)
            if user is None:
                user = await self.users.find_by_id(handle)
            if user is not None and user.id not in user_ids:
                user_ids.append(user.id)
        return user_ids

    # Sharing and assignment

    @handles_errors
    async def share_task(
        self,
        ctx: Optional[RequestContext],
        task_id: str,
        user_id: str,
        can_edit: bool = False,
        can_comment: bool = True,
        can_share: bool = False,
    ) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_share(ctx, task)
        if user_id not in task.shared_with:
            self._ensure_capacity(task)
        saved = await self._share(
            ctx, task_id, user_id, can_edit=can_edit, can_comment=can_comment, can_share=can_share
        )
        return Response.ok(saved)

    @handles_errors
    async def unshare_task(self, ctx: Optional[RequestContext], task_id: str, user_id: str) -> Response:
        ctx = self._require_user(ctx)
        return Response.ok(await self._unshare(ctx, task_id, user_id))

    @handles_errors
    async def assign_task(self, ctx: Optional[RequestContext], task_id: str, assignee_id: str) -> Response:
        ctx = self._require_user(ctx)
        return Response.ok(await self._assign(ctx, task_id, assignee_id))

    @handles_errors
    async def add_collaborator(
        self,
        ctx: Optional[RequestContext],
        task_id: str,
        user_id: str,
        role: str = "contributor",
    ) -> Response:
        """
        Add collaborator to task

        Args:
            ctx: Caller context
            task_id: Task id
            user_id: User to add
            role: "contributor", "editor" (may edit) or "owner" (may edit and share)

        Returns:
            Response with updated task
        """
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)
        await self._load_user(user_id)
        if user_id not in task.collaborators:
            self._ensure_capacity(task)

        if not task.add_collaborator(user_id, role=role):
            raise ValidationError("User is already a collaborator")
        task.add_watcher(user_id)

        saved = await self._save_task(task)
        await self._emit(EventType.COLLABORATOR_ADDED, {"task": saved, "user_id": user_id, "role": role})
        await self._record(ActivityType.COLLABORATOR_ADDED, ctx, saved, recipients=[user_id], data={"role": role})
        return Response.ok(saved)

    @handles_errors
    async def remove_collaborator(self, ctx: Optional[RequestContext], task_id: str, user_id: str) -> Response:
        """Remove collaborator; collaborators may remove themselves"""
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        if ctx.user_id != user_id:
            self._ensure_can_modify(ctx, task)

        if not task.remove_collaborator(user_id):
            raise NotFoundError("Collaborator not found")

        saved = await self._save_task(task)
        await self._emit(EventType.COLLABORATOR_REMOVED, {"task": saved, "user_id": user_id})
        await self._record(ActivityType.COLLABORATOR_REMOVED, ctx, saved, recipients=[user_id])
        return Response.ok(saved)

    @handles_errors
    async def watch_task(self, ctx: Optional[RequestContext], task_id: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_view(ctx, task)

        if not task.add_watcher(ctx.user_id):
            return Response.done("Already watching this task")

        saved = await self._save_task(task)
        await self._emit(EventType.WATCHER_ADDED, {"task": saved, "user_id": ctx.user_id})
        return Response.ok(saved)

    @handles_errors
    async def unwatch_task(self, ctx: Optional[RequestContext], task_id: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)

        if not task.remove_watcher(ctx.user_id):
            return Response.done("Not watching this task")

        saved = await self._save_task(task)
        await self._emit(EventType.WATCHER_REMOVED, {"task": saved, "user_id": ctx.user_id})
        return Response.ok(saved)

    # Comments

    @handles_errors
    async def add_comment(
        self,
        ctx: Optional[RequestContext],
        task_id: str,
        content: str,
        parent_id: Optional[str] = None,
    ) -> Response:
        """
        Comment on a task

        Mentioned users become watchers. Watchers and mentioned users, except
        the author, are notified.

        Args:
            ctx: Caller context
            task_id: Task id
            content: Comment text; @username mentions are resolved to users
            parent_id: Comment being replied to

        Returns:
            Response with the new comment
        """
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        if not (ctx.is_admin or task.can_comment(ctx.user_id)):
            raise PermissionDeniedError(COMMENT_DENIED)
        if len(task.comments) >= self.max_comments_per_task:
            raise ValidationError("Maximum number of comments reached")

        mentions = await self._resolve_mentions(content or "")
        comment = task.add_comment(content, ctx.user_id, parent_id=parent_id, mentions=mentions)
        saved = await self._save_task(task)

        await self._bump_stat(ctx.user_id, "comments_posted")
        await self._emit(EventType.COMMENT_ADDED, {"task": saved, "comment": comment, "user_id": ctx.user_id})
        await self._record(
            ActivityType.COMMENT_ADDED,
            ctx,
            saved,
            mentions=mentions,
            recipients=saved.watchers,
            data={"comment_id": comment.id, "comment_preview": format_comment_preview(comment.content)},
        )
        return Response.ok(comment)

    @handles_errors
    async def update_comment(
        self,
        ctx: Optional[RequestContext],
        task_id: str,
        comment_id: str,
        content: str,
    ) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        previous = set(task.find_comment(comment_id).mentions)

        mentions = await self._resolve_mentions(content or "")
        comment = task.update_comment(comment_id, content, ctx.user_id, mentions=mentions)
        saved = await self._save_task(task)

        await self._emit(EventType.COMMENT_UPDATED, {"task": saved, "comment": comment, "user_id": ctx.user_id})
        await self._record(
            ActivityType.COMMENT_UPDATED,
            ctx,
            saved,
            mentions=[m for m in mentions if m not in previous],
            data={"comment_id": comment.id},
        )
        return Response.ok(comment)

    @handles_errors
    async def delete_comment(self, ctx: Optional[RequestContext], task_id: str, comment_id: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)

        comment = task.delete_comment(comment_id, ctx.user_id, force=ctx.is_admin)
        saved = await self._save_task(task)

        await self._emit(EventType.COMMENT_DELETED, {"task": saved, "comment_id": comment_id, "user_id": ctx.user_id})
        await self._record(
            ActivityType.COMMENT_DELETED, ctx, saved, data={"comment_id": comment.id}, notify=False
        )
        return Response.done("Comment deleted")

    @handles_errors
    async def resolve_comment(self, ctx: Optional[RequestContext], task_id: str, comment_id: str) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)

        comment = task.resolve_comment(comment_id, ctx.user_id, force=ctx.is_admin)
        saved = await self._save_task(task)

        await self._emit(EventType.COMMENT_RESOLVED, {"task": saved, "comment": comment, "user_id": ctx.user_id})
        await self._record(
            ActivityType.COMMENT_RESOLVED, ctx, saved, recipients=[comment.author_id], data={"comment_id": comment.id}
        )
        return Response.ok(comment)

    @handles_errors
    async def add_reaction(
        self,
        ctx: Optional[RequestContext],
        task_id: str,
        comment_id: str,
        emoji: str,
    ) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        if not (ctx.is_admin or task.can_comment(ctx.user_id)):
            raise PermissionDeniedError(COMMENT_DENIED)

        comment = task.find_comment(comment_id)
        if not comment.add_reaction(emoji, ctx.user_id):
            raise ValidationError("Reaction already added")
        saved = await self._save_task(task)

        await self._emit(
            EventType.REACTION_ADDED,
            {"task": saved, "comment_id": comment.id, "emoji": emoji, "reactions": comment.reaction_summary()},
        )
        return Response.ok(comment)

    @handles_errors
    async def remove_reaction(
        self,
        ctx: Optional[RequestContext],
        task_id: str,
        comment_id: str,
        emoji: str,
    ) -> Response:
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_view(ctx, task)

        comment = task.find_comment(comment_id)
        if not comment.remove_reaction(emoji, ctx.user_id):
            raise NotFoundError("Reaction not found")
        saved = await self._save_task(task)

        await self._emit(
            EventType.REACTION_REMOVED,
            {"task": saved, "comment_id": comment.id, "emoji": emoji, "reactions": comment.reaction_summary()},
        )
        return Response.ok(comment)

    # Reviews

    @handles_errors
    async def request_review(self, ctx: Optional[RequestContext], task_id: str, reviewer_id: str) -> Response:
        """
        Ask a user to review a task

        Reviewers can view the task and start watching it.

        Args:
            ctx: Caller context (must be able to modify the task)
            task_id: Task id
            reviewer_id: User asked to review

        Returns:
            Response with updated task
        """
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_modify(ctx, task)
        if not reviewer_id:
            raise ValidationError("Missing required parameters: reviewer_id")
        await self._load_user(reviewer_id, message="Reviewer not found")

        if not task.add_reviewer(reviewer_id):
            raise ValidationError("User is already a reviewer")
        saved = await self._save_task(task)

        await self._emit(EventType.REVIEW_REQUESTED, {"task": saved, "reviewer_id": reviewer_id, "user_id": ctx.user_id})
        await self._record(ActivityType.REVIEW_REQUESTED, ctx, saved, recipients=[reviewer_id])
        return Response.ok(saved)

    @handles_errors
    async def approve_task(self, ctx: Optional[RequestContext], task_id: str, comment: str = "") -> Response:
        """Approve a task as one of its reviewers; the owner is notified"""
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)

        approval = task.approve(ctx.user_id, comment=comment)
        saved = await self._save_task(task)

        await self._bump_stat(ctx.user_id, "reviews_given")
        await self._bump_stat(saved.owner_id, "reviews_received")
        await self._emit(EventType.TASK_APPROVED, {"task": saved, "approval": approval, "user_id": ctx.user_id})
        await self._record(ActivityType.TASK_APPROVED, ctx, saved, data={"comment": approval.comment})
        return Response.ok(saved)

    # Teams

    @handles_errors
    async def create_team(
        self,
        ctx: Optional[RequestContext],
        name: str,
        description: str = "",
    ) -> Response:
        ctx = self._require_user(ctx)
        creator = await self._load_user(ctx.user_id)

        try:
            team = Team(name=name, description=description or "", creator_id=ctx.user_id)
        except PydanticValidationError as e:
            raise validation_error_from_pydantic(e)
        team = await self.teams.create(team)

        creator.join_team(team.id, role=TeamRole.ADMIN.value)
        await self.users.update(creator.id, creator)

        await self._emit(EventType.TEAM_CREATED, {"team": team, "user_id": ctx.user_id})
        await self._record(
            ActivityType.TEAM_CREATED, ctx, target_id=team.id, data={"team_name": team.name}, notify=False
        )
        self.logger.info(f"[CollaborationController] Team {team.id} created by {ctx.user_id}")
        return Response.ok(team)

    @handles_errors
    async def invite_to_team(
        self,
        ctx: Optional[RequestContext],
        team_id: str,
        user_id: str,
        role: str = TeamRole.MEMBER.value,
    ) -> Response:
        """Add user to team; requires the manage_team permission in that team"""
        ctx = self._require_user(ctx)
        team = await self.teams.find_by_id(team_id)
        if team is None:
            raise NotFoundError("Team not found")

        inviter = await self._load_user(ctx.user_id)
        if not (ctx.is_admin or inviter.has_team_permission(team_id, "manage_team")):
            raise PermissionDeniedError(TEAM_DENIED)

        invitee = await self._load_user(user_id)
        if team.is_member(invitee.id):
            raise ValidationError("User is already a team member")

        invitee.join_team(team_id, role=role)
        team_role = invitee.get_team_role(team_id)
        team.add_member(invitee.id, team_role)
        team = await self.teams.update(team_id, team)
        await self.users.update(invitee.id, invitee)

        await self._emit(EventType.TEAM_MEMBER_INVITED, {"team": team, "user_id": user_id, "role": team_role.value})
        await self._record(
            ActivityType.TEAM_INVITATION,
            ctx,
            target_id=team_id,
            recipients=[user_id],
            data={"team_name": team.name, "role": team_role.value},
        )
        return Response.ok(team)

    # Activity and notifications

    @handles_errors
    async def get_user_activity(
        self,
        ctx: Optional[RequestContext],
        user_id: Optional[str] = None,
        limit: int = DEFAULT_ACTIVITY_LIMIT,
        offset: int = 0,
    ) -> Response:
        ctx = self._require_user(ctx)
        user_id = user_id or ctx.user_id
        if user_id != ctx.user_id and not ctx.is_admin:
            raise PermissionDeniedError("Permission denied: Cannot view this activity")
        return Response.ok(self.activity_feed.get_activities_for_user(user_id, limit=limit, offset=offset))

    @handles_errors
    async def get_team_activity(
        self,
        ctx: Optional[RequestContext],
        team_id: Optional[str] = None,
        limit: int = DEFAULT_TEAM_ACTIVITY_LIMIT,
        offset: int = 0,
    ) -> Response:
        """Team feed; without team_id the whole feed is returned"""
        ctx = self._require_user(ctx)
        if team_id is None:
            return Response.ok(self.activity_feed.get_team_activities(limit=limit, offset=offset))

        team = await self.teams.find_by_id(team_id)
        if team is None:
            raise NotFoundError("Team not found")
        if not (ctx.is_admin or team.is_member(ctx.user_id)):
            raise PermissionDeniedError("Permission denied: Cannot view this team")
        return Response.ok(
            self.activity_feed.get_team_activities(limit=limit, offset=offset, member_ids=team.members)
        )

    @handles_errors
    async def get_user_notifications(
        self,
        ctx: Optional[RequestContext],
        limit: int = DEFAULT_NOTIFICATION_LIMIT,
        offset: int = 0,
        unread_only: bool = False,
    ) -> Response:
        ctx = self._require_user(ctx)
        notifications = self.notifications.get_notifications(
            ctx.user_id, limit=limit, offset=offset, unread_only=unread_only
        )
        return Response.ok({
            "notifications": notifications,
            "unread_count": self.notifications.get_unread_count(ctx.user_id),
        })

    @handles_errors
    async def mark_notification_as_read(self, ctx: Optional[RequestContext], notification_id: str) -> Response:
        ctx = self._require_user(ctx)
        if not self.notifications.mark_as_read(ctx.user_id, notification_id):
            raise NotFoundError("Notification not found")
        return Response.done("Notification marked as read")

    @handles_errors
    async def mark_all_notifications_as_read(self, ctx: Optional[RequestContext]) -> Response:
        ctx = self._require_user(ctx)
        count = self.notifications.mark_all_as_read(ctx.user_id)
        return Response.done(f"Marked {count} notification(s) as read")

    # Directory and stats

    @handles_errors
    async def search_collaborators(
        self,
        ctx: Optional[RequestContext],
        query: str = "",
        team_id: Optional[str] = None,
        limit: int = DEFAULT_COLLABORATOR_LIMIT,
    ) -> Response:
        """
        Find users to collaborate with

        Available users come first, then higher collaboration scores.
        The caller and inactive users are excluded.
        """
        ctx = self._require_user(ctx)
        needle = (query or "").strip().lower()

        def matches(user) -> bool:
            if user.id == ctx.user_id or not user.is_active:
                return False
            if team_id and team_id not in user.teams:
                return False
            return not needle or (
                needle in user.username.lower()
                or needle in (user.display_name or "").lower()
                or needle in user.email.lower()
            )

        users = await self.users.find_where(matches)
        users.sort(key=lambda u: (not u.is_available, -u.collaboration_score))
        return Response.ok([user.to_public_dict() for user in users[:limit]])

    @handles_errors
    async def get_collaboration_stats(self, ctx: Optional[RequestContext], user_id: Optional[str] = None) -> Response:
        ctx = self._require_user(ctx)
        user = await self._load_user(user_id or ctx.user_id)

        tasks = await self.tasks.find_all()
        return Response.ok({
            "user_stats": user.collaboration_stats.model_dump(),
            "collaboration_score": user.collaboration_score,
            "tasks_owned": sum(1 for t in tasks if t.owner_id == user.id),
            "tasks_assigned": sum(1 for t in tasks if t.assignee_id == user.id and t.owner_id != user.id),
            "tasks_shared_with_me": sum(1 for t in tasks if user.id in t.shared_with),
            "tasks_collaborating": sum(1 for t in tasks if user.id in t.collaborators),
            "teams": len(user.teams),
            "unread_notifications": self.notifications.get_unread_count(user.id),
        })

    @handles_errors
    async def get_task_collaborators(self, ctx: Optional[RequestContext], task_id: str) -> Response:
        """Everyone involved in a task with their roles"""
        ctx = self._require_user(ctx)
        task = await self._load_task(task_id)
        self._ensure_can_view(ctx, task)

        roles: Dict[str, List[str]] = {}

        def add(user_id: Optional[str], role: str) -> None:
            if user_id:
                roles.setdefault(user_id, [])
                if role not in roles[user_id]:
                    roles[user_id].append(role)

        add(task.owner_id, "owner")
        add(task.assignee_id, "assignee")
        for user_id in task.collaborators:
            add(user_id, "collaborator")
        for user_id in task.shared_with:
            add(user_id, "shared")
        for user_id in task.reviewers:
            add(user_id, "reviewer")
        for user_id in task.watchers:
            add(user_id, "watcher")

        collaborators = []
        for user_id, user_roles in roles.items():
            user = await self.users.find_by_id(user_id)
            if user is None:
                continue
            entry = user.to_public_dict()
            entry["roles"] = user_roles
            permission = task.permissions.get(user_id)
            entry["permissions"] = permission.model_dump(mode="json") if permission else None
            collaborators.append(entry)
        return Response.ok(collaborators)

    @handles_errors
    async def get_shared_tasks(self, ctx: Optional[RequestContext]) -> Response:
        """Tasks other users shared with the caller or added the caller to"""
        ctx = self._require_user(ctx)
        tasks = await self.tasks.find_where(
            lambda t: t.owner_id != ctx.user_id
            and (ctx.user_id in t.shared_with or ctx.user_id in t.collaborators)
        )
        return Response.ok(tasks)
