"""
User model
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from taskhub.config.constants import (
    COLLABORATION_SCORE_WEIGHTS,
    TEAM_ROLE_PERMISSIONS,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from taskhub.utils.date_utils import get_current_datetime
from taskhub.utils.error_handler import ValidationError

USERNAME_PATTERN = re.compile(r"^\w+$")


class UserRole(str, Enum):
    """Global user role"""
    USER = "user"
    ADMIN = "admin"


class TeamRole(str, Enum):
    """Role inside a team"""
    MEMBER = "member"
    CONTRIBUTOR = "contributor"
    MAINTAINER = "maintainer"
    LEAD = "lead"
    ADMIN = "admin"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class Availability(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    AWAY = "away"
    OFFLINE = "offline"


class Skill(BaseModel):
    """User skill with endorsements"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    name: str
    level: SkillLevel = SkillLevel.BEGINNER
    endorsements: int = 0
    endorsed_by: List[str] = Field(default_factory=list)
    added_at: datetime = Field(default_factory=get_current_datetime)


class CollaborationStats(BaseModel):
    """Collaboration counters"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    tasks_created: int = 0
    tasks_completed: int = 0
    tasks_assigned: int = 0
    tasks_shared: int = 0
    comments_posted: int = 0
    reviews_given: int = 0
    reviews_received: int = 0
    mentoring_sessions: int = 0


DEFAULT_NOTIFICATION_SETTINGS = {
    "task_assigned": True,
    "task_completed": True,
    "task_commented": True,
    "task_shared": True,
    "mention_received": True,
    "review_requested": True,
    "team_invitation": True,
}


def _skill_key(name: str) -> str:
    return name.strip().lower()


class User(BaseModel):
    """Application user with team membership and collaboration profile"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: Optional[str] = None
    username: str
    email: EmailStr
    display_name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True

    teams: List[str] = Field(default_factory=list)
    team_roles: Dict[str, TeamRole] = Field(default_factory=dict)
    primary_team: Optional[str] = None

    skills: List[Skill] = Field(default_factory=list)
    availability: Availability = Availability.AVAILABLE
    status_message: str = ""
    collaboration_stats: CollaborationStats = Field(default_factory=CollaborationStats)
    notification_settings: Dict[str, bool] = Field(
        default_factory=lambda: dict(DEFAULT_NOTIFICATION_SETTINGS)
    )

    version: int = 0
    created_at: datetime = Field(default_factory=get_current_datetime)
    updated_at: datetime = Field(default_factory=get_current_datetime)
    last_active_at: datetime = Field(default_factory=get_current_datetime)

    @field_validator("username", mode="before")
    @classmethod
    def _validate_username(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required")
        value = value.strip()
        if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
            raise ValueError(
                f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
            )
        if not USERNAME_PATTERN.match(value):
            raise ValueError("Username can only contain letters, numbers and underscores")
        return value

    @model_validator(mode="after")
    def _default_display_name(self) -> "User":
        if not self.display_name:
            self.display_name = self.username
        return self

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_available(self) -> bool:
        return self.availability == Availability.AVAILABLE

    @property
    def is_team_member(self) -> bool:
        return bool(self.teams)

    @property
    def is_team_lead(self) -> bool:
        return any(role in (TeamRole.LEAD, TeamRole.ADMIN) for role in self.team_roles.values())

    @property
    def collaboration_score(self) -> int:
        stats = self.collaboration_stats.model_dump()
        return sum(stats.get(name, 0) * weight for name, weight in COLLABORATION_SCORE_WEIGHTS.items())

    def touch(self) -> None:
        now = get_current_datetime()
        self.updated_at = now
        self.last_active_at = now

    # Teams

    def join_team(self, team_id: str, role: str = TeamRole.MEMBER.value) -> bool:
        if not isinstance(team_id, str) or not team_id.strip():
            raise ValidationError("Valid team ID is required")
        if team_id in self.teams:
            return False

        team_role = self._team_role(role)
        self.teams.append(team_id)
        self.team_roles[team_id] = team_role
        if not self.primary_team:
            self.primary_team = team_id
        self.touch()
        return True

    def leave_team(self, team_id: str) -> bool:
        if team_id not in self.teams:
            return False

        self.teams.remove(team_id)
        self.team_roles.pop(team_id, None)
        if self.primary_team == team_id:
            self.primary_team = self.teams[0] if self.teams else None
        self.touch()
        return True

    def set_team_role(self, team_id: str, role: str) -> None:
        if team_id not in self.teams:
            raise ValidationError("User is not a member of this team")
        self.team_roles[team_id] = self._team_role(role)
        self.touch()

    def get_team_role(self, team_id: str) -> Optional[TeamRole]:
        return self.team_roles.get(team_id)

    def set_primary_team(self, team_id: str) -> None:
        if team_id not in self.teams:
            raise ValidationError("Cannot set primary team to a team user is not a member of")
        self.primary_team = team_id
        self.touch()

    def has_team_permission(self, team_id: str, permission: str) -> bool:
        role = self.get_team_role(team_id)
        if role is None:
            return False
        granted = TEAM_ROLE_PERMISSIONS.get(role.value, [])
        return "*" in granted or permission in granted

    @staticmethod
    def _team_role(role: str) -> TeamRole:
        try:
            return TeamRole(role)
        except ValueError:
            valid = ", ".join(r.value for r in TeamRole)
            raise ValidationError(f"Invalid role: {role}. Must be one of: {valid}")

    # Status

    def set_availability(self, availability: str, status_message: str = "") -> None:
        try:
            self.availability = Availability(availability)
        except ValueError:
            valid = ", ".join(a.value for a in Availability)
            raise ValidationError(f"Invalid availability: {availability}. Must be one of: {valid}")
        self.status_message = status_message
        self.touch()

    # Stats

    def update_collaboration_stats(self, stat: str, increment: int = 1) -> None:
        if stat not in CollaborationStats.model_fields:
            raise ValidationError(f"Invalid collaboration stat type: {stat}")
        setattr(self.collaboration_stats, stat, getattr(self.collaboration_stats, stat) + increment)
        self.touch()

    # Skills

    def add_skill(self, name: str, level: str = SkillLevel.BEGINNER.value) -> Skill:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Skill must be a non-empty string")
        try:
            skill_level = SkillLevel(level)
        except ValueError:
            valid = ", ".join(lvl.value for lvl in SkillLevel)
            raise ValidationError(f"Invalid skill level: {level}. Must be one of: {valid}")

        skill = Skill(name=_skill_key(name), level=skill_level)
        self.skills = [s for s in self.skills if s.name != skill.name]
        self.skills.append(skill)
        self.touch()
        return skill

    def remove_skill(self, name: str) -> None:
        key = _skill_key(name)
        self.skills = [s for s in self.skills if s.name != key]
        self.touch()

    def find_skill(self, name: str) -> Optional[Skill]:
        key = _skill_key(name)
        return next((s for s in self.skills if s.name == key), None)

    def endorse_skill(self, name: str, endorser_id: str) -> bool:
        skill = self.find_skill(name)
        if skill is None:
            return False
        skill.endorsements += 1
        if endorser_id not in skill.endorsed_by:
            skill.endorsed_by.append(endorser_id)
        self.touch()
        return True

    def has_skill(self, name: str, min_level: str = SkillLevel.BEGINNER.value) -> bool:
        skill = self.find_skill(name)
        if skill is None:
            return False
        levels = list(SkillLevel)
        return levels.index(skill.level) >= levels.index(SkillLevel(min_level))

    # Notification preferences

    def set_notification_setting(self, notification_type: str, enabled: bool) -> None:
        self.notification_settings[notification_type] = bool(enabled)
        self.touch()

    def get_notification_setting(self, notification_type: str, default: bool = True) -> bool:
        return self.notification_settings.get(notification_type, default)

    def to_public_dict(self) -> Dict[str, Any]:
        """Profile fields safe to show other users"""
        return {
            "id": self.id,
            "username": self.username,
            "displayName": self.display_name,
            "availability": self.availability.value,
            "statusMessage": self.status_message,
            "teams": list(self.teams),
            "skills": [s.name for s in self.skills],
            "collaborationScore": self.collaboration_score,
            "isAvailable": self.is_available,
            "isTeamLead": self.is_team_lead,
        }
