"""
Team model
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from taskhub.models.user import TeamRole
from taskhub.utils.date_utils import get_current_datetime


class Team(BaseModel):
    """Named group of users; the creator joins as admin"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: Optional[str] = None
    name: str
    description: str = ""
    creator_id: str
    members: List[str] = Field(default_factory=list)
    roles: Dict[str, TeamRole] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)
    version: int = 0
    created_at: datetime = Field(default_factory=get_current_datetime)
    updated_at: datetime = Field(default_factory=get_current_datetime)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Team name is required")
        return value.strip()

    @model_validator(mode="after")
    def _creator_is_admin(self) -> "Team":
        if self.creator_id not in self.members:
            self.members.insert(0, self.creator_id)
        self.roles.setdefault(self.creator_id, TeamRole.ADMIN)
        return self

    def add_member(self, user_id: str, role: TeamRole = TeamRole.MEMBER) -> bool:
        if user_id in self.members:
            return False
        self.members.append(user_id)
        self.roles[user_id] = role
        self.updated_at = get_current_datetime()
        return True

    def is_member(self, user_id: str) -> bool:
        return user_id in self.members
