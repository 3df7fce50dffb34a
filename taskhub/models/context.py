"""
Request context model
"""

from typing import Optional
from pydantic import BaseModel
from taskhub.models.user import User, UserRole


class RequestContext(BaseModel):
    """Identity of the caller, passed explicitly to every controller operation"""

    user_id: str
    role: UserRole = UserRole.USER
    username: Optional[str] = None

    @classmethod
    def for_user(cls, user: User) -> "RequestContext":
        return cls(user_id=user.id, role=user.role, username=user.username)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
