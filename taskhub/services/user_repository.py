"""
User repository
"""

from typing import List, Optional
from taskhub.config.constants import USER_ID_PREFIX, USERS_KEY
from taskhub.models.user import User
from taskhub.services.base_repository import BaseRepository
from taskhub.storage.base_storage import BaseStorage
from taskhub.utils.error_handler import DuplicateError


class UserRepository(BaseRepository[User]):
    """Repository for users; username and email are unique ignoring case"""

    def __init__(self, storage: BaseStorage, cache_ttl: Optional[float] = None):
        super().__init__(
            storage,
            storage_key=USERS_KEY,
            model_class=User,
            entity_label="User",
            id_prefix=USER_ID_PREFIX,
            cache_ttl=cache_ttl,
        )

    async def _check_unique(self, entity: User, entities: List[User]) -> None:
        username = entity.username.lower()
        email = entity.email.lower()
        for other in entities:
            if other.username.lower() == username:
                raise DuplicateError("Username already exists")
            if other.email.lower() == email:
                raise DuplicateError("Email already exists")

    async def find_by_username(self, username: str) -> Optional[User]:
        if not username:
            return None
        needle = username.lower()
        users = await self.find_where(lambda user: user.username.lower() == needle)
        return users[0] if users else None

    async def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        needle = email.lower()
        users = await self.find_where(lambda user: user.email.lower() == needle)
        return users[0] if users else None

    async def find_by_team(self, team_id: str) -> List[User]:
        return await self.find_where(lambda user: team_id in user.teams)

    async def search(self, query: str) -> List[User]:
        """Case-insensitive match on username, display name or email"""
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return await self.find_where(
            lambda user: needle in user.username.lower()
            or needle in (user.display_name or "").lower()
            or needle in user.email.lower()
        )
