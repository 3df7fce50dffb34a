"""
Team repository
"""

from typing import List, Optional
from taskhub.config.constants import TEAM_ID_PREFIX, TEAMS_KEY
from taskhub.models.team import Team
from taskhub.services.base_repository import BaseRepository
from taskhub.storage.base_storage import BaseStorage


class TeamRepository(BaseRepository[Team]):
    """Repository for teams"""

    def __init__(self, storage: BaseStorage, cache_ttl: Optional[float] = None):
        super().__init__(
            storage,
            storage_key=TEAMS_KEY,
            model_class=Team,
            entity_label="Team",
            id_prefix=TEAM_ID_PREFIX,
            cache_ttl=cache_ttl,
        )

    async def find_by_member(self, user_id: str) -> List[Team]:
        return await self.find_where(lambda team: team.is_member(user_id))
