"""
Comment model
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from taskhub.config.constants import COMMENT_ID_PREFIX
from taskhub.utils.date_utils import generate_id, get_current_datetime
from taskhub.utils.error_handler import ValidationError
from taskhub.utils.mentions import extract_mentions


def _clean_content(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Comment content is required")
    return value.strip()


class Comment(BaseModel):
    """Comment on a task. Mentions hold user ids once resolved, raw handles otherwise."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = Field(default_factory=lambda: generate_id(COMMENT_ID_PREFIX))
    author_id: str
    content: str
    parent_id: Optional[str] = None
    mentions: List[str] = Field(default_factory=list)
    reactions: Dict[str, List[str]] = Field(default_factory=dict)  # emoji -> user ids
    is_resolved: bool = False
    is_edited: bool = False
    created_at: datetime = Field(default_factory=get_current_datetime)
    updated_at: datetime = Field(default_factory=get_current_datetime)

    @field_validator("content", mode="before")
    @classmethod
    def _validate_content(cls, value):
        return _clean_content(value)

    @classmethod
    def create(
        cls,
        content: str,
        author_id: str,
        parent_id: Optional[str] = None,
        mentions: Optional[List[str]] = None,
    ) -> "Comment":
        """Build a new comment, extracting handles when mentions are not given"""
        return cls(
            author_id=author_id,
            content=content,
            parent_id=parent_id,
            mentions=list(mentions) if mentions is not None else extract_mentions(content),
        )

    def edit(self, content: str, mentions: Optional[List[str]] = None) -> None:
        cleaned = _clean_content(content)
        self.content = cleaned
        self.mentions = list(mentions) if mentions is not None else extract_mentions(cleaned)
        self.is_edited = True
        self.updated_at = get_current_datetime()

    def resolve(self) -> None:
        self.is_resolved = True
        self.updated_at = get_current_datetime()

    def add_reaction(self, emoji: str, user_id: str) -> bool:
        if not isinstance(emoji, str) or not emoji.strip():
            raise ValidationError("Reaction must be a non-empty string")
        users = self.reactions.setdefault(emoji.strip(), [])
        if user_id in users:
            return False
        users.append(user_id)
        return True

    def remove_reaction(self, emoji: str, user_id: str) -> bool:
        key = emoji.strip() if isinstance(emoji, str) else emoji
        users = self.reactions.get(key)
        if not users or user_id not in users:
            return False
        users.remove(user_id)
        if not users:
            del self.reactions[key]
        return True

    def reaction_summary(self) -> Dict[str, int]:
        """Emoji -> reaction count"""
        return {emoji: len(users) for emoji, users in self.reactions.items()}
