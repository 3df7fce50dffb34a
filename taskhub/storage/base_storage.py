"""
Base storage with common functionality
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
from taskhub.utils.logger import logger


class BaseStorage(ABC):
    """Key -> JSON-serializable value store"""

    def __init__(self):
        self.logger = logger

    @abstractmethod
    async def save(self, key: str, value: Any) -> None:
        """
        Persist value under key, replacing any previous value

        Args:
            key: Storage key
            value: JSON-serializable value
        """
        pass

    @abstractmethod
    async def load(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Load value stored under key

        Args:
            key: Storage key
            default: Returned when key is absent

        Returns:
            Fresh copy of the stored value, or default
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """Remove key, returning True if it existed"""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every key"""
        pass

    @abstractmethod
    async def keys(self) -> List[str]:
        """List stored keys"""
        pass
