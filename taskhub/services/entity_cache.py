"""
Entity cache service with TTL
"""

import time
from typing import Any, Dict, Optional, Tuple
from taskhub.config.constants import DEFAULT_CACHE_TTL_SECONDS
from taskhub.utils.logger import logger


class EntityCache:
    """Id -> entity cache where each entry expires after a fixed TTL"""

    def __init__(self, ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS, name: str = "EntityCache"):
        """
        Initialize entity cache

        Args:
            ttl_seconds: Entry lifetime; 0 disables caching
            name: Label used in log messages
        """
        self.ttl_seconds = ttl_seconds
        self.name = name
        self.logger = logger
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        """
        Get fresh entry

        Returns:
            Cached entity, or None when missing or expired
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, stored_at = entry
        age = time.monotonic() - stored_at
        if age > self.ttl_seconds:
            self.logger.debug(f"[{self.name}] Entry '{key}' expired ({age:.3f}s old, TTL {self.ttl_seconds}s)")
            del self._entries[key]
            return None

        return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[key] = (value, time.monotonic())

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self.logger.debug(f"[{self.name}] Cache cleared")

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
