"""
In-memory storage
"""

import copy
import json
from typing import Any, Dict, List, Optional
from taskhub.storage.base_storage import BaseStorage


class MemoryStorage(BaseStorage):
    """Storage keeping each value as a serialized JSON string"""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, str] = {}

    async def save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)
        self.logger.debug(f"[MemoryStorage] Saved key '{key}'")

    async def load(self, key: str, default: Optional[Any] = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return copy.deepcopy(default)
        return json.loads(raw)

    async def remove(self, key: str) -> bool:
        existed = self._data.pop(key, None) is not None
        if existed:
            self.logger.debug(f"[MemoryStorage] Removed key '{key}'")
        return existed

    async def clear(self) -> None:
        self._data.clear()
        self.logger.debug("[MemoryStorage] Cleared")

    async def keys(self) -> List[str]:
        return list(self._data.keys())
