"""
JSON file storage
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional
from taskhub.storage.base_storage import BaseStorage


class JsonFileStorage(BaseStorage):
    """Storage backed by a single JSON document on disk"""

    def __init__(self, file_path: str):
        """
        Initialize JSON file storage

        Args:
            file_path: Path to the JSON document (created on first save)
        """
        super().__init__()
        self.file_path = Path(file_path)

    def _read(self) -> Dict[str, Any]:
        if not self.file_path.exists():
            return {}
        with open(self.file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self.file_path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file, then swap it in
        fd, tmp_path = tempfile.mkstemp(dir=self.file_path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.file_path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    async def save(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)
        self.logger.debug(f"[JsonFileStorage] Saved key '{key}' to {self.file_path}")

    async def load(self, key: str, default: Optional[Any] = None) -> Any:
        data = self._read()
        return data.get(key, default)

    async def remove(self, key: str) -> bool:
        data = self._read()
        if key not in data:
            return False
        del data[key]
        self._write(data)
        return True

    async def clear(self) -> None:
        self._write({})
        self.logger.debug(f"[JsonFileStorage] Cleared {self.file_path}")

    async def keys(self) -> List[str]:
        return list(self._read().keys())
