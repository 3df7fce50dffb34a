"""
Application settings and configuration
"""

import os
from pathlib import Path
from dotenv import load_dotenv
from typing import Optional

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Application settings loaded from environment variables"""

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", str(Path(__file__).parent.parent.parent / "logs"))

    # Storage
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory")  # memory | json
    STORAGE_FILE_PATH: Optional[str] = os.getenv("STORAGE_FILE_PATH", None)

    # Repository cache
    CACHE_TTL_SECONDS: float = float(os.getenv("CACHE_TTL_SECONDS", "5"))

    # Collaboration limits
    MAX_ACTIVITIES: int = int(os.getenv("MAX_ACTIVITIES", "1000"))
    MAX_NOTIFICATIONS_PER_USER: int = int(os.getenv("MAX_NOTIFICATIONS_PER_USER", "100"))
    MAX_COLLABORATORS_PER_TASK: int = int(os.getenv("MAX_COLLABORATORS_PER_TASK", "50"))
    MAX_COMMENTS_PER_TASK: int = int(os.getenv("MAX_COMMENTS_PER_TASK", "1000"))

    # Feature switches
    ENABLE_NOTIFICATIONS: bool = _env_bool("ENABLE_NOTIFICATIONS", True)
    ENABLE_REAL_TIME_UPDATES: bool = _env_bool("ENABLE_REAL_TIME_UPDATES", True)

    @classmethod
    def validate(cls) -> bool:
        """Validate that settings have usable values"""
        if cls.STORAGE_BACKEND not in ("memory", "json"):
            raise ValueError(
                f"Unsupported STORAGE_BACKEND: {cls.STORAGE_BACKEND}. Must be one of: memory, json"
            )

        if cls.STORAGE_BACKEND == "json" and not cls.STORAGE_FILE_PATH:
            raise ValueError("STORAGE_FILE_PATH is required when STORAGE_BACKEND=json")

        if cls.CACHE_TTL_SECONDS < 0:
            raise ValueError("CACHE_TTL_SECONDS must not be negative")

        return True


# Global settings instance
settings = Settings()
