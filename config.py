"""
Configuration

All settings come from the environment so the same build runs locally and
on the hosting platform (App Service -> Configuration -> App settings).
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "mongodb://localhost:27017"


def _split_list(raw: Optional[str], default: List[str]) -> List[str]:
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


@dataclass
class Settings:
    """Process-wide settings"""

    database_url: str = DEFAULT_DATABASE_URL
    database_name: str = "edutalk"
    collection: str = "videos"
    api_key: str = ""  # empty disables the creator key check
    host: str = "0.0.0.0"
    port: int = 8000
    db_timeout_ms: int = 10000
    log_level: str = "INFO"
    log_file: Optional[str] = None
    static_dirs: List[str] = field(default_factory=lambda: ["public", "web"])
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        # DATABASE_URL wins; MONGO_URI is what older deployments set
        database_url = os.getenv("DATABASE_URL") or os.getenv("MONGO_URI") or DEFAULT_DATABASE_URL
        return cls(
            database_url=database_url,
            database_name=os.getenv("DATABASE_NAME") or "edutalk",
            collection=os.getenv("VIDEO_COLLECTION") or "videos",
            api_key=os.getenv("CREATOR_API_KEY", ""),
            host=os.getenv("HOST") or "0.0.0.0",
            port=_int_env("PORT", 8000),
            db_timeout_ms=_int_env("DB_TIMEOUT_MS", 10000),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            log_file=os.getenv("LOG_FILE") or None,
            static_dirs=_split_list(os.getenv("STATIC_DIRS"), ["public", "web"]),
            cors_origins=_split_list(os.getenv("CORS_ORIGINS"), ["*"]),
        )
