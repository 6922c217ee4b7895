"""Server configuration from environment variables."""

from __future__ import annotations

import os

from parley.content.items import FREE_ITEM_LIMIT
from parley.messaging.attachments import MAX_ATTACHMENT_BYTES


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Server settings, read from environment variables with defaults."""

    def __init__(self) -> None:
        self.database_url: str = os.getenv(
            "PARLEY_DATABASE_URL", "sqlite+aiosqlite:///parley.db"
        )
        self.host: str = os.getenv("PARLEY_HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PARLEY_PORT", "5000"))
        self.cors_origins: list[str] = [
            origin.strip()
            for origin in os.getenv("PARLEY_CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]
        self.log_level: str = os.getenv("PARLEY_LOG_LEVEL", "INFO").upper()
        self.debug: bool = _flag("PARLEY_DEBUG", "")
        # Attachments
        self.upload_dir: str = os.getenv("PARLEY_UPLOAD_DIR", "uploads")
        self.upload_url_prefix: str = os.getenv("PARLEY_UPLOAD_URL_PREFIX", "/uploads")
        self.max_attachment_bytes: int = int(
            os.getenv("PARLEY_MAX_ATTACHMENT_BYTES", str(MAX_ATTACHMENT_BYTES))
        )
        # Real-time channel layer
        self.realtime_enabled: bool = _flag("PARLEY_REALTIME_ENABLED", "true")
        self.ping_interval: float = float(os.getenv("PARLEY_PING_INTERVAL", "25"))
        self.pong_timeout: float = float(os.getenv("PARLEY_PONG_TIMEOUT", "60"))
        # Item store
        self.free_item_limit: int = int(os.getenv("PARLEY_FREE_ITEM_LIMIT", str(FREE_ITEM_LIMIT)))
