from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:5000/api"
    AUTH_TOKEN: str = ""
    HTTP_TIMEOUT_SECONDS: float = 15.0

    CHANNEL_BACKEND: Literal["socketio", "redis"] = "socketio"

    SOCKET_URL: str | None = None
    SOCKET_PATH: str = "/socket.io"
    SOCKET_TRANSPORTS: list[str] = ["websocket", "polling"]
    SOCKET_RECONNECT_DELAY: float = 1.0
    SOCKET_RECONNECT_DELAY_MAX: float = 5.0
    SOCKET_CONNECT_TIMEOUT: float = 10.0

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_TOPIC_PREFIX: str = "chat"

    CONVERSATIONS_PAGE_LIMIT: int = 20
    MESSAGES_PAGE_LIMIT: int = 50
    MESSAGE_MAX_LENGTH: int = 2000

    LOG_LEVEL: str = "INFO"

    @property
    def socket_url(self) -> str:
        """Socket.IO server root; defaults to the API host without the /api suffix."""
        if self.SOCKET_URL:
            return self.SOCKET_URL.rstrip("/")
        base = self.API_BASE_URL.rstrip("/")
        if base.endswith("/api"):
            base = base[: -len("/api")]
        return base

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
