"""Configuration management for Planboard using Pydantic Settings."""

from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Density = Literal["compact", "tablet", "detailed", "list", "week"]


class ApiSettings(BaseSettings):
    """REST API connection settings."""

    model_config = SettingsConfigDict(env_prefix="PLANBOARD_API_", env_file=".env", extra="ignore")

    base_url: str = "http://localhost:8080"
    # None keeps the transport default
    timeout: float | None = None


class PushSettings(BaseSettings):
    """Raw WebSocket push channel settings."""

    model_config = SettingsConfigDict(env_prefix="PLANBOARD_PUSH_", env_file=".env", extra="ignore")

    enabled: bool = True
    url: str = ""
    path: str = "/rawws"
    reconnect_delay: float = 1.5
    coalesce_delay: float = 0.15


class SessionSettings(BaseSettings):
    """Where the bearer token is persisted."""

    model_config = SettingsConfigDict(env_prefix="PLANBOARD_SESSION_", env_file=".env", extra="ignore")

    token_file: Path = Path("~/.config/planboard/session.json")
    token_key: str = "calenderapp.jwt"


class Settings(BaseSettings):
    """Main Planboard settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # General
    environment: Literal["development", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING", alias="PLANBOARD_LOG_LEVEL"
    )
    notification_poll_seconds: float = Field(
        default=20.0, alias="PLANBOARD_NOTIFICATION_POLL_SECONDS"
    )
    density: Density = Field(default="detailed", alias="PLANBOARD_DENSITY")

    # Sub-settings
    api: ApiSettings = Field(default_factory=ApiSettings)
    push: PushSettings = Field(default_factory=PushSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)

    def push_url(self) -> str:
        """Resolve the push channel URL.

        An explicit ``PLANBOARD_PUSH_URL`` wins. Otherwise the scheme and host
        of the API base URL are reused with ``ws``/``wss`` and the push path.
        """
        if self.push.url.strip():
            return self.push.url.strip()

        parts = urlsplit(self.api.base_url)
        scheme = "wss" if parts.scheme == "https" else "ws"
        return f"{scheme}://{parts.netloc}{self.push.path}"


# Global settings instance
settings = Settings()
