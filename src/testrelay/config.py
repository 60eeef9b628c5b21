"""Configuration settings for testrelay."""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Registry connection settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TESTRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Registry
    server_url: str
    api_key: str
    project_id: str

    # Timeouts (seconds)
    connect_timeout: float = 30.0
    read_timeout: float = 60.0

    # Run defaults
    environment: str = "AUTOMATION"

    # Logging
    log_level: str = "INFO"
    log_json_format: bool = False

    @field_validator("server_url")
    @classmethod
    def _normalize_server_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("server_url cannot be empty")
        return value

    @field_validator("api_key", "project_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("value cannot be empty")
        return value

    @field_validator("connect_timeout", "read_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be greater than 0")
        return value

    @property
    def api_base_url(self) -> str:
        """Base URL of the registry REST API."""
        return f"{self.server_url}/api"

    def for_project(
        self,
        project_id: str,
        server_url: str | None = None,
        api_key: str | None = None,
    ) -> Settings:
        """Return a copy targeting another project, optionally another server."""
        updates: dict[str, str] = {"project_id": project_id.strip()}
        if server_url and server_url.strip():
            updates["server_url"] = server_url.strip().rstrip("/")
        if api_key and api_key.strip():
            updates["api_key"] = api_key.strip()
        return self.model_copy(update=updates)

    def __repr__(self) -> str:
        return (
            f"Settings(server_url={self.server_url!r}, project_id={self.project_id!r}, "
            f"connect_timeout={self.connect_timeout}, read_timeout={self.read_timeout})"
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    # pydantic-settings loads required fields from env vars at runtime
    return Settings()  # type: ignore[call-arg]
