"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STUDYDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Study sessions
    session_order: Literal["input", "overdue"] = Field(
        default="input",
        description="Order in which due cards are presented: 'input' or 'overdue'",
    )
    save_each_rating: bool = Field(
        default=True,
        description="Persist each rated card immediately instead of once per session",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Render log lines as JSON instead of console output",
    )

    # API configuration
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Debug mode")

    @field_validator("api_port")
    @classmethod
    def validate_api_port(cls, v: int) -> int:
        """Validate that the API port is a usable TCP port."""
        if not 1 <= v <= 65535:
            raise ValueError("api_port must be between 1 and 65535")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
