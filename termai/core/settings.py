"""Application settings and configuration management."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .ai.config import ClientAIConfig


class Settings(BaseSettings):
    """Runtime configuration derived from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=(".env",),
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = Field(default="Terminal AI Dispatcher")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    allowed_origins: list[str] = Field(
        default_factory=list,
        description="List of origins permitted by CORS configuration.",
    )

    ai: ClientAIConfig = Field(
        default_factory=ClientAIConfig,
        description="Client AI configuration: default provider and per-provider options.",
    )

    ai_request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout in seconds for each vendor request.",
    )
    ai_batch_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Overall deadline in seconds for a batched completion.",
    )
    ai_stream_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Overall deadline in seconds for a streamed completion.",
    )
    ai_packet_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Maximum wait in seconds between streamed packets.",
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_allowed_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache()
def get_settings() -> Settings:
    """Return a cached instance of application settings."""

    return Settings()
