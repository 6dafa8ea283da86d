from __future__ import annotations

"""Application settings using Pydantic Settings.

Loads configuration from environment variables and optional .env file.
The provider credential is mandatory: building Settings without it fails.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import AnyHttpUrl, BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw is not None else default
    except (TypeError, ValueError):
        return default


def _get_float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class ProviderSettings(BaseModel):
    timeout_seconds: float = 60.0
    # AssemblyAI SDK polls every 3s and never gives up by default
    poll_interval_seconds: float = 3.0
    polling_timeout_seconds: float | None = None


class RetrySettings(BaseModel):
    # 1 = single attempt, no retry
    attempts: int = 1
    backoff_seconds: float = 1.5


class Settings(BaseSettings):
    """Top-level application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider
    assemblyai_api_key: str
    assemblyai_base_url: AnyHttpUrl = "https://api.assemblyai.com"  # type: ignore[assignment]
    transcript_language_code: str | None = None

    # App
    app_host: str = "0.0.0.0"
    app_port: int = 8080

    # Logging
    log_level: str = "INFO"

    provider: ProviderSettings = ProviderSettings()
    retry: RetrySettings = RetrySettings()

    @field_validator("assemblyai_api_key")
    @classmethod
    def _require_key(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("ASSEMBLYAI_API_KEY must be set")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in levels:
            raise ValueError("Invalid LOG_LEVEL")
        return v.upper()

    @property
    def provider_base_url(self) -> str:
        return str(self.assemblyai_base_url).rstrip("/")

    def model_post_init(self, __context: dict[str, object]) -> None:  # type: ignore[override]
        """Map flat env vars into nested settings for convenience."""

        self.provider.timeout_seconds = _get_float_env(
            "PROVIDER_TIMEOUT_SECONDS", self.provider.timeout_seconds
        )
        self.provider.poll_interval_seconds = _get_float_env(
            "PROVIDER_POLL_INTERVAL_SECONDS", self.provider.poll_interval_seconds
        )
        self.provider.polling_timeout_seconds = _get_float_env(
            "PROVIDER_POLLING_TIMEOUT_SECONDS", self.provider.polling_timeout_seconds
        )

        self.retry.attempts = max(1, _get_int_env("RETRY_ATTEMPTS", self.retry.attempts))
        self.retry.backoff_seconds = _get_float_env("RETRY_BACKOFF_SECONDS", self.retry.backoff_seconds)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""

    return Settings()  # type: ignore[call-arg]
