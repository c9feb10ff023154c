"""Application settings for the case analysis service."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Immutable application settings, assembled once at process start."""

    model_config = SettingsConfigDict(
        env_prefix="CASEPATH_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Core application settings
    app_env: Literal["development", "test", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # CORS - use string to avoid JSON parsing issues
    cors_origins_str: str = Field(
        default="http://localhost:3000,https://localhost:3000",
        validation_alias=AliasChoices("casepath_cors_origins", "cors_origins"),
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from string."""
        if not self.cors_origins_str.strip():
            return ["http://localhost:3000", "https://localhost:3000"]
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # Precedent index (CanLII)
    canlii_api_key: str | None = None
    canlii_base_url: str = "https://api.canlii.org/v1"
    precedent_timeout_seconds: float = Field(default=10.0, gt=0)
    precedent_max_attempts: int = Field(default=2, ge=1, le=5)

    # Generative reasoning backend (OpenAI-compatible chat completions)
    reasoning_api_key: str | None = None
    reasoning_base_url: str = "https://api.openai.com/v1"
    reasoning_model: str = "gpt-4o-mini"
    reasoning_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    reasoning_timeout_seconds: float = Field(default=45.0, gt=0)
    reasoning_max_attempts: int = Field(default=3, ge=1, le=5)

    # Agent pipeline failure policy: 1 attempt means fail fast
    agent_stage_max_attempts: int = Field(default=1, ge=1, le=5)

    # Cache
    analysis_staleness_hours: int = Field(default=24, ge=1)
    redis_url: str | None = None

    # Firebase / Firestore
    firebase_admin_sdk_json: str | None = None
    firebase_admin_sdk_path: str | None = None
    firebase_project_id: str | None = None
    firestore_database: str = "(default)"

    # Rate limiting
    rate_limit_enabled: bool = True
    analysis_rate_limit_per_minute: int = Field(default=10, ge=1)
    agent_rate_limit_per_minute: int = Field(default=5, ge=1)

    @field_validator("canlii_api_key", "reasoning_api_key", "redis_url")
    @classmethod
    def blank_is_unset(cls, v: str | None) -> str | None:
        """Treat empty credentials as not configured."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def precedent_index_configured(self) -> bool:
        return self.canlii_api_key is not None

    @property
    def reasoning_backend_configured(self) -> bool:
        return self.reasoning_api_key is not None

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
