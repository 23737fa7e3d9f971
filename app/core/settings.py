from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "denial-report-service"
    app_env: str = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
        description="Runtime environment: development|production.",
    )

    # HTTP server
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "host"),
        description="Interface the HTTP server binds to.",
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "port"),
        description="Port the HTTP server binds to.",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "cors_allow_origins"),
        description="Origins allowed to call the API from a browser.",
    )

    # Report uploads (kept in memory only, never written to disk)
    max_upload_mb: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("MAX_UPLOAD_MB", "max_upload_mb"),
        description=(
            "Maximum combined size of the text fields and attached files of one submission (MB)."
        ),
    )

    # LLM integration (OpenAI)
    # IMPORTANT (healthcare safety): keep configuration explicit and avoid implicit logging.
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
        description="OpenAI API key (required for /api/report).",
    )
    openai_model: str = Field(
        default="gpt-4o",
        validation_alias=AliasChoices("OPENAI_MODEL", "openai_model"),
        description="OpenAI model identifier used for report generation.",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
        description="Base URL for OpenAI API (override for proxies/emulators).",
    )
    openai_timeout_seconds: float = Field(
        default=60.0,
        ge=1.0,
        validation_alias=AliasChoices("OPENAI_TIMEOUT_SECONDS", "openai_timeout_seconds"),
        description="Timeout for OpenAI API requests (seconds).",
    )

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb) * 1024 * 1024

    @property
    def is_development(self) -> bool:
        return str(self.app_env).strip().lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
