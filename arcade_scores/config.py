"""Process configuration, resolved once at startup."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    supabase_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL", "supabase_url"),
    )
    supabase_anon_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY", "supabase_anon_key"
        ),
    )
    score_store_backend: Literal["postgrest", "memory"] = "postgrest"
    scores_table: str = "scores"
    store_timeout_seconds: float | None = None

    allowed_game_ids: list[str] = ["snake"]

    environment: str = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENV", "environment"),
    )
    log_level: str = "INFO"

    rate_limit_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
    )
    rate_limit_max: int = Field(default=10, ge=1)
    rate_limit_window_seconds: float = Field(default=3600, gt=0)
    rate_limit_sweep_interval_seconds: float = Field(default=300, gt=0)

    @property
    def store_configured(self) -> bool:
        if self.score_store_backend == "memory":
            return True
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def get_settings() -> Settings:
    return Settings()
