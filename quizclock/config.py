"""Runtime settings loaded from the environment (prefix ``QUIZCLOCK_``)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from quizclock.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quizclock.constants.quiz_constants import TIMER_TICK_SECONDS


class Settings(BaseSettings):
    """Process-wide settings; every field can be overridden by an env variable."""

    model_config = SettingsConfigDict(
        env_prefix="QUIZCLOCK_",
        env_file=".env",
        extra="ignore",
    )

    host: str = Field(default=DEFAULT_HOST, description="Interface the API server binds to")
    port: int = Field(default=DEFAULT_PORT, description="Port the API server listens on")
    data_dir: Path | None = Field(
        default=None,
        description="Directory holding the JSON collections; in-memory storage when unset",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    timer_tick_seconds: float = Field(
        default=TIMER_TICK_SECONDS,
        gt=0,
        description="Wall-clock length of one countdown tick",
    )
    auto_submit: bool = Field(
        default=True,
        description="Run a countdown per attempt and submit it when time runs out",
    )
    seed_sample_data: bool = Field(
        default=True,
        description="Seed the sample quiz when the catalog is empty",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return a cached singleton `Settings` instance."""
    return Settings()
