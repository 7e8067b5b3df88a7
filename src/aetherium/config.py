"""Lightweight configuration for the Aetherium battle backend."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings read from the environment or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="AETHERIUM_"
    )

    storage_backend: Literal["json", "sql"] = Field(
        default="json", description="Which battle store implementation to use"
    )
    data_dir: Path = Field(default=Path("battles"), description="Where JSON battle records live")
    characters_dir: Path = Field(
        default=Path("characters"), description="Where JSON character profiles live"
    )
    database_url: str = Field(
        default="sqlite:///aetherium.db", description="SQLAlchemy URL for the SQL battle store"
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    rng_secret: str = Field(
        default="change-me", description="Server-side salt mixed into every round seed"
    )
    chain_gateway_url: str | None = Field(
        default=None,
        description="Base URL of the blockchain gateway; the local gateway is used when unset",
    )
    chain_timeout_seconds: float = Field(
        default=10.0, description="Timeout for calls to the blockchain gateway", gt=0.0
    )
    combat_cooldown_seconds: float = Field(
        default=0.0,
        description="Cooldown between battles enforced by the local gateway",
        ge=0.0,
    )
    settlement_retry_enabled: bool = Field(
        default=True, description="Run the background loop retrying pending settlements"
    )
    settlement_retry_interval_seconds: float = Field(
        default=60.0, description="Seconds between settlement retry sweeps", gt=0.0
    )
    defend_decays: bool = Field(
        default=False,
        description="Drop a defend bonus at the start of the defender's next action",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
