"""Environment-driven settings for the projection service."""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Loaded from ``PROJECTIONS_``-prefixed environment variables or a local ``.env``.

    List values are read as JSON, e.g.
    ``PROJECTIONS_CORS_ORIGINS='["https://app.example.com"]'``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROJECTIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call /api/*.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    sensitivity_max_workers: int = Field(4, ge=1)
    sensitivity_max_points: int = Field(50, ge=1, description="Largest sweep one sensitivity request may run.")


@lru_cache
def get_settings() -> Settings:
    return Settings()
