"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TASKWAVE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Wave scheduling heuristics
    parallel_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Minimum aggregate isolation for a wave to run in parallel",
    )
    overlap_penalty: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Isolation reduction per file claimed by more than one task",
    )
    task_baseline_minutes: float = Field(
        default=15.0,
        gt=0,
        description="Estimated minutes for a single task",
    )
    parallel_reduction: float = Field(
        default=0.6,
        gt=0,
        le=1.0,
        description="Scaling factor applied to parallel wave estimates",
    )
    default_isolation_score: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Isolation score assumed when a task declares none",
    )
    strict_dependencies: bool = Field(
        default=False,
        description="Treat blocked_by ids missing from the task set as unsatisfiable",
    )

    # Export verification cache
    cache_enabled: bool = Field(
        default=True,
        description="Cache parsed declarations keyed by file content hash",
    )
    cache_dir: Path = Field(
        default=Path(".taskwave/ast-cache"),
        description="Directory holding per-file verification cache records",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from environment.

    Example:
        >>> settings = get_settings()
        >>> settings.parallel_threshold
        0.8
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
