# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: the story
database location, community detection tuning, meta-graph display
budgets and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Story database ===
    database_path: Path = Path("~/.arstraverse/stories.db")

    # === Community detection ===
    community_detection_resolution: float = 1.0
    community_detection_seed: int | None = 42
    community_min_size: int = 3

    # === Meta-graph display budgets ===
    meta_internal_edge_limit: int = 20
    meta_member_name_sample: int = 10
    prepared_edge_preview: int = 10

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "community_min_size",
        "meta_internal_edge_limit",
        "meta_member_name_sample",
        "prepared_edge_preview",
        "log_retention",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("value must be >= 0")
        return v

    @field_validator("community_detection_resolution")
    @classmethod
    def validate_resolution(cls, v: float) -> float:  # noqa: N805
        """Louvain resolution must be strictly positive."""
        if v <= 0:
            raise ValueError("community_detection_resolution must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.community_detection_seed is not None and self.community_detection_seed < 0:
            errors.append("COMMUNITY_DETECTION_SEED must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
