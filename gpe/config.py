"""
Engine configuration via pydantic-settings.

All settings are loaded from environment variables prefixed with ``GPE_``
(or a .env file in dev). Limits that the stores enforce, such as the event
window size, live here so tests can shrink or widen them per instance.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEV = "dev"
    PROD = "prod"
    TEST = "test"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Application
    # ------------------------------------------------------------------ #
    environment: Environment = Environment.DEV
    debug: bool = False

    # ------------------------------------------------------------------ #
    # Logging
    # ------------------------------------------------------------------ #
    log_level: str = Field(
        default="INFO",
        description="Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON (production) instead of the dev console renderer",
    )

    # ------------------------------------------------------------------ #
    # Stores
    # ------------------------------------------------------------------ #
    event_log_max_entries: int = Field(
        default=240,
        ge=1,
        description="Sliding window size of the per-goal event log",
    )

    # ------------------------------------------------------------------ #
    # Progress
    # ------------------------------------------------------------------ #
    default_pacing_window_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Look-back window for actual pace when a goal does not declare one",
    )
    widget_limit: int = Field(
        default=3,
        ge=1,
        description="Number of goals exposed to the home dashboard widget",
    )

    # ------------------------------------------------------------------ #
    # Finance
    # ------------------------------------------------------------------ #
    base_currency: str | None = Field(
        default="UZS",
        description="System base currency, used when neither budget nor goal declares one",
    )

    # ------------------------------------------------------------------ #
    # Derived / Computed
    # ------------------------------------------------------------------ #
    @model_validator(mode="after")
    def _set_debug_from_env(self) -> Settings:
        if self.environment == Environment.DEV:
            self.debug = True
        return self

    @model_validator(mode="after")
    def _validate_production_flags(self) -> Settings:
        """Refuse to start in production with debug output enabled."""
        if self.environment == Environment.PROD and self.debug:
            raise ValueError("GPE_DEBUG must be disabled when GPE_ENVIRONMENT=prod")
        return self

    @property
    def is_dev(self) -> bool:
        return self.environment in (Environment.DEV, Environment.TEST)

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PROD


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings singleton.

    Engines constructed without explicit settings use this instance; tests
    pass their own ``Settings`` to keep instances isolated.
    """
    return Settings()
