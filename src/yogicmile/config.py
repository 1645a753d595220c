"""Engine settings via pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables with YM_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="YM_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Logging ---
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # --- Accrual ---
    max_daily_steps: int = Field(default=12000, gt=0)
    steps_per_unit: int = Field(default=25, gt=0)

    # --- Phases ---
    # "informational": missing a deadline never blocks advancement
    # "freeze": the user stays in the phase once its deadline has passed
    deadline_policy: Literal["informational", "freeze"] = "informational"


@lru_cache
def get_settings() -> Settings:
    """Get cached engine settings."""
    return Settings()
