"""Application settings and configuration management."""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interviews.db")
    SCRIPT_PATH: str = Field(default="data/scripts/software-engineer-script.json")
    JOB_PATH: str = Field(default="data/jobs/software-engineer.json")
    LLM_CONFIG_PATH: str = Field(default="app_config.json")
    PATTERNS_PATH: Optional[str] = None

    DEFAULT_MAX_SALARY: float = 100000
    LOW_SCORE_CUTOFF: int = 2
    MAX_EXAMPLE_ATTEMPTS: int = 1

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
