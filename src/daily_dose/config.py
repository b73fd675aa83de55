"""Runtime settings, read from DAILY_DOSE_* environment variables or a .env file."""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from daily_dose.db import DEFAULT_DB_PATH


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DAILY_DOSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    db_path: str = Field(default=DEFAULT_DB_PATH, description="SQLite database file")
    user_id: str = Field(default="local", description="Learner the console app acts as")
    context_id: str = Field(default="default", description="Practice (surgery) the learner belongs to")
    role: str = Field(default="ADMIN", description="Staff role used to filter the catalog")
    focus_topic_ids: list[str] = Field(default_factory=list, description="Limit sessions to these topics")
    weekday_only_streak: bool = Field(default=True)
    log_level: str = Field(default="WARNING")
    log_file: Optional[str] = Field(default=None, description="Optional rotating log file")


@lru_cache
def get_settings() -> Settings:
    return Settings()
