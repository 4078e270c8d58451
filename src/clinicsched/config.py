"""Application settings loaded from the environment.

Every field can be set with a ``CLINICSCHED_`` prefixed environment variable
or in a ``.env`` file, e.g. ``CLINICSCHED_DATABASE_URL=sqlite:///clinic.db``.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from clinicsched.domain.models import DEFAULT_OPENING_DAYS, ScheduleConfig, Weekday


class Settings(BaseSettings):
    database_url: str = "sqlite:///clinicsched.db"
    database_echo: bool = False
    log_level: str = "INFO"
    default_room_count: int = 3
    default_opening_days: list[str] = [d.value for d in Weekday if d in DEFAULT_OPENING_DAYS]
    cache_enabled: bool = True
    cache_max_entries: int = 256

    model_config = SettingsConfigDict(
        env_prefix="CLINICSCHED_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("default_opening_days")
    @classmethod
    def _check_weekdays(cls, value: list[str]) -> list[str]:
        return [Weekday.parse(v).value for v in value]

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    def schedule_config(self) -> ScheduleConfig:
        """Calendar defaults for organizations without stored settings."""
        return ScheduleConfig(
            room_count=self.default_room_count,
            opening_days=self.default_opening_days,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
