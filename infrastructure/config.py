from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.value_objects import validate_timezone_name


class Settings(BaseSettings):

    # App
    app_name: str = "Reservation Metrics API"
    debug: bool = False

    # Aggregation
    cache_ttl_seconds: float = 300
    cache_max_entries: int = 0
    aggregation_timeout_seconds: float = 30.0

    # Annotate every merged day with this zone instead of the first
    # contributing location's zone
    display_timezone: Optional[str] = None

    # Logging
    log_dir: str = "logs"

    model_config = SettingsConfigDict(
        env_prefix="METRICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("display_timezone")
    @classmethod
    def validate_display_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v:
            return validate_timezone_name(v)
        return None

    @field_validator("cache_ttl_seconds", "aggregation_timeout_seconds")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
