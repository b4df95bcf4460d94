from datetime import UTC
from datetime import tzinfo
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


def resolve_timezone(name: str) -> tzinfo:
    """Return the tzinfo for an IANA zone name; "UTC" needs no tz database."""

    if name.upper() == "UTC":
        return UTC
    return ZoneInfo(name)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    """

    codeberg_api_base_url: str = "https://codeberg.org"
    user_agent: str = "codeberg-activity-graph/1.0"
    upstream_timeout_seconds: float = 15.0
    cache_ttl_seconds: int = 3600
    heatmap_timezone: str = "UTC"
    log_level: str = "INFO"
    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1
    rate_limit_per_minute: int = 30
    rate_limit_window_seconds: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("heatmap_timezone")
    @classmethod
    def check_heatmap_timezone(cls, value: str) -> str:
        try:
            resolve_timezone(value)
        except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value
