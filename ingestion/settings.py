"""Configuration models for the site backend and its scheduled jobs."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any, List, Literal, Optional, Set
from zoneinfo import ZoneInfo

from pydantic import (
    BaseModel,
    Field,
    NonNegativeFloat,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

JobName = Literal["fetch_prices", "fetch_news", "generate_posts"]


class JobSchedule(BaseModel):
    """Represents a periodic job run by the Celery beat scheduler."""

    job: JobName = Field(..., description="Job identifier (fetch_prices, fetch_news, generate_posts).")
    interval_hours: PositiveFloat = Field(..., description="Interval between runs, in hours.")
    enabled: bool = Field(True, description="Whether the schedule is active.")


class Settings(BaseSettings):
    """Environment configuration."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    database_url: str = Field(
        "sqlite:///./var/storage/site.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL shared by every component.",
    )
    redis_url: str = Field("redis://localhost:6379/0", alias="REDIS_URL", description="Celery broker/backend DSN.")
    app_env: Literal["development", "test", "production"] = Field(
        "production",
        alias="APP_ENV",
        description="Runtime environment. Cron routes skip the bearer check in development.",
    )
    cron_secret: Optional[SecretStr] = Field(None, alias="CRON_SECRET", description="Bearer token expected on cron routes.")

    oilpriceapi_key: Optional[SecretStr] = Field(None, alias="OILPRICEAPI_KEY", description="OilPriceAPI token.")
    oilpriceapi_endpoint: str = Field(
        "https://api.oilpriceapi.com/v1",
        alias="OILPRICEAPI_ENDPOINT",
        description="OilPriceAPI base URL.",
    )
    marketstack_api_key: Optional[SecretStr] = Field(None, alias="MARKETSTACK_API_KEY", description="MarketStack key.")
    marketstack_endpoint: str = Field(
        "https://api.marketstack.com/v1",
        alias="MARKETSTACK_ENDPOINT",
        description="MarketStack base URL.",
    )
    newsdata_api_key: Optional[SecretStr] = Field(None, alias="NEWSDATA_API_KEY", description="NewsData.io key.")
    newsdata_endpoint: str = Field(
        "https://newsdata.io/api/1/news",
        alias="NEWSDATA_ENDPOINT",
        description="NewsData.io news endpoint.",
    )
    http_timeout_seconds: PositiveFloat = Field(10.0, alias="HTTP_TIMEOUT_SECONDS", description="Upstream HTTP timeout.")
    http_max_attempts: PositiveInt = Field(3, alias="HTTP_MAX_ATTEMPTS", description="Attempts per upstream call.")
    http_backoff_seconds: NonNegativeFloat = Field(
        1.0,
        alias="HTTP_BACKOFF_SECONDS",
        description="Initial backoff between attempts; doubles on every retry.",
    )

    price_fetch_interval_hours: PositiveFloat = Field(13, alias="PRICE_FETCH_INTERVAL_HOURS")
    news_fetch_interval_hours: PositiveFloat = Field(13, alias="NEWS_FETCH_INTERVAL_HOURS")
    news_page_size: PositiveInt = Field(50, alias="NEWS_PAGE_SIZE", description="Articles requested per fetch (<=50).")
    news_relevance_threshold: float = Field(0.30, alias="NEWS_RELEVANCE_THRESHOLD", ge=0.0, le=1.0)
    news_auto_post_threshold: float = Field(0.50, alias="NEWS_AUTO_POST_THRESHOLD", ge=0.0, le=1.0)
    primary_benchmark: str = Field("Brent", alias="PRIMARY_BENCHMARK", description="Benchmark tracked for trend.")
    bonny_light_premium: NonNegativeFloat = Field(1.5, alias="BONNY_LIGHT_PREMIUM", description="USD/bbl over Brent.")

    site_timezone: str = Field("Asia/Dubai", alias="SITE_TIMEZONE", description="Timezone used for price dates.")
    site_name: str = Field("Alak Oil & Gas", alias="SITE_NAME")
    default_author_name: str = Field("Alak Market Intelligence", alias="DEFAULT_AUTHOR_NAME")
    default_author_role: str = Field("Market Analysis Team", alias="DEFAULT_AUTHOR_ROLE")

    session_cookie_name: str = Field("admin_session", alias="SESSION_COOKIE_NAME")
    session_ttl_hours: PositiveInt = Field(12, alias="SESSION_TTL_HOURS")

    log_level: str = Field("INFO", alias="LOG_LEVEL", description="Root log level.")
    log_json: bool = Field(False, alias="LOG_JSON", description="Emit logs as JSON lines.")
    # parsed by _parse_job_schedules, not by the env source
    job_schedules: Annotated[List[JobSchedule], NoDecode] = Field(
        default_factory=list,
        alias="JOB_SCHEDULES",
        description="JSON array of beat schedules.",
    )
    celery_task_soft_time_limit: PositiveInt = Field(
        120,
        alias="CELERY_TASK_SOFT_TIME_LIMIT",
        description="Soft time limit per job run, in seconds.",
    )

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @field_validator("job_schedules", mode="before")
    @classmethod
    def _parse_job_schedules(cls, value: Any) -> List[Any]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("JOB_SCHEDULES must be a JSON array.") from exc
            return parsed
        if isinstance(value, list):
            return value
        raise ValueError("JOB_SCHEDULES must be a list.")

    @field_validator("job_schedules")
    @classmethod
    def _validate_unique_schedule(cls, value: List[JobSchedule]) -> List[JobSchedule]:
        seen: Set[str] = set()
        for schedule in value:
            if schedule.job in seen:
                raise ValueError(f"Duplicate schedule for job: {schedule.job}")
            seen.add(schedule.job)
        return value

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("DATABASE_URL must be a valid database URL.")
        return value

    @field_validator("site_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("news_page_size")
    @classmethod
    def _validate_page_size(cls, v: int) -> int:
        if v > 50:
            raise ValueError("NEWS_PAGE_SIZE must be 50 or less.")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return the Settings instance built from the environment."""
    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Environment validation failed: {exc}") from exc


def reset_settings_cache() -> None:
    """Clear the Settings cache (for tests)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
