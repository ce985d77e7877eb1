import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field("sqlite:///./recipe_lens.db", alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    scraper_user_agent: str = Field(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        alias="SCRAPER_USER_AGENT",
    )
    scraper_mobile_user_agent: str = Field(
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1",
        alias="SCRAPER_MOBILE_USER_AGENT",
    )
    scraper_cookies: str | None = Field(None, alias="SCRAPER_COOKIES")
    fetch_timeout_seconds: float = Field(15.0, alias="FETCH_TIMEOUT_SECONDS")
    fetch_connect_timeout_seconds: float = Field(5.0, alias="FETCH_CONNECT_TIMEOUT_SECONDS")
    mobile_refetch_timeout_seconds: float = Field(10.0, alias="MOBILE_REFETCH_TIMEOUT_SECONDS")
    remote_metadata_timeout_seconds: float = Field(5.0, alias="REMOTE_METADATA_TIMEOUT_SECONDS")
    # Learning store
    discovered_site_cache_ttl_seconds: int = Field(300, alias="DISCOVERED_SITE_CACHE_TTL_SECONDS")
    pattern_success_threshold: float = Field(50.0, alias="PATTERN_SUCCESS_THRESHOLD")
    pattern_min_attempts: int = Field(1, alias="PATTERN_MIN_ATTEMPTS")
    pattern_stale_days: int | None = Field(None, alias="PATTERN_STALE_DAYS")
    raw_html_sample_chars: int = Field(2000, alias="RAW_HTML_SAMPLE_CHARS")
    attempt_logging_enabled: bool = Field(True, alias="ATTEMPT_LOGGING_ENABLED")
    parser_version_override: str | None = Field(None, alias="PARSER_VERSION_OVERRIDE")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
