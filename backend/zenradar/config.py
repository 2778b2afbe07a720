"""Application configuration via Pydantic Settings."""

from typing import Dict, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./zenradar.db"
    STORE_BACKEND: str = "sql"  # 'sql' or 'memory'

    @model_validator(mode="after")
    def fix_database_url(self) -> "Settings":
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://"""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            self.DATABASE_URL = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            self.DATABASE_URL = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return self

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Trigger endpoint auth. Empty string accepts any bearer token.
    CRAWL_API_KEY: str = ""

    # Crawl behaviour
    CRAWL_CONCURRENCY: int = 3
    DETAIL_BATCH_SIZE: int = 5
    DETAIL_BATCH_DELAY_SECONDS: float = 1.0
    FETCH_TIMEOUT_MS: int = 30000
    DETAIL_FETCH_TIMEOUT_MS: int = 20000

    # Outbound request identity
    USER_AGENT: str = "ZenRadar Bot 1.0 (+https://zenradar.app)"
    ACCEPT_LANGUAGE: str = "en-US,en;q=0.5"

    # Pricing / history
    CANONICAL_CURRENCY: str = "EUR"
    PRICE_HISTORY_INTERVAL_HOURS: int = 24

    @field_validator("CANONICAL_CURRENCY")
    @classmethod
    def check_canonical_currency(cls, value: str) -> str:
        """The static conversion table only holds rates into EUR."""
        value = value.upper()
        if value != "EUR":
            raise ValueError(f"unsupported canonical currency {value!r}; only EUR is supported")
        return value

    # Optional JSON file with extra or overriding site descriptors
    SITES_FILE: Optional[str] = None

    def default_request_headers(self) -> Dict[str, str]:
        """Headers sent with every document fetch.

        Returns:
            Header dict with the identifying user agent and locale preferences
        """
        return {
            "User-Agent": self.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.ACCEPT_LANGUAGE,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }


settings = Settings()
