from pydantic_settings import BaseSettings
from typing import Optional
import os


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "Tabsync"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/tabsync.db"

    # API settings
    API_V1_STR: str = "/api/v1"

    # CORS settings
    BACKEND_CORS_ORIGINS: list[str] = ["*"]

    # Live sync settings
    SESSION_CHECK_DELAY_MS: int = 1000

    # TOTP settings
    TOTP_ISSUER: str = "Tabsync"
    TOTP_INTERVAL: int = 30
    TOTP_VALID_WINDOW: int = 1

    # Unverified account sweep
    UNVERIFIED_USER_RETENTION_MINUTES: int = 30
    CLEANUP_INTERVAL_SECONDS: int = 1800

    # Rate limiting (requests per window)
    RATE_LIMIT_GLOBAL_REQUESTS: int = 20
    RATE_LIMIT_GLOBAL_WINDOW_SECONDS: float = 10.0
    RATE_LIMIT_AUTH_REQUESTS: int = 10
    RATE_LIMIT_AUTH_WINDOW_SECONDS: float = 60.0
    RATE_LIMIT_SEARCH_REQUESTS: int = 5
    RATE_LIMIT_SEARCH_WINDOW_SECONDS: float = 1.0
    BAN_DURATION_SECONDS: int = 600
    RATE_LIMIT_MAX_TRACKED_IPS: int = 10000

    # Search proxy settings
    BRAVE_API_BASE_URL: str = "https://api.search.brave.com/res/v1"
    BRAVE_API_KEY: Optional[str] = None
    BRAVE_SUGGEST_API_KEY: Optional[str] = None
    SEARCH_TIMEOUT: int = 10
    SEARCH_CACHE_TTL: int = 600
    SEARCH_CACHE_MAX_ENTRIES: int = 1024
    SEARCH_DEFAULT_COUNTRY: str = "ALL"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def database_path(self) -> str:
        return self.DATABASE_URL.replace("sqlite+aiosqlite:///", "")


settings = Settings()

# Create the database directory
_db_dir = os.path.dirname(settings.database_path)
if _db_dir:
    os.makedirs(_db_dir, exist_ok=True)
