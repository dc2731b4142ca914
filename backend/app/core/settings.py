# backend/app/core/settings.py

import enum
from pathlib import Path
from typing import List
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Define project root to build paths consistently
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

load_dotenv(PROJECT_ROOT / ".env")


class SummaryCachePolicy(str, enum.Enum):
    """How a persisted daily summary is reused once it exists."""
    CACHE_FOREVER = "cache_forever"
    RECOMPUTE_TODAY = "recompute_today"
    ALWAYS = "always"


class Settings(BaseSettings):
    """Manages application-wide settings and configurations for the API service."""
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "TaskFlow API"
    VERSION: str = "1.0.0"

    # Database Configuration
    DATABASE_URL: str = f"sqlite+aiosqlite:///{PROJECT_ROOT / 'taskflow.db'}"

    # JWT Configuration
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # CORS Configuration
    ALLOWED_ORIGINS_STR: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"

    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if not self.ALLOWED_ORIGINS_STR:
            return []
        return [origin.strip() for origin in self.ALLOWED_ORIGINS_STR.split(",")]

    # --- Timezone ---
    # Day windows and hour-of-day buckets are interpreted in this zone.
    LOCAL_TZ: str = "UTC"

    @property
    def local_zone(self) -> ZoneInfo:
        return ZoneInfo(self.LOCAL_TZ)

    # --- Analytics ---
    SUMMARY_CACHE_POLICY: SummaryCachePolicy = SummaryCachePolicy.CACHE_FOREVER
    SUMMARY_TOP_N: int = 10

    # Development settings
    DEBUG: bool = False


settings = Settings()
