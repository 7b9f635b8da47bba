from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///./catalog.db"
    SQL_ECHO: bool = False

    # Only used by the HTTP layer to validate bearer tokens
    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
    )

    MAX_COMMUNITY_TAGS: int = 100
    TAG_NAME_MIN_LENGTH: int = 2
    TAG_NAME_MAX_LENGTH: int = 50


settings = Settings()
