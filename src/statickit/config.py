"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

_MIB = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    data_dir: str = "data"
    database_filename: str = "statickit-session.sqlite3"
    storage_quota_bytes: int | None = None
    debounce_seconds: float = 2.0
    periodic_save_seconds: float = 30.0
    thumbnail_max_size: int = 200
    log_level: str = "INFO"
    session_size_warning_bytes: int = 50 * _MIB
    session_size_danger_bytes: int = 100 * _MIB
    encryption_key: str
    supabase_url: str
    supabase_service_key: str
    api_token: str
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    dashscope_base_url: str = "https://dashscope-intl.aliyuncs.com/api/v1"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def database_path(self) -> Path:
        """Return the path of the local session database."""
        return Path(self.data_dir) / self.database_filename
