"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

The settings object is built once at startup and handed to create_app(),
which passes the relevant sub-config into each collaborator. Nothing else
reads the environment directly.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "image-store"


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # IMAGE_DIR is the historical name of the storage root
    image_dir: str = "./uploads"
    storage_max_upload_bytes: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, gt=0)
    # Public file access lets uploaded images be hotlinked without a key
    storage_public_file_access: bool = True


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production
    # Off in tests so structlog.testing.capture_logs sees every event
    log_cache_loggers: bool = True

    @property
    def is_production(self) -> bool:
        return self.env == "production"


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "image-store"
    port: int = 3120

    # CORS: all origins unless configured
    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (empty disables the docs UI)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    storage: Optional[StorageSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.storage is None:
            self.storage = StorageSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
