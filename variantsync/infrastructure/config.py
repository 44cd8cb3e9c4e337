"""Application configuration.

Loads settings from environment variables with sensible defaults.
Every variable is prefixed with ``VARIANTSYNC_`` (e.g. ``VARIANTSYNC_DEBUG``).
"""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Authentication
    api_key: str = "dev-api-key-change-in-production"

    # Storage
    storage_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "postgresql+asyncpg://variantsync:variantsync_dev_password@db:5432/variantsync"

    # Remote catalog
    remote_catalog_url: str = "https://tomato.tpos.vn"
    remote_catalog_token: str = ""
    remote_timeout_seconds: float = 30.0
    inter_call_delay_seconds: float = 0.5

    # Product code allocation
    reservation_ttl_seconds: int = 300
    code_allocation_max_attempts: int = 20

    # Sync status polling
    poll_interval_seconds: float = 3.0
    poll_max_attempts: int = 40

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "env_prefix": "VARIANTSYNC_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
