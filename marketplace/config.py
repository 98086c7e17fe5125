"""
Application configuration, read from the environment via pydantic-settings.

Every setting can be overridden with a ROOMS_-prefixed environment variable
(e.g. ROOMS_EMAIL_BACKEND=function) or a .env file.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s"


class Settings(BaseSettings):
    """Settings for the marketplace notification core."""

    model_config = SettingsConfigDict(
        env_prefix="ROOMS_", env_file=".env", case_sensitive=False
    )

    app_name: str = "Room Marketplace Notifications"
    log_level: str = "INFO"

    # Fixtures for the marketplace data store
    data_dir: Path = Path(__file__).parent.parent / "data"

    # Origin prepended to in-app links in emails
    site_url: str = "http://localhost:3000"

    # Email
    email_backend: Literal["mock", "function"] = "mock"
    email_function_url: Optional[str] = None
    email_api_key: Optional[str] = None
    email_timeout_seconds: float = Field(default=10.0, gt=0)
    email_fail_rate: float = Field(default=0.0, ge=0.0, le=1.0)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Install the console log format. Called by entry points, not libraries."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
