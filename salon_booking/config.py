"""Application configuration settings.

``Settings`` is loaded from environment variables with ``pydantic-settings``.
Import the module-level ``settings`` instance rather than constructing a new
one per call.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    # Session tokens
    jwt_secret: str = Field(
        default="change-me-in-production",
        alias="JWT_SECRET",
        description="HMAC secret used to sign and verify session tokens.",
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_minutes: int = Field(
        default=60 * 24,
        alias="JWT_EXPIRES_MINUTES",
        description="Lifetime of a minted token, in minutes.",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Slot grid defaults
    default_open_time: str = Field(default="09:00", alias="DEFAULT_OPEN_TIME")
    default_close_time: str = Field(default="18:00", alias="DEFAULT_CLOSE_TIME")
    slot_minutes: int = Field(
        default=5,
        alias="SLOT_MINUTES",
        description="Width of a front-end slot. The conflict check never reads it.",
    )

    # Listing
    default_page_limit: int = Field(default=20, alias="DEFAULT_PAGE_LIMIT")
    max_page_limit: int = Field(default=50, alias="MAX_PAGE_LIMIT")


settings = Settings()
