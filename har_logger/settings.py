"""
Centralized settings for the HAR logger using Pydantic BaseSettings.

All options are read from ``HAR_LOGGER_*`` environment variables (or a
``.env`` file). Use get_settings() to obtain the cached instance.

Usage:
    from har_logger.settings import get_settings

    settings = get_settings()
    print(settings.default_output_file)
"""

import os
import time
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from har_logger.version import __version__

# Computed once per process so every default-target caller agrees on the name.
_PROCESS_TIMESTAMP = int(time.time())


class HarLoggerSettings(BaseSettings):
    """HAR logger settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HAR_LOGGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------
    enabled: bool = Field(
        default=True,
        description="Enable request capture when instrumenting an app",
    )
    redact_headers: str = Field(
        default="",
        description="Comma-separated header names whose values are masked",
    )

    @property
    def redact_headers_list(self) -> list[str]:
        """Parse redacted header names into a lowercase list."""
        return [h.strip().lower() for h in self.redact_headers.split(",") if h.strip()]

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------
    output_file: Optional[str] = Field(
        default=None,
        description="Default HAR file; computed from output_dir when unset",
    )
    output_dir: str = Field(
        default=".",
        description="Directory for the computed default HAR file name",
    )
    creator_name: str = Field(
        default="har-logger for Python",
        description="Creator name written into the HAR preamble",
    )
    creator_version: str = Field(
        default=__version__,
        description="Creator version written into the HAR preamble",
    )

    @property
    def default_output_file(self) -> str:
        """The HAR file used when a caller does not name one."""
        if self.output_file:
            return self.output_file
        return os.path.join(self.output_dir, f"akita_trace_{_PROCESS_TIMESTAMP}.har")

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------
    shutdown_timeout: Optional[float] = Field(
        default=None,
        description="Seconds to wait for each writer on shutdown (None waits forever)",
    )
    exit_hook: bool = Field(
        default=True,
        description="Flush the default registry from an atexit hook",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("shutdown_timeout")
    @classmethod
    def validate_shutdown_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Reject negative timeouts."""
        if v is not None and v < 0:
            raise ValueError(f"shutdown_timeout must be >= 0, got {v}")
        return v


@lru_cache
def get_settings() -> HarLoggerSettings:
    """
    Get cached settings instance.

    For testing, clear the cache with get_settings.cache_clear().
    """
    return HarLoggerSettings()
