"""
Centralized application configuration.

All settings are driven by environment variables with sensible defaults.
Uses Pydantic BaseSettings for validation and type coercion.
"""

import logging
import sys
from functools import lru_cache
from typing import Any, Literal

from pydantic_settings import BaseSettings

from accesslog.store.sink import LoggerStream


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Application ---
    app_name: str = "accesslog"
    app_version: str = "0.1.0"
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"  # DEBUG | INFO | WARNING | ERROR

    # --- Access log ---
    access_log_format: str | None = None  # None → fixed common-log layout
    access_log_stream: Literal["stdout", "stderr", "logging"] = "stdout"
    access_log_buffer: bool | int = False  # true → 1000ms, or interval in ms

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def access_log_target(self) -> Any:
        """Resolve ``access_log_stream`` to a writable object."""
        if self.access_log_stream == "stderr":
            return sys.stderr
        if self.access_log_stream == "logging":
            return LoggerStream(logging.getLogger(f"{self.app_name}.access"))
        return sys.stdout


@lru_cache
def get_settings() -> Settings:
    """
    Return a cached Settings instance.

    Using lru_cache ensures we only read env vars once, and the same
    Settings object is reused across the application lifetime.
    """
    return Settings()
