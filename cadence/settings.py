"""
cadence.settings
================

Configuration settings for the Cadence application.

This module provides centralized configuration options that can be used across
the application. It includes default values that can be overridden
via environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------
# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Database settings
# ---------------------------------------------------------------------------
DB_FILE = os.environ.get("CADENCE_DB_FILE", BASE_DIR / "cadence.db")
DB_URL = os.environ.get("CADENCE_DB_URL", f"sqlite:///{DB_FILE}")
DB_ECHO = os.environ.get("CADENCE_DB_ECHO", "False").lower() == "true"

# API settings
# ---------------------------------------------------------------------------
API_HOST = os.environ.get("CADENCE_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("CADENCE_API_PORT", "8000"))
API_DEBUG = os.environ.get("CADENCE_API_DEBUG", "False").lower() == "true"


# ---------------------------------------------------------------------------
# Pydantic settings model for engine behaviour
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Pydantic model for lifecycle settings, loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CADENCE_",  # CADENCE_TIMEZONE, CADENCE_SWEEP_ON_LIST ...
        env_file=".env",        # load from .env file if present
        case_sensitive=False,
        extra="ignore",
    )

    timezone: str = Field("UTC", description="IANA zone used to decide what 'today' is")
    batch_id_prefix: str = Field("BAT", description="Prefix for generated batch ids")
    term_id_prefix: str = Field("TRM", description="Prefix for generated term ids")
    sweep_on_list: bool = Field(
        True, description="Run the automatic sweep every time a family is listed"
    )
    log_level: str = Field("INFO", description="Root logging level for the CLI and API")


# Initialize settings
settings = Settings()
