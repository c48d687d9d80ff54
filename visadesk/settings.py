"""
visadesk.settings
=================

Configuration settings for the VisaDesk application.

This module provides centralized configuration options that can be used
across the application.  It includes default values that can be
overridden via environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------
# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Database settings
# ---------------------------------------------------------------------------
DB_FILE = os.environ.get("VISADESK_DB_FILE", str(BASE_DIR / "visadesk.db"))
DB_URL = os.environ.get("VISADESK_DB_URL", f"sqlite:///{DB_FILE}")
DB_ECHO = os.environ.get("VISADESK_DB_ECHO", "False").lower() == "true"

# API settings
# ---------------------------------------------------------------------------
API_HOST = os.environ.get("VISADESK_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("VISADESK_API_PORT", "8000"))
API_DEBUG = os.environ.get("VISADESK_API_DEBUG", "False").lower() == "true"

# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("VISADESK_LOG_LEVEL", "INFO").upper()


# ---------------------------------------------------------------------------
# Pydantic settings model for workflow rules
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Pydantic model for application settings, loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VISADESK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    custody_min_progress: int = Field(
        7, ge=1, le=10,
        description="Stage a case must have completed before entering card custody",
    )
    lookup_retry_limit: int = Field(
        1, ge=0, description="Lookup refresh-and-retry attempts on a stale charge entity",
    )
    percent_precision: int = Field(0, ge=0, description="Decimals in completion percentages")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed by the API CORS middleware",
    )


# Initialize settings
settings = Settings()
