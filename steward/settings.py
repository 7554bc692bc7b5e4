"""
steward.settings
================

Configuration settings for the Steward engine and its host layer.

Process-level options are read straight from environment variables; the
scoring and segment thresholds live on a pydantic-settings model so they
can be overridden with ``STEWARD_*`` variables or a ``.env`` file.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# API settings
# ---------------------------------------------------------------------------
API_HOST = os.environ.get("STEWARD_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("STEWARD_API_PORT", "8000"))
API_DEBUG = os.environ.get("STEWARD_API_DEBUG", "False").lower() == "true"
API_SEED_DEMO = os.environ.get("STEWARD_SEED_DEMO", "False").lower() == "true"

# Chart output
# ---------------------------------------------------------------------------
CHART_DIR = Path(os.environ.get("STEWARD_CHART_DIR", BASE_DIR / "images"))


# ---------------------------------------------------------------------------
# Pydantic settings model for scoring and segmentation thresholds
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Thresholds used by the scoring, rules and report modules."""

    model_config = SettingsConfigDict(
        env_prefix="STEWARD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Engagement
    never_engaged_days: int = Field(365, ge=0, description="Elapsed days assumed when nothing qualifies")
    engagement_points_per_event: int = Field(5, ge=0, description="Bonus per qualifying event")
    high_engagement_threshold: int = Field(70, ge=0, le=100)
    at_risk_threshold: int = Field(40, ge=0, le=100, description="Scores below this are at risk")
    lapsing_after_days: int = Field(180, ge=0, description="Donors silent longer than this are lapsing")

    # Risk
    risk_weight_warning: int = Field(25, ge=0)
    risk_weight_flag: int = Field(20, ge=0)
    risk_weight_report: int = Field(10, ge=0)

    # Moderation
    min_suspension_days: int = Field(1, ge=1)
    max_suspension_days: int = Field(365, ge=1)


# Initialize settings
settings = Settings()
