"""
FORMCOACH Configuration

Environment variables and evaluation settings.
"""

from pydantic_settings import BaseSettings
from typing import Dict


class Settings(BaseSettings):
    """Evaluation settings loaded from environment variables (prefix FORMCOACH_)."""

    # Application
    APP_NAME: str = "FORMCOACH"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Visibility gate
    VISIBILITY_THRESHOLD: float = 0.5

    # Feedback
    FEEDBACK_COOLDOWN_SECONDS: float = 3.0
    FEEDBACK_MIN_INTERVAL_SECONDS: float = 0.0  # gap between any two messages, 0 disables
    REALTIME_FEEDBACK: bool = True

    # Scoring
    RULE_PASS_THRESHOLD: float = 0.5  # rule fails a rep below this pass rate
    FORM_ISSUE_MIN_OCCURRENCES: int = 1

    # Tuning overrides, e.g. {"squat": {"hysteresis_margin": 15}}
    PHASE_THRESHOLD_OVERRIDES: Dict[str, Dict[str, float]] = {}
    # e.g. {"squat": {"knee_over_toe": 0.08}}
    RULE_TOLERANCE_OVERRIDES: Dict[str, Dict[str, float]] = {}

    class Config:
        env_prefix = "FORMCOACH_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
