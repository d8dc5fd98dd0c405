"""Configuration for the review subsystem."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class ReviewSettings(BaseSettings):
    """Review policy settings."""

    model_config = {"env_prefix": "REVIEW_", "env_file": ".env", "extra": "ignore"}

    # Weekly quota for normal reviews
    weekly_review_limit: int = 3
    week_window_days: int = 7

    # Moderation
    moderation_strike_reason: str = "Keyword moderation violation"
    # Recounts when a concurrent request took the same strike number
    strike_insert_attempts: int = 3

    # Third-strike penalty review
    system_reviewer_uid: str = "SYSTEM"
    penalty_strike_number: int = 3
    penalty_rating: int = 2
    penalty_comment: str = "System penalty for repeated abusive reviews."


# Review timeout per strike number; anything past the table carries no timeout.
STRIKE_TIMEOUT_HOURS: dict[int, int] = {
    1: 24,   # 1 day
    2: 72,   # 3 days
    3: 168,  # 7 days
}

# Inclusive (min, max) rating allowed for the Nth normal review of a window.
# The second slot has the higher floor.
WEEKLY_RATING_BOUNDS: dict[int, tuple[int, int]] = {
    0: (3, 10),
    1: (5, 10),
    2: (3, 10),
}

# Messages each side must have sent before a normal review is allowed.
NORMAL_REVIEW_MIN_MESSAGES_EACH = 2
# Messages the target must have sent before a report is allowed.
REPORT_MIN_INBOUND_MESSAGES = 1


@lru_cache
def get_review_settings() -> ReviewSettings:
    """Get cached review settings instance."""
    return ReviewSettings()
