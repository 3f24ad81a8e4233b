"""Lanes backend configuration — settings, lane timings, gamification constants."""

from typing import Literal

from pydantic_settings import BaseSettings

Lane = Literal["now", "soon", "later", "park"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///data/lanes.db"

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:8081"

    # Auth
    auth_secret: str = ""  # Empty = random per-process secret (dev mode)
    session_token_ttl_hours: int = 168
    password_min_length: int = 6
    password_reset_code_ttl_minutes: int = 15

    # Team invites
    invite_ttl_days: int = 7
    invite_code_length: int = 8
    invite_code_max_attempts: int = 5

    # Default due dates by lane (days from creation; "now" is due end of day)
    soon_due_days: int = 3
    later_due_days: int = 7
    park_due_days: int = 30

    # Gamification
    points_per_completion: int = 10

    # Staleness / weekly review
    soon_stale_days: int = 7
    park_stale_days: int = 14
    park_overload_threshold: int = 5
    review_window_days: int = 7

    # Rate limits (requests per minute per client)
    rate_limit_global_rpm: int = 120
    rate_limit_auth_rpm: int = 10
    rate_limit_idle_seconds: int = 300  # forget clients idle this long
    rate_limit_max_clients: int = 10000

    # Email / SMTP (password reset codes, support messages)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    mail_from_name: str = "I Get It Done"
    support_inbox: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


def get_stale_thresholds() -> dict[str, int]:
    """Resolve per-lane staleness thresholds in days (env-overridable)."""
    return {
        "soon": settings.soon_stale_days,
        "park": settings.park_stale_days,
    }


def get_lane_due_days() -> dict[str, int]:
    """Days until a new task in each lane falls due (0 = end of today, UTC)."""
    return {
        "now": 0,
        "soon": settings.soon_due_days,
        "later": settings.later_due_days,
        "park": settings.park_due_days,
    }
