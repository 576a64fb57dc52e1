"""
Engagement Monitor Configuration Settings

All policy constants (heartbeat cadence, inactivity threshold, seek
tolerance, completion threshold, proctoring limits, quotas) live here so
client-side guards and the server-side ingestion path read the same values.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Configuration for the engagement monitor."""

    # API Settings
    APP_NAME: str = "Engagement Monitor Service"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Heartbeat / attention
    HEARTBEAT_INTERVAL_SECONDS: float = 10.0
    INACTIVITY_THRESHOLD_SECONDS: float = 15 * 60

    # Playback integrity
    SEEK_TOLERANCE_SECONDS: float = 3.0
    MIN_SEEK_JUMP_SECONDS: float = 5.0
    MAX_PLAYBACK_RATE: float = 1.0

    # Lesson completion (single canonical threshold, client and server)
    COMPLETION_THRESHOLD_PERCENT: float = 90.0

    # Proctored assessment
    QUESTION_TIME_LIMIT_SECONDS: int = 60
    MAX_FULLSCREEN_EXITS: int = 3
    PASSING_SCORE: int = 75

    # Quotas
    AI_CHAT_HOURLY_LIMIT: int = 6
    AI_CHAT_WINDOW_SECONDS: float = 3600.0
    AI_CHAT_LIFETIME_LIMIT: int = 100
    DISCUSSION_MESSAGE_LIMIT: int = 3
    DISCUSSION_WINDOW_SECONDS: float = 10.0
    QUOTA_BACKEND: str = "memory"  # "memory" | "redis"
    REDIS_URL: str = "redis://localhost:6379"

    # Upstream ingestion
    INGEST_BASE_URL: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
