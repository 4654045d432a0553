from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    PROJECT_NAME: str = "CareSync Monitor"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = ""  # local, dev, prod (from .env)

    # MongoDB (from .env)
    MONGODB_URL: str = ""
    MONGODB_DB_NAME: str = ""

    # CORS (from .env, comma-separated)
    BACKEND_CORS_ORIGINS: List[str] = []

    # Logging & Sentry
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None

    # Caching (from .env, set empty to disable)
    REDIS_URL: str | None = None
    ROSTER_CACHE_TTL_SECONDS: int = 30

    # Security (from .env)
    SECRET_KEY: str = ""
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # Alerting
    STALE_VITALS_HOURS: int = 24
    NOTIFICATION_LIST_LIMIT: int = 100
    ALERT_STREAM_QUEUE_SIZE: int = 100
    ALERT_STREAM_KEEPALIVE_SECONDS: float = 30.0

    # Reminders
    REMINDER_LEAD_HOURS: int = 24
    REMINDER_POLL_SECONDS: int = 60

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )


settings = Settings()
