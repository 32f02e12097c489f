"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./church_events.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Notifications
    NOTIFICATION_WORKERS: int = 4
    NOTIFY_WAITLIST_PROMOTION: bool = True
    DEFAULT_TIMEZONE: str = "UTC"
    FRONTEND_URL: str = "http://localhost:3000"
    ORGANIZATION_NAME: str = "Church Community"

    class Config:
        env_file = ".env"


settings = Settings()
