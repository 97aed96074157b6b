"""
Configuration management for the newsletter subscription service.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Public URL of this service (used in confirmation links)
    base_url: str = "http://127.0.0.1:8000"

    # Database
    database_url: str = "sqlite:///./newsletter.db"
    database_pool_timeout_seconds: float = 2.0

    # Transactional email provider (Postmark-style API)
    email_base_url: str = "https://api.postmarkapp.com"
    email_sender: str = "newsletter@example.com"
    email_authorization_token: str = ""
    email_timeout_seconds: float = 10.0

    # Confirmation re-send job
    confirmation_resend_after_minutes: int = 15
    confirmation_resend_interval_minutes: int = 5
    confirmation_resend_batch_size: int = 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def is_email_configured() -> bool:
    """Check if the email provider credential is set."""
    return bool(get_settings().email_authorization_token)
