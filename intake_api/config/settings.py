"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Application Intake API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database
    DATABASE_URL: str = "sqlite:///./applications.db"
    AUTO_CREATE_TABLES: bool = True

    # AWS S3 (CV storage)
    S3_BUCKET: str = ""
    S3_PREFIX: str = "recruitment_applications"
    S3_REGION: str = "eu-west-2"
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[str] = None
    S3_PUBLIC_BASE_URL: Optional[str] = None  # e.g. a CloudFront domain
    CV_MAX_BYTES: int = 5 * 1024 * 1024
    CV_ALLOWED_MIMETYPES: list[str] = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ]
    CV_DOWNLOAD_EXPIRES_IN: int = 3600

    # AWS SES (notifications)
    EMAIL_ENABLED: bool = True
    SES_FROM_EMAIL: str = ""
    SES_FROM_NAME: str = "DesignandBuildHQ"
    SES_REGION: str = "eu-west-2"
    SES_ACCESS_KEY_ID: Optional[str] = None
    SES_SECRET_ACCESS_KEY: Optional[str] = None

    # Notification content
    ADMIN_EMAIL: str = ""
    COMPANY_NAME: str = "DesignandBuildHQ"
    LOGO_URL: Optional[str] = None
    FRONTEND_URL: str = "http://localhost:3000"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Rate limiting (requests per window, window in seconds)
    RATE_LIMIT_ENABLED: bool = True
    SUBMISSION_RATE_LIMIT: int = 5
    SUBMISSION_RATE_WINDOW: int = 3600
    API_RATE_LIMIT: int = 100
    API_RATE_WINDOW: int = 900

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
