from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, SecretStr
from typing import List, Optional


class Settings(BaseSettings):
    PROJECT_NAME: str = "Library Reservation API"
    API_PREFIX: str = "/api"
    DATABASE_URL: str
    LOG_LEVEL: str = "INFO"

    # Sessions are issued by the external identity provider; we only verify them.
    JWT_SECRET: SecretStr
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = "authenticated"

    RESEND_API_KEY: SecretStr | None = None
    EMAIL_FROM_ADDRESS: str = "Library Reservations <reservations@library.example>"
    FRONTEND_URL: str = Field(default="http://localhost:3000", description="Base URL for the frontend application")
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    GCS_BUCKET_NAME: str | None = None
    TARGET_SERVICE_ACCOUNT_EMAIL: str | None = Field(None, validation_alias='TARGET_SERVICE_ACCOUNT_EMAIL')
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None # Path to service account key file (if not using ADC/impersonation)
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # List endpoints
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 100

    # Background work
    EXPIRY_SWEEP_ENABLED: bool = True
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 300
    NOTIFICATION_QUEUE_SIZE: int = 1000
    NOTIFICATION_CONCURRENCY: int = 10
    NOTIFICATION_MAX_ATTEMPTS: int = 3
    NOTIFICATION_BACKOFF_SECONDS: float = 2.0
    EMAIL_TIMEOUT_SECONDS: float = 10.0
    REQUEST_TIMEOUT_SECONDS: float = 15.0

    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

settings = Settings()
