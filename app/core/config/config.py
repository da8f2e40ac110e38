from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    """Application configuration loaded from .env and the environment"""

    # Main settings
    app_name: str = "KYC Onboarding API"
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    debug: bool = False

    # Database
    database_url: str = "sqlite://db.sqlite3"

    # Operator auth
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # CORS settings
    CORS_ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Email OTP
    EMAIL_OTP_SECRET: str
    OTP_TTL_MINUTES: int = 10
    OTP_MAX_ATTEMPTS: int = 5

    # Account numbers
    ACCOUNT_NUMBER_MAX_RETRIES: int = 1000

    # SMTP
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_SENDER: str = "No-Reply <no-reply@example.com>"
    SMTP_TIMEOUT_SECONDS: float = 10.0
    BANK_NAME: str = "NCBA"

    # OCR
    OCR_ENABLED: bool = True
    OCR_LANGUAGE: str = "eng"
    OCR_TIMEOUT_SECONDS: float = 20.0
    TESSERACT_CMD: str | None = None

    # Default operator
    PASSWORD: str = "change-me-please"
    EMAIL: str = "admin@example.com"

    # Logging
    LOG_LEVEL: str = "INFO"
    log_file: Path | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("EMAIL_OTP_SECRET")
    @classmethod
    def otp_secret_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("EMAIL_OTP_SECRET must not be empty")
        return value

    @field_validator("OTP_TTL_MINUTES", "OTP_MAX_ATTEMPTS", "ACCOUNT_NUMBER_MAX_RETRIES")
    @classmethod
    def positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value


settings = Settings()
