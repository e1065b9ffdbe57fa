"""
Application settings loaded from environment variables.

Uses pydantic-settings for type-safe configuration with .env file support.
"""

from dataclasses import dataclass

from pydantic import model_validator
from pydantic_settings import BaseSettings

_DEV_SECRET_KEY = "dev-jwt-secret-change-in-production"
_DEV_OTP_SECRET = "dev-otp-secret-change-in-production"


@dataclass(frozen=True)
class RateLimitRule:
    """Fixed window: at most ``max_requests`` per ``window_seconds``."""
    window_seconds: int
    max_requests: int


class Settings(BaseSettings):
    """Global application settings."""

    # App
    APP_NAME: str = "LearnPath API"
    APP_ENV: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str = _DEV_SECRET_KEY
    OTP_SECRET: str = _DEV_OTP_SECRET

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./learnpath.db"
    DATABASE_POOL_SIZE: int = 20

    # JWT
    JWT_PRIVATE_KEY_PATH: str = "keys/private.pem"
    JWT_PUBLIC_KEY_PATH: str = "keys/public.pem"
    JWT_ALGORITHM: str = "RS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Refresh cookie
    REFRESH_COOKIE_NAME: str = "refreshToken"
    REFRESH_COOKIE_PATH: str = "/api/auth"

    # OTP
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 10
    OTP_MAX_ATTEMPTS: int = 3
    OTP_RESEND_COOLDOWN_SECONDS: int = 60

    # Rate limits
    OTP_REQUEST_WINDOW_SECONDS: int = 3600
    OTP_REQUEST_MAX: int = 5
    OTP_VERIFY_WINDOW_SECONDS: int = 3600
    OTP_VERIFY_MAX: int = 10
    IP_REQUEST_WINDOW_SECONDS: int = 60
    IP_REQUEST_MAX: int = 20

    # Email (Resend)
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_FROM: str = "LearnPath <noreply@learnpath.dev>"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    CLEANUP_INTERVAL_SECONDS: int = 3600

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @model_validator(mode="after")
    def _require_production_secrets(self) -> "Settings":
        if self.APP_ENV == "production":
            if self.SECRET_KEY == _DEV_SECRET_KEY:
                raise ValueError("Missing required environment variable: SECRET_KEY")
            if self.OTP_SECRET == _DEV_OTP_SECRET:
                raise ValueError("Missing required environment variable: OTP_SECRET")
        return self

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def RATE_LIMITS(self) -> dict[str, RateLimitRule]:
        return {
            "otp_request": RateLimitRule(
                self.OTP_REQUEST_WINDOW_SECONDS, self.OTP_REQUEST_MAX
            ),
            "otp_verify": RateLimitRule(
                self.OTP_VERIFY_WINDOW_SECONDS, self.OTP_VERIFY_MAX
            ),
            "ip_request": RateLimitRule(
                self.IP_REQUEST_WINDOW_SECONDS, self.IP_REQUEST_MAX
            ),
        }


settings = Settings()
