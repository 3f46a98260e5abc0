from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # -----------------------------
    # Database
    # -----------------------------
    DATABASE_URL: str = "sqlite:///./easy_ops.db"
    SQL_ECHO: bool = False

    # -----------------------------
    # Identity provider (token validation only)
    # -----------------------------
    AUTH_JWT_SECRET: str = ""
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: Optional[str] = "authenticated"

    # -----------------------------
    # Square webhooks
    # -----------------------------
    SQUARE_WEBHOOK_SECRET: Optional[str] = None
    SQUARE_SANDBOX_WEBHOOK_SECRET: Optional[str] = None
    SQUARE_WEBHOOK_SANDBOX_MODE: bool = False  # warn instead of reject on signature mismatch
    SQUARE_ORDER_SIGNATURE_SCHEME: str = "body"
    SQUARE_PAYMENT_SIGNATURE_SCHEME: str = "url_body"
    SQUARE_WEBHOOK_URL: Optional[str] = None  # payment endpoint
    SQUARE_ORDER_WEBHOOK_URL: Optional[str] = None
    SQUARE_TIMESTAMP_TOLERANCE_SECONDS: int = 300

    # -----------------------------
    # Square API
    # -----------------------------
    SQUARE_ACCESS_TOKEN: Optional[str] = None
    SQUARE_SANDBOX_ACCESS_TOKEN: Optional[str] = None
    SQUARE_ENVIRONMENT: str = "production"
    SQUARE_API_TIMEOUT: int = 10

    # -----------------------------
    # Email / SMTP
    # -----------------------------
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@loudbaby.com"
    EMAIL_FROM_NAME: str = "Loud Baby Ops"
    ADMIN_EMAIL: str = "manager@loudbaby.com"

    # -----------------------------
    # Reminders
    # -----------------------------
    REMINDER_WINDOW_DAYS: int = 7

    # -----------------------------
    # App Environment
    # -----------------------------
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def square_webhook_secret(self) -> Optional[str]:
        return self.SQUARE_WEBHOOK_SECRET or self.SQUARE_SANDBOX_WEBHOOK_SECRET

    @property
    def square_access_token(self) -> Optional[str]:
        return self.SQUARE_ACCESS_TOKEN or self.SQUARE_SANDBOX_ACCESS_TOKEN

    @property
    def square_base_url(self) -> str:
        if self.SQUARE_ENVIRONMENT == "sandbox":
            return "https://connect.squareupsandbox.com"
        return "https://connect.squareup.com"


# -----------------------------
# Cached settings instance
# -----------------------------
@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
