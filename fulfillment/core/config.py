"""Application configuration."""

from datetime import time
from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Fry Fulfillment API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    log_level: str = getenv("LOG_LEVEL", "INFO")
    database_url: str = getenv("DATABASE_URL", "sqlite:///./fulfillment.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "60"))
    admin_user: str = getenv("ADMIN_USER", "admin")
    admin_pass: str = getenv("ADMIN_PASS", "")
    business_timezone: str = getenv("BUSINESS_TIMEZONE", "UTC")
    default_open_time: time = time.fromisoformat(getenv("DEFAULT_OPEN_TIME", "08:00"))
    default_close_time: time = time.fromisoformat(getenv("DEFAULT_CLOSE_TIME", "18:00"))
    cancellation_window_minutes: int = int(getenv("CANCELLATION_WINDOW_MINUTES", "5"))
    order_number_prefix: str = getenv("ORDER_NUMBER_PREFIX", "FRY")
    write_conflict_retries: int = int(getenv("WRITE_CONFLICT_RETRIES", "3"))


settings: Settings = Settings()
