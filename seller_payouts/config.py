from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from decimal import Decimal
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./seller_payouts.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Seller Payouts"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Commission policy
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("10")  # % applied when no tier matches
    DEFAULT_PLATFORM_FEE_RATE: Decimal = Decimal("2")  # % applied when no tier matches

    # Payout policy
    PAYOUT_TRANSACTION_FEE_RATE: Decimal = Decimal("1")  # % of payout total
    DEFAULT_MINIMUM_PAYOUT_AMOUNT: Decimal = Decimal("100")
    DEFAULT_PAYMENT_METHOD: str = "BANK_TRANSFER"
    PAYOUT_CLAIM_MAX_ATTEMPTS: int = 3  # Retries when a claim loses a concurrent race
    PAYOUT_NUMBER_PREFIX: str = "PAY"
    PAYOUT_NUMBER_PADDING: int = 6

    # Payout completion webhook (notification collaborator)
    PAYOUT_WEBHOOK_URL: Optional[str] = None
    PAYOUT_WEBHOOK_TIMEOUT: float = 15.0

    # Pagination
    MAX_PAGE_SIZE: int = 100

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
