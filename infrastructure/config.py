"""Application configuration, read from HOTEL_BILLING_* environment variables"""
from datetime import time
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.enums import BillingMethod


class Settings(BaseSettings):
    """Engine settings"""

    APP_NAME: str = "Hotel Billing Engine"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Pricing
    DEFAULT_CURRENCY: str = "XAF"
    DEFAULT_BILLING_METHOD: BillingMethod = BillingMethod.RESERVED

    # Front desk
    STANDARD_CHECK_IN_TIME: time = time(12, 0)
    NO_SHOW_GRACE_HOURS: int = 24

    BOOKING_REFERENCE_PREFIX: str = "HLP"

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_BILLING_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
