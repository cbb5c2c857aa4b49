"""
Configuration settings for the premium push service
"""
import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Persistence
    mongodb_url: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URL")
    mongodb_db: str = Field(default="premium_push", alias="MONGODB_DB")

    # User plan cache
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    plan_cache_ttl_seconds: int = Field(default=300, alias="PLAN_CACHE_TTL_SECONDS")

    # Push providers
    fcm_service_account_file: Optional[str] = Field(default=None, alias="FCM_SERVICE_ACCOUNT_FILE")
    fcm_project_id: Optional[str] = Field(default=None, alias="FCM_PROJECT_ID")
    expo_access_token: Optional[str] = Field(default=None, alias="EXPO_ACCESS_TOKEN")
    expo_push_url: str = Field(default="https://exp.host/--/api/v2/push/send", alias="EXPO_PUSH_URL")

    # Dispatch
    push_timeout_seconds: float = Field(default=10.0, gt=0, alias="PUSH_TIMEOUT_SECONDS")
    push_max_concurrency: int = Field(default=8, ge=1, alias="PUSH_MAX_CONCURRENCY")
    prune_unregistered_devices: bool = Field(default=True, alias="PRUNE_UNREGISTERED_DEVICES")

    # Authentication
    jwt_secret: Optional[str] = Field(default=None, alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Entitlement
    trial_length_days: int = Field(default=3, ge=0, alias="TRIAL_LENGTH_DAYS")
    trial_timezone: str = Field(default="UTC", alias="TRIAL_TIMEZONE")

    # Diagnostics
    recent_device_window: int = Field(default=10, ge=0, alias="RECENT_DEVICE_WINDOW")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
