from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Core
    ENVIRONMENT: str = Field(default="production")
    LOG_LEVEL: str = Field(default="INFO")
    FIRESTORE_PROJECT_ID: str = Field(default="")
    CORS_ALLOW_ORIGINS: str = Field(default="*")  # comma-separated

    # Firebase Admin (auth + messaging)
    FIREBASE_PROJECT_ID: str = Field(default="")  # ID token audience
    FIREBASE_CREDENTIALS_PATH: str = Field(default="")  # empty -> ADC

    # Campaign fan-out
    CAMPAIGN_DEDUP_WINDOW_SEC: float = Field(default=5.0)
    CAMPAIGN_DEDUP_RETENTION_SEC: float = Field(default=600.0)
    FIRESTORE_BATCH_SIZE: int = Field(default=500)

    # Push delivery
    PUSH_MULTICAST_BATCH_SIZE: int = Field(default=500)
    PUSH_CLICK_ACTION: str = Field(default="FLUTTER_NOTIFICATION_CLICK")

    # Moderation queue caps for synthesized entries
    MODERATION_MAX_SUSPICIOUS_USERS: int = Field(default=5)
    MODERATION_MAX_PROBLEM_BOOKINGS: int = Field(default=3)


settings = Settings()
