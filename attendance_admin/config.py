"""Application configuration using Pydantic Settings."""
from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Attendance Admin"
    debug: bool = False
    log_level: str = "INFO"

    # Firebase Realtime Database
    firebase_credentials_path: str = ""
    firebase_database_url: str = ""

    # Calendar bucketing and "this month" / "past week" filters
    timezone: str = "UTC"

    # Fingerprint sensor slots (ReservedIdRegistry)
    fingerprint_slot_min: int = 1
    fingerprint_slot_max: int = 127

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:3000"

    @model_validator(mode="after")
    def _validate(self):
        if self.fingerprint_slot_min < 1 or self.fingerprint_slot_min > self.fingerprint_slot_max:
            raise ValueError(
                "FINGERPRINT_SLOT_MIN must be >= 1 and not greater than FINGERPRINT_SLOT_MAX"
            )
        if self.timezone.upper() != "UTC":
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"Unknown TIMEZONE: {self.timezone}") from e
        return self

    @property
    def firebase_enabled(self) -> bool:
        return bool(self.firebase_credentials_path and self.firebase_database_url)

    def tz(self) -> tzinfo:
        if self.timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)


settings = Settings()
