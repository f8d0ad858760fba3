from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = True

    # Shared admin secret. Empty means admin routes reject every request.
    admin_password: str = ""

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Twilio SMS. Leave any of these empty to disable sending.
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    # Slot/appointment business rules
    timezone: str = "Europe/Berlin"
    booking_window_days: int = 21
    default_duration_minutes: int = 60  # 4 slots x 15 min
    extended_duration_minutes: int = 75  # 5 slots x 15 min, above service_threshold
    buffer_minutes: int = 0
    service_threshold: int = 3
    slot_interval_minutes: int = 15

    # In-process cleanup loop. 0 leaves cleanup to the external cron trigger.
    cleanup_interval_hours: int = 0

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def sms_enabled(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)

    @property
    def min_appointment_minutes(self) -> int:
        return self.default_duration_minutes + self.buffer_minutes


settings = Settings()
