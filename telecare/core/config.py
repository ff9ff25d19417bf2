from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote appointment backend
    api_base_url: str = "http://localhost:5000/api"
    request_timeout_seconds: float = 10.0

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Local calendar used to decide what "today" is
    timezone: str = "UTC"

    # Slot rules
    slot_duration_minutes: int = 30
    morning_start_hour: int = 5
    afternoon_start_hour: int = 12
    evening_start_hour: int = 17
    evening_end_hour: int = 22  # exclusive, later starts are not bucketed

    # Refresh the bearer token when it expires within this window
    token_refresh_window_minutes: int = 15

    # Booking sessions held in memory by the web service
    session_idle_minutes: int = 30
    session_purge_interval_seconds: int = 60

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
