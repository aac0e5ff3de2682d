import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings

_BACKEND_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    app_name: str = "Bus Schedule"

    # Prebuilt SQLite database, opened read-only by the app
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./bus_schedule.db")

    # Bundled copy of the prebuilt database (see seed_db.py).
    # Copied to the database_url location on first open if that file is missing.
    # Set to an empty string to disable.
    database_asset: str = os.getenv(
        "DATABASE_ASSET",
        str(_BACKEND_DIR / "assets" / "database" / "bus_schedule.db"),
    )

    # Timezone used to render arrival times as a time of day
    display_timezone: str = os.getenv("DISPLAY_TIMEZONE", "UTC")

    # How often live feeds re-run their query
    feed_poll_seconds: float = 5.0

    log_level: str = "INFO"

    @field_validator("display_timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        if value.upper() == "UTC":
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone {value!r}") from e
        return value

    class Config:
        env_file = ".env"
        validate_assignment = True


settings = Settings()
