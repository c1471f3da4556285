import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv("config.env")


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./reservations.db")
    # Booking window, shared by the slot generator and the conflict detector
    default_duration_minutes: int = int(os.getenv("DEFAULT_DURATION_MINUTES", "120"))
    slot_interval_minutes: int = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))
    default_open_time: str = os.getenv("OPENING_TIME", "11:00")
    default_close_time: str = os.getenv("CLOSING_TIME", "22:00")
    max_guests: int = int(os.getenv("MAX_GUESTS", "20"))
    # Notifications
    notifications_enabled: bool = _as_bool(os.getenv("NOTIFICATIONS_ENABLED"), False)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
