import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        csrf_secret: str,
        recent_limit: int,
        log_level: str,
        holiday_country: str,
        holiday_timeout_secs: float,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.csrf_secret = csrf_secret
        self.recent_limit = recent_limit
        self.log_level = log_level
        self.holiday_country = holiday_country
        self.holiday_timeout_secs = holiday_timeout_secs


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCEFLOW_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "financeflow.db"
    database_url = os.getenv("FINANCEFLOW_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINANCEFLOW_TIMEZONE", "Asia/Jakarta")
    csrf_secret = os.getenv(
        "FINANCEFLOW_CSRF_SECRET",
        "3f6d0c2b9a8e47d1b5c4e2f1a09d8c7b6e5f4a3b2c1d0e9f8a7b6c5d4e3f2a1b",
    )
    recent_limit = int(os.getenv("FINANCEFLOW_RECENT_LIMIT", "5"))
    log_level = os.getenv("FINANCEFLOW_LOG_LEVEL", "INFO").upper()
    holiday_country = os.getenv("FINANCEFLOW_HOLIDAY_COUNTRY", "id").lower()
    holiday_timeout_secs = float(os.getenv("FINANCEFLOW_HOLIDAY_TIMEOUT_SECS", "5"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        csrf_secret=csrf_secret,
        recent_limit=recent_limit,
        log_level=log_level,
        holiday_country=holiday_country,
        holiday_timeout_secs=holiday_timeout_secs,
    )
