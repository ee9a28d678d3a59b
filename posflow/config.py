"""Application configuration via pydantic-settings.

Reads from POSFLOW_* environment variables and an optional .env file.
"""

from datetime import timedelta
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# posflow/config.py -> project root
PROJECT_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_prefix="POSFLOW_",
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Persistence ---
    database_url: str = "sqlite+aiosqlite:///:memory:"

    # --- Logging ---
    log_level: str = "INFO"
    log_dir: Path | None = None

    # --- Pricing ---
    premium_surcharge: Decimal = Decimal("1.50")
    premium_small: Decimal = Decimal("6.70")
    premium_medium: Decimal = Decimal("11.50")
    premium_large: Decimal = Decimal("15.70")

    # --- Checkout ---
    ready_min_minutes: int = 5
    ready_max_minutes: int = 10
    service_retry_times: int = 2
    service_retry_delay_seconds: float = 0.2
    finalize_ttl_seconds: int = 24 * 3600

    @property
    def service_retry_delay(self) -> timedelta:
        return timedelta(seconds=self.service_retry_delay_seconds)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance (created once)."""
    return Settings()
