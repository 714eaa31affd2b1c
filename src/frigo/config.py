"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/frigo.db"),
        description="SQLite database holding the key-value entries.",
    )
    storage_key: str = Field(
        default="nutriscan_frigo",
        description="Key under which the inventory collection is persisted.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    expiry_soon_days: int = Field(
        default=3,
        description="Number of days before the DLC at which an item counts as expiring soon.",
    )
    price_history_limit: int = Field(
        default=10,
        description="Maximum number of price history entries kept per item.",
    )
    exit_history_limit: int = Field(
        default=50,
        description="Maximum number of consumption entries kept per item.",
    )
    expiry_check_interval: float = Field(
        default=60.0,
        description="Seconds between expiry watcher scans.",
    )
    product_lookup_base_url: str = Field(
        default="https://world.openfoodfacts.org",
        description="Base URL of the Open Food Facts compatible product API.",
    )
    product_lookup_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for product lookup requests.",
    )

    model_config = ConfigDict(frozen=True)


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (db_path := _env("FRIGO_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    if (storage_key := _env("FRIGO_STORAGE_KEY")):
        payload["storage_key"] = storage_key
    if (log_level := _env("FRIGO_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("FRIGO_LOG_FORMAT")):
        payload["log_format"] = log_format
    if (soon_days := _env("FRIGO_EXPIRY_SOON_DAYS")):
        try:
            payload["expiry_soon_days"] = int(soon_days)
        except ValueError:
            pass
    if (price_limit := _env("FRIGO_PRICE_HISTORY_LIMIT")):
        try:
            payload["price_history_limit"] = int(price_limit)
        except ValueError:
            pass
    if (exit_limit := _env("FRIGO_EXIT_HISTORY_LIMIT")):
        try:
            payload["exit_history_limit"] = int(exit_limit)
        except ValueError:
            pass
    if (check_interval := _env("FRIGO_EXPIRY_CHECK_INTERVAL")):
        try:
            payload["expiry_check_interval"] = float(check_interval)
        except ValueError:
            pass
    if (lookup_url := _env("FRIGO_PRODUCT_LOOKUP_BASE_URL")):
        payload["product_lookup_base_url"] = lookup_url.rstrip("/")
    if (lookup_timeout := _env("FRIGO_PRODUCT_LOOKUP_TIMEOUT")):
        try:
            payload["product_lookup_timeout"] = float(lookup_timeout)
        except ValueError:
            pass
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
