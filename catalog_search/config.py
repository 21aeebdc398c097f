"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "products")
    es_username: str = _get_env("ES_USERNAME", "")
    es_password: str = _get_env("ES_PASSWORD", "")
    es_request_timeout: float = float(_get_env("ES_REQUEST_TIMEOUT", "30"))
    es_max_retries: int = int(_get_env("ES_MAX_RETRIES", "3"))
    settings_path: str = _get_env("SETTINGS_PATH", "config/index-settings.json")
    mappings_path: str = _get_env("MAPPINGS_PATH", "config/index-mappings.json")
    data_path: str = _get_env("DATA_PATH", "data.csv")
    load_on_startup: bool = _get_env("LOAD_ON_STARTUP", "true").lower() in {"1", "true", "yes"}
    startup_delay_seconds: float = float(_get_env("STARTUP_DELAY_SECONDS", "5"))
    batch_size: int = int(_get_env("BATCH_SIZE", "500"))
    batch_delay_seconds: float = float(_get_env("BATCH_DELAY_SECONDS", "0.1"))
    verify_delay_seconds: float = float(_get_env("VERIFY_DELAY_SECONDS", "0.5"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
