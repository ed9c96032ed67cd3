"""
Configuration for the storage API, the extraction service and logging.

Read from environment variables (optionally seeded from .env by
``load_env``); cached after first load.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "https://my.living-apps.de/rest"
DEFAULT_VISION_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings."""
    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    vision_model: str = DEFAULT_VISION_MODEL
    request_timeout: float = 15.0
    log_level: str = "INFO"


_cached_settings: Optional[Settings] = None


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def get_config() -> Settings:
    """
    Build settings from the environment.

    Environment variables:
        LIVINGAPPS_BASE_URL, LIVINGAPPS_API_KEY, OPENAI_API_KEY,
        KV_VISION_MODEL, KV_REQUEST_TIMEOUT, KV_LOG_LEVEL
    """
    global _cached_settings
    if _cached_settings is not None:
        return _cached_settings

    _cached_settings = Settings(
        base_url=os.environ.get("LIVINGAPPS_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        api_key=os.environ.get("LIVINGAPPS_API_KEY") or None,
        openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
        vision_model=os.environ.get("KV_VISION_MODEL", DEFAULT_VISION_MODEL),
        request_timeout=_float_env("KV_REQUEST_TIMEOUT", 15.0),
        log_level=os.environ.get("KV_LOG_LEVEL", "INFO").upper(),
    )
    return _cached_settings


def reload_config() -> Settings:
    """Drop the cached settings and read the environment again."""
    global _cached_settings
    _cached_settings = None
    return get_config()
