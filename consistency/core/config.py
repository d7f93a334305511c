import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Scoring defaults
    DEFAULT_TIMEZONE: str = "UTC"  # IANA zone used when a request omits one

    # Session retrieval
    SESSION_LOOKBACK_DAYS: int = 28
    SESSION_FETCH_LIMIT: int = 200  # max sessions read per user per call
    BATCH_MAX_USERS: int = 100

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def _is_known_zone(name: Optional[str]) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("consistency")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []

    if not _is_known_zone(getattr(cfg, "DEFAULT_TIMEZONE", None)):
        problems.append(f"DEFAULT_TIMEZONE is not a known IANA zone: {cfg.DEFAULT_TIMEZONE!r}")

    if (getattr(cfg, "ENV", "development") or "").lower() == "production" and not getattr(cfg, "DATABASE_URL", None):
        problems.append("Missing required configuration: DATABASE_URL")

    if getattr(cfg, "SESSION_FETCH_LIMIT", 0) <= 0:
        problems.append("SESSION_FETCH_LIMIT must be positive")

    if getattr(cfg, "SESSION_LOOKBACK_DAYS", 0) <= 0:
        problems.append("SESSION_LOOKBACK_DAYS must be positive")

    for message in problems:
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return not problems
