"""Settings loaded from environment variables.

- TASK_DB_PATH: snapshot file used by the CLI (default: tasks.json)
- DEVKAKI_TIMEZONE: IANA zone for calendar days (default: system zone)
- DEVKAKI_LOG_LEVEL: console log level (default: WARNING)
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from devkaki.errors import ValidationError
from devkaki.models import system_zone

DEFAULT_DB_PATH = "tasks.json"
DEFAULT_LOG_LEVEL = logging.WARNING


def _env(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip()


def _env_log_level(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


def _env_timezone(name: str) -> Optional[tzinfo]:
    raw = _env(name)
    if raw is None:
        return None
    try:
        return ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown time zone {raw!r} in {name}") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime settings of the CLI.

    Attributes:
        db_path: Snapshot file path
        timezone: Zone for calendar days, None for the system local zone
        log_level: Console log level
    """

    db_path: Path = Path(DEFAULT_DB_PATH)
    timezone: Optional[tzinfo] = None
    log_level: int = DEFAULT_LOG_LEVEL

    def now(self) -> datetime:
        """Current instant in the configured zone."""
        return datetime.now(self.timezone or system_zone())


def get_settings() -> Settings:
    """Read settings from the environment.

    Raises:
        ValidationError: If DEVKAKI_TIMEZONE names an unknown zone
    """
    return Settings(
        db_path=Path(_env("TASK_DB_PATH") or DEFAULT_DB_PATH).expanduser(),
        timezone=_env_timezone("DEVKAKI_TIMEZONE"),
        log_level=_env_log_level("DEVKAKI_LOG_LEVEL", DEFAULT_LOG_LEVEL),
    )
