from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo


_STATION_CODE_ENV = "EVAP_STATION_CODE"
_STATION_MATCH_ENV = "EVAP_STATION_MATCH"
_RAIN_BASE_URL_ENV = "EVAP_RAIN_BASE_URL"
_RAIN_PREFIX_ENV = "EVAP_RAIN_FILE_PREFIX"
_FETCH_TIMEOUT_ENV = "EVAP_FETCH_TIMEOUT"
_TIMEZONE_ENV = "EVAP_TIMEZONE"
_STORE_PATH_ENV = "EVAP_STORE_PATH"
_ADJACENT_DAYS_ENV = "EVAP_HISTORY_ADJACENT_DAYS"
_ROLLING_MINUTES_ENV = "EVAP_ROLLING_MINUTES"
_DAILY_HOUR_ENV = "EVAP_DAILY_HOUR"
_SCHEDULER_ENV = "EVAP_SCHEDULER_ENABLED"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class StationMatch(str, Enum):
    """How the station field of a log line is compared to the configured code."""

    upper = "upper"
    insensitive = "insensitive"
    exact = "exact"


@dataclass(frozen=True)
class Settings:
    station_code: str = "stg1079"
    station_match: StationMatch = StationMatch.upper
    rain_base_url: str = "http://202.90.198.212/logger/logfile/"
    rain_file_prefix: str = "logARG-"
    fetch_timeout: float = 10.0
    timezone: str = "Asia/Jakarta"
    store_path: Optional[str] = "./tmp/realtime_db.json"
    history_search_adjacent_days: bool = True
    rolling_interval_minutes: int = 10
    daily_hour: int = 7
    scheduler_enabled: bool = True
    log_level: str = "INFO"

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_int_env(name: str, default: int, minimum: int, maximum: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if minimum <= parsed <= maximum else default


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_station_match(default: StationMatch) -> StationMatch:
    value = os.getenv(_STATION_MATCH_ENV)
    if value is None:
        return default
    try:
        return StationMatch(value.strip().lower())
    except ValueError:
        return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        station_code=_read_str_env(_STATION_CODE_ENV, "stg1079"),
        station_match=_read_station_match(StationMatch.upper),
        rain_base_url=_read_str_env(
            _RAIN_BASE_URL_ENV, "http://202.90.198.212/logger/logfile/"
        ),
        rain_file_prefix=_read_str_env(_RAIN_PREFIX_ENV, "logARG-"),
        fetch_timeout=_read_float_env(_FETCH_TIMEOUT_ENV, 10.0),
        timezone=_read_str_env(_TIMEZONE_ENV, "Asia/Jakarta"),
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/realtime_db.json"),
        history_search_adjacent_days=_read_bool_env(_ADJACENT_DAYS_ENV, True),
        rolling_interval_minutes=_read_int_env(_ROLLING_MINUTES_ENV, 10, 1, 60),
        daily_hour=_read_int_env(_DAILY_HOUR_ENV, 7, 0, 23),
        scheduler_enabled=_read_bool_env(_SCHEDULER_ENV, True),
        log_level=_read_log_level("INFO"),
    )
