from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_DATABASE_URL_ENV = "SENSOR_DATABASE_URL"
_CONNECT_TIMEOUT_ENV = "SENSOR_DB_CONNECT_TIMEOUT"
_ECHO_ENV = "SENSOR_DB_ECHO"
_API_HOST_ENV = "SENSOR_API_HOST"
_API_PORT_ENV = "SENSOR_API_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    connect_timeout: float
    echo_sql: bool
    api_host: str
    api_port: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_float(name: str, default: float) -> float:
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


def _read_port(default: int) -> int:
    value = os.getenv(_API_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


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
        database_url=_read_str_env(_DATABASE_URL_ENV, "sqlite:///./tmp/sensors.db"),
        connect_timeout=_read_positive_float(_CONNECT_TIMEOUT_ENV, 5.0),
        echo_sql=_read_bool(_ECHO_ENV, False),
        api_host=_read_str_env(_API_HOST_ENV, "0.0.0.0"),
        api_port=_read_port(8000),
        log_level=_read_log_level("INFO"),
    )
