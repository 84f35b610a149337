from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from blockroad.domain import check_interval


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        value = int(raw)
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        value = float(raw)
    if min_value is not None:
        value = max(min_value, value)
    return value


@dataclass(frozen=True)
class Settings:
    api_key: str
    api_base: str
    data_dir: str
    log_level: str
    poll_interval_sec: float
    sampling_interval: int
    refresh_count: int
    refresh_batch_size: int
    refresh_batch_delay_sec: float
    backfill_gap_sec: float
    window_capacity: int
    http_timeout_sec: float
    http_min_gap_ms: float
    http_retries: int
    dashboard_enabled: bool
    dashboard_mode: str
    dashboard_port: int


def load_settings(env_file: str | None = None) -> Settings:
    load_dotenv(os.path.expanduser(env_file or "~/.blockroad.env"))
    return Settings(
        api_key=os.environ.get("TRON_API_KEY", "").strip(),
        api_base=os.environ.get("TRON_API_BASE", "https://api.trongrid.io").strip().rstrip("/"),
        data_dir=os.environ.get("DATA_DIR", "/data"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
        poll_interval_sec=_env_float("POLL_INTERVAL_SEC", 3.0, min_value=0.5),
        sampling_interval=check_interval(_env_int("SAMPLING_INTERVAL", 1)),
        refresh_count=_env_int("REFRESH_COUNT", 60, min_value=1),
        refresh_batch_size=_env_int("REFRESH_BATCH_SIZE", 5, min_value=1),
        refresh_batch_delay_sec=_env_float("REFRESH_BATCH_DELAY_SEC", 0.2, min_value=0.0),
        backfill_gap_sec=_env_float("BACKFILL_GAP_SEC", 0.1, min_value=0.0),
        window_capacity=_env_int("WINDOW_CAPACITY", 150, min_value=1),
        http_timeout_sec=_env_float("HTTP_TIMEOUT_SEC", 8.0, min_value=0.5),
        http_min_gap_ms=_env_float("HTTP_MIN_GAP_MS", 60.0, min_value=0.0),
        http_retries=_env_int("HTTP_RETRIES", 2, min_value=0),
        dashboard_enabled=_env_bool("DASHBOARD_ENABLED", True),
        dashboard_mode=os.environ.get("DASHBOARD_MODE", "embedded").strip().lower(),
        dashboard_port=_env_int("DASHBOARD_PORT", 8080, min_value=1),
    )
