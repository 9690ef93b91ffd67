from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_LEDGER_PATH_ENV = "LEDGER_PERSISTENCE_PATH"
_GENERATOR_ENABLED_ENV = "GENERATOR_ENABLED"
_GENERATOR_BATCH_ENV = "GENERATOR_BATCH_ID"
_GENERATOR_CONTAINER_ENV = "GENERATOR_CONTAINER_ID"
_GENERATOR_INTERVAL_ENV = "GENERATOR_INTERVAL"
_GENERATOR_SEED_ENV = "GENERATOR_SEED"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    ledger_path: Optional[str]
    generator_enabled: bool
    generator_batch_id: str
    generator_container_id: str
    generator_interval: float
    generator_seed: int
    log_level: str


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


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    return candidate in _TRUTHY


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


def _read_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        return int(candidate)
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
        ledger_path=_read_optional_env(_LEDGER_PATH_ENV, "./tmp/ledger.json"),
        generator_enabled=_read_bool_env(_GENERATOR_ENABLED_ENV, False),
        generator_batch_id=_read_str_env(_GENERATOR_BATCH_ENV, "VAC-000123"),
        generator_container_id=_read_str_env(_GENERATOR_CONTAINER_ENV, "CONT-0001"),
        generator_interval=_read_positive_float(_GENERATOR_INTERVAL_ENV, 10.0),
        generator_seed=_read_int(_GENERATOR_SEED_ENV, 42),
        log_level=_read_log_level("INFO"),
    )
