from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_ENTRIES_PATH_ENV = "ENTRIES_PERSISTENCE_PATH"
_RECOMMENDATION_COUNT_ENV = "RECOMMENDATION_COUNT"
_SIDE_OFFSET_ENV = "SITE_SIDE_OFFSET"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    entries_persistence_path: Optional[str]
    recommendation_count: int
    site_side_offset: float
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_recommendation_count(default: int) -> int:
    value = os.getenv(_RECOMMENDATION_COUNT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_side_offset(default: float) -> float:
    value = os.getenv(_SIDE_OFFSET_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


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
        entries_persistence_path=_read_optional_env(_ENTRIES_PATH_ENV, None),
        recommendation_count=_read_recommendation_count(3),
        site_side_offset=_read_side_offset(3.0),
        log_level=_read_log_level("INFO"),
    )
