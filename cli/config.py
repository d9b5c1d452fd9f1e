from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from services.controller import DEFAULT_PAGE_SIZE, DEFAULT_REQUEST_TIMEOUT, PAGE_SIZES

DEFAULT_BASE_URL = "http://localhost:8080"

_BASE_URL_ENV = "API_BASE_URL"
_TIMEOUT_ENV = "API_TIMEOUT"
_PAGE_SIZE_ENV = "DEFAULT_PAGE_SIZE"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    page_size: int = DEFAULT_PAGE_SIZE


def _read_float(value: Optional[str], default: float) -> float:
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


def _read_page_size(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed in PAGE_SIZES else default


def load_config(
    base_url: Optional[str] = None,
    request_timeout: Optional[float] = None,
    page_size: Optional[int] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if request_timeout is None:
        request_timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_REQUEST_TIMEOUT)
    if page_size is None:
        page_size = _read_page_size(os.getenv(_PAGE_SIZE_ENV), DEFAULT_PAGE_SIZE)
    return CLIConfig(
        base_url=url.rstrip("/"),
        request_timeout=request_timeout,
        page_size=page_size,
    )
