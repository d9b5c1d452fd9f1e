"""Error taxonomy shared by the site encoding, normalizer and controller."""

from __future__ import annotations

from typing import Optional


class GlucoseLogError(Exception):
    """Base class for every error raised by this project."""


class ValidationError(GlucoseLogError, ValueError):
    """Local input was rejected before any request was made."""


class TransportError(GlucoseLogError):
    """The reading store could not be reached or answered with a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SiteError(GlucoseLogError, ValueError):
    """Contract violation in puncture-site encoding or layout."""


class MalformedCode(SiteError):
    pass


class InvalidSite(SiteError):
    pass


class UnknownFinger(SiteError):
    pass
