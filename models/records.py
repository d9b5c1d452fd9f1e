"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from sites.codes import SiteCode


class SortKey(str, Enum):
    """Orderings understood by the reading store."""

    time_asc = "time-asc"
    time_desc = "time-desc"
    value_asc = "value-asc"
    value_desc = "value-desc"


@dataclass(frozen=True, slots=True)
class ReadingRecord:
    """One logged glucose reading as held by the collection controller."""

    id: int
    glucose_value: float
    timestamp: int
    note: str = ""
    puncture_site: Optional[SiteCode] = None

    @property
    def recorded_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    @property
    def has_server_id(self) -> bool:
        return self.id >= 0


@dataclass(frozen=True)
class ReadingDraft:
    """Unvalidated user input for a new reading."""

    glucose_value: Union[str, float, None]
    note: str = ""
    timestamp: Union[str, datetime, None] = None
    puncture_site: Union[str, SiteCode, None] = None


@dataclass(frozen=True, slots=True)
class NewReading:
    """A validated draft, ready to be submitted to the store."""

    glucose_value: float
    timestamp: int
    note: str = ""
    puncture_site: Optional[SiteCode] = None
