"""Pydantic schemas for the reading store HTTP API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from errors import MalformedCode
from sites.codes import decode


class EntryCreate(BaseModel):
    """Body accepted when logging a new reading."""

    value: float = Field(..., gt=0, description="Glucose value in mg/dL.")
    timestamp: datetime
    description: str = ""
    punctureSpot: Optional[str] = Field(
        default=None, description="Three-character puncture site code, e.g. L3R."
    )

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator("punctureSpot")
    @classmethod
    def _valid_site(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        try:
            decode(value)
        except MalformedCode as exc:
            raise ValueError(str(exc)) from exc
        return value


class Entry(EntryCreate):
    """A stored reading."""

    id: int = Field(..., ge=1)
