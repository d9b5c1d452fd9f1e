"""Conversion between store wire payloads and :class:`ReadingRecord`.

Stores disagree on field names, so each logical field has an ordered list of
candidate keys. Aliases are resolved here and nowhere else.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from errors import MalformedCode, ValidationError
from models.records import NewReading, ReadingDraft, ReadingRecord
from sites.codes import EMITTED_SIDES, SiteCode, decode

logger = logging.getLogger(__name__)

FIELD_CANDIDATES: Dict[str, Sequence[str]] = {
    "id": ("id",),
    "value": ("value", "glucose"),
    "note": ("description", "note"),
    "site": ("punctureSpot", "puncture", "punctureType"),
    "timestamp": ("timestamp", "ts"),
}

# Synthetic ids are negative; batch ``b`` owns the range below ``-b * stride``.
SYNTHETIC_ID_STRIDE = 1_000_000


def now_ms() -> int:
    return int(time.time() * 1000)


def synthetic_id(batch: int, index: int) -> int:
    return -(batch * SYNTHETIC_ID_STRIDE + index + 1)


def _resolve(payload: Mapping[str, Any], field: str) -> Any:
    for key in FIELD_CANDIDATES[field]:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _as_finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_ms(moment: datetime) -> int:
    return int(round(moment.timestamp() * 1000))


def _displayable(timestamp: int) -> Optional[int]:
    # Must survive conversion to both a UTC and a local datetime.
    try:
        datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).astimezone()
    except (OverflowError, ValueError, OSError):
        return None
    return timestamp


def _resolve_timestamp(raw: Any) -> Optional[int]:
    if isinstance(raw, str):
        try:
            return _displayable(to_epoch_ms(parse_instant(raw)))
        except (OverflowError, ValueError):
            return None
    number = _as_finite_number(raw)
    return _displayable(int(number)) if number is not None else None


def _resolve_site(raw: Any) -> Optional[SiteCode]:
    if raw is None or raw == "":
        return None
    try:
        return decode(raw)
    except MalformedCode:
        logger.warning("Dropping unreadable puncture site", extra={"site": raw})
        return None


def normalize(
    payload: Mapping[str, Any],
    fallback_index: int,
    batch: int = 0,
    now: Optional[int] = None,
) -> ReadingRecord:
    """Build a :class:`ReadingRecord` from a loosely-typed wire payload.

    Missing timestamps become ``now + fallback_index`` so records from one
    batch keep distinct, increasing sort keys. Missing ids become a synthetic
    id derived from ``batch`` and ``fallback_index``.
    """
    reference = now_ms() if now is None else now

    value = _as_finite_number(_resolve(payload, "value"))
    note = _resolve(payload, "note")
    timestamp = _resolve_timestamp(_resolve(payload, "timestamp"))
    if timestamp is None:
        timestamp = reference + fallback_index

    raw_id = _as_finite_number(_resolve(payload, "id"))
    if raw_id is not None and raw_id.is_integer() and raw_id >= 0:
        record_id = int(raw_id)
    else:
        record_id = synthetic_id(batch, fallback_index)

    return ReadingRecord(
        id=record_id,
        glucose_value=value if value is not None else 0.0,
        timestamp=timestamp,
        note=str(note) if note is not None else "",
        puncture_site=_resolve_site(_resolve(payload, "site")),
    )


def normalize_batch(
    payloads: Iterable[Mapping[str, Any]],
    batch: int,
    now: Optional[int] = None,
) -> List[ReadingRecord]:
    """Normalize a page of payloads, keeping ids unique within the page."""
    reference = now_ms() if now is None else now
    records: List[ReadingRecord] = []
    seen: set[int] = set()
    for index, payload in enumerate(payloads):
        record = normalize(payload, index, batch=batch, now=reference)
        if record.id in seen:
            logger.warning(
                "Duplicate reading id in store response; using a local id",
                extra={"entry_id": record.id},
            )
            record = ReadingRecord(
                id=synthetic_id(batch, index),
                glucose_value=record.glucose_value,
                timestamp=record.timestamp,
                note=record.note,
                puncture_site=record.puncture_site,
            )
        seen.add(record.id)
        records.append(record)
    return records


def _parse_local_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        candidate = str(value).strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValidationError(f"Could not read date and time {value!r}.") from exc
    if moment.tzinfo is None:
        # Naive input is wall-clock time in the user's timezone.
        moment = moment.astimezone()
    return moment


def validate_draft(draft: ReadingDraft, now: Optional[int] = None) -> NewReading:
    """Check user input before anything is sent to the store."""
    raw_value = draft.glucose_value
    if raw_value is None or (isinstance(raw_value, str) and not raw_value.strip()):
        raise ValidationError("A glucose value is required.")
    value = _as_finite_number(raw_value)
    if value is None:
        raise ValidationError(f"Glucose value {raw_value!r} is not a number.")
    if value <= 0:
        raise ValidationError("Glucose value must be positive.")

    if draft.timestamp is None or (isinstance(draft.timestamp, str) and not draft.timestamp.strip()):
        timestamp = now_ms() if now is None else now
    else:
        timestamp = to_epoch_ms(_parse_local_datetime(draft.timestamp))

    site = draft.puncture_site
    if isinstance(site, str):
        site = site.strip() or None
    if isinstance(site, str):
        try:
            site = decode(site)
        except MalformedCode as exc:
            raise ValidationError(str(exc)) from exc
    if site is not None and site.side not in EMITTED_SIDES:
        raise ValidationError("New readings must use the left or right side of a finger.")

    return NewReading(
        glucose_value=value,
        timestamp=timestamp,
        note=draft.note or "",
        puncture_site=site,
    )


def format_instant(timestamp: int) -> str:
    moment = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_submission_payload(reading: NewReading) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "value": reading.glucose_value,
        "timestamp": format_instant(reading.timestamp),
        "description": reading.note,
    }
    if reading.puncture_site is not None:
        payload["punctureSpot"] = reading.puncture_site.code
    return payload
