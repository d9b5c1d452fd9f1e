"""State machine that keeps a page of readings in step with the reading store."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple, Union

from errors import GlucoseLogError, MalformedCode, TransportError, ValidationError
from models.records import ReadingDraft, ReadingRecord, SortKey
from services.normalizer import (
    normalize,
    normalize_batch,
    to_epoch_ms,
    to_submission_payload,
    validate_draft,
)
from services.store_client import EntryPage
from sites.codes import SiteCode, decode

logger = logging.getLogger(__name__)

PAGE_SIZES = (5, 10, 20)
DEFAULT_PAGE_SIZE = 5
DEFAULT_REQUEST_TIMEOUT = 10.0


class ControllerMode(str, Enum):
    idle = "Idle"
    fetching = "Fetching"
    fetch_failed = "FetchFailed"
    ready = "Ready"


class OutcomeStatus(str, Enum):
    succeeded = "succeeded"
    failed = "failed"
    skipped = "skipped"
    superseded = "superseded"


@dataclass(frozen=True)
class Outcome:
    """Result of a controller operation. Operations never raise."""

    status: OutcomeStatus
    error: Optional[GlucoseLogError] = None
    record: Optional[ReadingRecord] = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.succeeded

    @classmethod
    def succeeded(cls, record: Optional[ReadingRecord] = None) -> "Outcome":
        return cls(OutcomeStatus.succeeded, record=record)

    @classmethod
    def failed(cls, error: GlucoseLogError) -> "Outcome":
        return cls(OutcomeStatus.failed, error=error)

    @classmethod
    def skipped(cls) -> "Outcome":
        return cls(OutcomeStatus.skipped)

    @classmethod
    def superseded(cls) -> "Outcome":
        return cls(OutcomeStatus.superseded)


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive epoch-millisecond bounds; ``None`` leaves a side open."""

    start: Optional[int] = None
    end: Optional[int] = None

    def contains(self, timestamp: int) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp > self.end:
            return False
        return True


class ReadingStore(Protocol):
    async def create_entry(self, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    async def list_entries(self, sort_by: str, page: int, size: int) -> EntryPage: ...

    async def delete_entry(self, entry_id: int) -> None: ...

    async def recommended_sites(self) -> List[str]: ...


ConfirmDelete = Callable[[int], Union[bool, Awaitable[bool]]]
Instant = Union[int, datetime, None]


def _as_epoch_ms(value: Instant) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.astimezone()
        return to_epoch_ms(value)
    return int(value)


class CollectionController:
    """Owns the current page of readings and every request that changes it.

    Fetches follow a last-request-wins rule: each fetch takes a generation
    number and responses from older generations are dropped unseen.
    """

    def __init__(
        self,
        store: ReadingStore,
        page_size: int = DEFAULT_PAGE_SIZE,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        confirm_delete: Optional[ConfirmDelete] = None,
        sort_key: SortKey = SortKey.time_desc,
        page: int = 1,
    ) -> None:
        if page_size not in PAGE_SIZES:
            raise ValidationError(f"Page size must be one of {PAGE_SIZES}, got {page_size!r}.")
        if page < 1:
            raise ValidationError(f"Page must be a positive integer, got {page!r}.")
        self._store = store
        self._request_timeout = request_timeout
        self._confirm_delete = confirm_delete

        self._records: Tuple[ReadingRecord, ...] = ()
        self._pending_deletes: set[int] = set()
        self._generation = 0
        self._batch = 0

        self.sort_key = SortKey(sort_key)
        self.page = page
        self.page_size = page_size
        self.has_more = False
        self.total_count: Optional[int] = None
        self.time_window = TimeWindow()
        self.mode = ControllerMode.idle
        self.last_error: Optional[GlucoseLogError] = None
        self.submitted_count = 0
        self.recommended_sites: Tuple[SiteCode, ...] = ()

    @property
    def records(self) -> Tuple[ReadingRecord, ...]:
        return self._records

    @property
    def pending_deletes(self) -> frozenset[int]:
        return frozenset(self._pending_deletes)

    @property
    def visible_records(self) -> Tuple[ReadingRecord, ...]:
        window = self.time_window
        return tuple(record for record in self._records if window.contains(record.timestamp))

    @property
    def summary(self) -> Tuple[int, int]:
        """``(shown, total)`` for a "showing X of Y" line."""
        total = self.total_count if self.total_count is not None else len(self._records)
        return len(self.visible_records), total

    async def refresh(self) -> Outcome:
        return await self._fetch()

    async def set_sort(self, key: Union[SortKey, str]) -> Outcome:
        try:
            sort_key = SortKey(key)
        except ValueError:
            return self._reject(f"Unknown sort key {key!r}.")
        self.sort_key = sort_key
        self.page = 1
        return await self._fetch()

    async def set_page(self, page: int) -> Outcome:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            return self._reject(f"Page must be a positive integer, got {page!r}.")
        if not (page < self.page or self.has_more):
            return self._reject(f"There is no page {page}.")
        self.page = page
        return await self._fetch()

    async def set_page_size(self, page_size: int) -> Outcome:
        if page_size not in PAGE_SIZES:
            return self._reject(f"Page size must be one of {PAGE_SIZES}, got {page_size!r}.")
        self.page_size = page_size
        self.page = 1
        return await self._fetch()

    def set_time_window(self, start: Instant = None, end: Instant = None) -> Outcome:
        try:
            window = TimeWindow(start=_as_epoch_ms(start), end=_as_epoch_ms(end))
        except (TypeError, ValueError, OverflowError):
            return self._reject(f"Time window bounds must be instants, got {start!r} and {end!r}.")
        if window.start is not None and window.end is not None and window.start > window.end:
            return self._reject("Time window start must not be after its end.")
        self.time_window = window
        return Outcome.succeeded()

    async def create_record(self, draft: ReadingDraft) -> Outcome:
        try:
            reading = validate_draft(draft)
        except ValidationError as exc:
            self.last_error = exc
            return Outcome.failed(exc)

        payload = to_submission_payload(reading)
        try:
            echo = await self._bounded(self._store.create_entry(payload), "Saving the reading")
        except TransportError as exc:
            self.last_error = exc
            logger.warning("Reading was not saved", extra={"reason": str(exc)})
            return Outcome.failed(exc)

        self._batch += 1
        record = normalize({**payload, **(echo or {})}, 0, batch=self._batch, now=reading.timestamp)
        self._records = (record,) + tuple(r for r in self._records if r.id != record.id)
        self.submitted_count += 1
        if self.total_count is not None:
            self.total_count += 1
        self.last_error = None
        logger.info("Reading saved", extra={"entry_id": record.id})
        return Outcome.succeeded(record=record)

    async def delete_record(self, record_id: int) -> Outcome:
        if isinstance(record_id, bool) or not isinstance(record_id, int) or record_id < 0:
            return self._reject(f"{record_id!r} is not a store id; only stored readings can be deleted.")

        if record_id in self._pending_deletes:
            logger.debug("Delete already in flight", extra={"entry_id": record_id})
            return Outcome.skipped()

        self._pending_deletes.add(record_id)
        try:
            if not await self._confirmed(record_id):
                return Outcome.skipped()
            await self._bounded(self._store.delete_entry(record_id), "Deleting the reading")
        except TransportError as exc:
            self.last_error = exc
            logger.warning(
                "Reading was not deleted",
                extra={"entry_id": record_id, "reason": str(exc)},
            )
            return Outcome.failed(exc)
        finally:
            self._pending_deletes.discard(record_id)

        record = next((r for r in self._records if r.id == record_id), None)
        self._records = tuple(r for r in self._records if r.id != record_id)
        if self.total_count is not None:
            self.total_count = max(0, self.total_count - 1)
        logger.info("Reading deleted", extra={"entry_id": record_id})
        return Outcome.succeeded(record=record)

    async def load_recommendations(self) -> Outcome:
        try:
            codes = await self._bounded(self._store.recommended_sites(), "Loading recommended sites")
        except TransportError as exc:
            self.recommended_sites = ()
            self.last_error = exc
            logger.warning("Recommended sites unavailable", extra={"reason": str(exc)})
            return Outcome.failed(exc)

        sites: List[SiteCode] = []
        for code in codes:
            try:
                sites.append(decode(code))
            except MalformedCode:
                logger.warning("Ignoring unreadable recommended site", extra={"site": code})
        self.recommended_sites = tuple(sites)
        return Outcome.succeeded()

    async def _fetch(self) -> Outcome:
        self._generation += 1
        generation = self._generation
        sort_key, page, size = self.sort_key, self.page, self.page_size
        context = {"generation": generation, "sort_by": sort_key.value, "page": page, "size": size}
        self.mode = ControllerMode.fetching
        logger.debug("Fetching readings", extra=context)

        error: Optional[TransportError] = None
        result: Optional[EntryPage] = None
        try:
            result = await self._bounded(
                self._store.list_entries(sort_key.value, page, size), "Fetching readings"
            )
        except TransportError as exc:
            error = exc

        if generation != self._generation:
            logger.debug("Discarding stale response", extra=context)
            return Outcome.superseded()

        if error is not None:
            self.mode = ControllerMode.fetch_failed
            self.last_error = error
            logger.warning("Fetching readings failed", extra={**context, "reason": str(error)})
            return Outcome.failed(error)

        self._batch += 1
        assert result is not None
        records = normalize_batch(result.entries, batch=self._batch)
        self._records = tuple(records)
        self.has_more = len(records) >= size
        self.total_count = result.total_count
        self.mode = ControllerMode.ready
        self.last_error = None
        logger.info(
            "Readings loaded",
            extra={**context, "total_count": result.total_count},
        )
        return Outcome.succeeded()

    async def _bounded(self, awaitable: Awaitable[Any], action: str) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._request_timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError(
                f"{action} timed out after {self._request_timeout:g}s."
            ) from exc

    async def _confirmed(self, record_id: int) -> bool:
        if self._confirm_delete is None:
            return True
        answer = self._confirm_delete(record_id)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    def _reject(self, message: str) -> Outcome:
        error = ValidationError(message)
        self.last_error = error
        return Outcome.failed(error)
