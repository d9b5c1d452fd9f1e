"""Async HTTP client for the remote reading store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from errors import TransportError

logger = logging.getLogger(__name__)

ENTRIES_PATH = "/api/entries"
RECOMMENDED_PATH = "/api/entries/recommended-spots"
TOTAL_COUNT_HEADER = "X-Total-Count"


@dataclass(frozen=True)
class EntryPage:
    """Raw entries for one page plus the store's total, when reported."""

    entries: List[Dict[str, Any]]
    total_count: Optional[int] = None


class ReadingStoreClient:
    """Thin wrapper over the store's REST API.

    Every network failure, timeout and non-2xx status surfaces as
    :class:`TransportError`.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ReadingStoreClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def create_entry(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._send("POST", ENTRIES_PATH, json=payload)
        if not response.content:
            return {}
        body = self._json(response)
        return body if isinstance(body, dict) else {}

    async def list_entries(self, sort_by: str, page: int, size: int) -> EntryPage:
        response = await self._send(
            "GET",
            ENTRIES_PATH,
            params={"sortBy": sort_by, "page": page, "size": size},
        )
        body = self._json(response)
        if not isinstance(body, list):
            raise TransportError("Store returned an unexpected payload for the entry list.")
        entries = [item for item in body if isinstance(item, dict)]
        if len(entries) != len(body):
            logger.warning(
                "Ignoring non-object entries in store response",
                extra={"size": len(body), "reason": f"{len(body) - len(entries)} dropped"},
            )
        return EntryPage(entries=entries, total_count=self._read_total(response))

    async def delete_entry(self, entry_id: int) -> None:
        await self._send("DELETE", f"{ENTRIES_PATH}/{entry_id}")

    async def recommended_sites(self) -> List[str]:
        response = await self._send("GET", RECOMMENDED_PATH)
        body = self._json(response)
        if not isinstance(body, list):
            raise TransportError("Store returned an unexpected payload for recommendations.")
        return [item for item in body if isinstance(item, str)]

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._status_error(exc) from exc
        except httpx.TimeoutException as exc:
            raise TransportError(f"{method} {url} timed out.") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError("Store returned a body that is not JSON.") from exc

    @staticmethod
    def _read_total(response: httpx.Response) -> Optional[int]:
        raw = response.headers.get(TOTAL_COUNT_HEADER)
        if raw is None:
            return None
        try:
            total = int(raw.strip())
        except ValueError:
            logger.warning("Ignoring unreadable total count header", extra={"reason": raw})
            return None
        return total if total >= 0 else None

    @staticmethod
    def _status_error(exc: httpx.HTTPStatusError) -> TransportError:
        detail: str | None = None
        try:
            data = exc.response.json()
            if isinstance(data, dict):
                detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        return TransportError(message, status_code=exc.response.status_code)
