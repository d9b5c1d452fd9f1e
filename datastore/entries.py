from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Tuple

from app.schemas import Entry, EntryCreate
from models.records import SortKey
from settings import get_settings


class EntryTable:
    """In-memory reading table, optionally mirrored to a JSON file."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._items: Dict[int, Entry] = {}
        self._next_id = 1
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def add(self, item: EntryCreate) -> Entry:
        with self._lock:
            entry = Entry(id=self._next_id, **item.model_dump())
            self._items[entry.id] = entry
            self._next_id += 1
            self._persist()
            return entry.model_copy(deep=True)

    def get(self, entry_id: int) -> Optional[Entry]:
        with self._lock:
            item = self._items.get(entry_id)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def delete(self, entry_id: int) -> bool:
        with self._lock:
            removed = self._items.pop(entry_id, None)
            if removed is None:
                return False
            self._persist()
            return True

    def scan(self) -> list[Entry]:
        """Return deep copies of all stored entries."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def query(self, sort_by: SortKey, page: int, size: int) -> Tuple[list[Entry], int]:
        """Return one page of entries in the requested order plus the total."""
        if sort_by in (SortKey.time_asc, SortKey.time_desc):
            key = lambda entry: (entry.timestamp, entry.id)  # noqa: E731
        else:
            key = lambda entry: (entry.value, entry.id)  # noqa: E731
        reverse = sort_by in (SortKey.time_desc, SortKey.value_desc)

        items = sorted(self.scan(), key=key, reverse=reverse)
        start = (page - 1) * size
        return items[start : start + size], len(items)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "next_id": self._next_id,
            "entries": {
                str(entry_id): item.model_dump(mode="json")
                for entry_id, item in self._items.items()
            },
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for payload in (data.get("entries") or {}).values():
            entry = Entry.model_validate(payload)
            self._items[entry.id] = entry
        highest = max(self._items, default=0)
        self._next_id = max(int(data.get("next_id") or 1), highest + 1)


@lru_cache
def build_default_table(path: Optional[str] = None) -> EntryTable:
    settings = get_settings()
    table_path = settings.entries_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return EntryTable(persistence_path=persistence)
