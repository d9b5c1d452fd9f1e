"""Puncture-site rotation for the reading store."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List

from app.schemas import Entry
from sites.codes import all_codes


class SiteRecommender:
    """Suggests the sites that have rested longest.

    Sites never used come first, in display order, followed by used sites
    from the oldest last use to the newest. Legacy center-side sites are
    never suggested.
    """

    def __init__(self, limit: int = 3) -> None:
        self.limit = limit

    def recommend(self, entries: Iterable[Entry]) -> List[str]:
        last_used: Dict[str, datetime] = {}
        for entry in entries:
            code = entry.punctureSpot
            if not code:
                continue
            previous = last_used.get(code)
            if previous is None or entry.timestamp > previous:
                last_used[code] = entry.timestamp

        candidates = all_codes(include_center=False)
        order = {code: index for index, code in enumerate(candidates)}
        ranked = sorted(
            candidates,
            key=lambda code: (code in last_used, last_used.get(code, datetime.min), order[code]),
        )
        return ranked[: self.limit]
