"""Anchor positions used to place puncture-site targets over a hand image.

Coordinates are percentages of the image box. Only the left hand's table is
stored; the right hand mirrors it horizontally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Mapping, Optional, Union

from errors import UnknownFinger
from settings import get_settings
from sites.codes import FINGERS, Hand, Side, SiteCode, as_hand, as_side, decode

DEFAULT_SIDE_OFFSET = 3.0

LEFT_HAND_ANCHORS: Mapping[int, tuple[float, float]] = {
    1: (6.0, 48.0),
    2: (46.0, 10.0),
    3: (63.0, 3.0),
    4: (82.0, 13.0),
    5: (95.0, 24.0),
}


@dataclass(frozen=True, slots=True)
class Anchor:
    x: float
    y: float


@dataclass(frozen=True)
class SiteLayout:
    side_offset: float = DEFAULT_SIDE_OFFSET
    left_anchors: Mapping[int, tuple[float, float]] = field(
        default_factory=lambda: dict(LEFT_HAND_ANCHORS)
    )

    def anchor_for(self, hand: Union[Hand, str], finger: int) -> Anchor:
        if isinstance(finger, bool) or finger not in FINGERS:
            raise UnknownFinger(f"No anchor for finger {finger!r}; expected 1-5.")
        x, y = self.left_anchors[finger]
        if as_hand(hand) is Hand.right:
            x = 100.0 - x
        return Anchor(x=x, y=y)

    def offset_for(self, side: Union[Side, str]) -> float:
        side = as_side(side)
        if side is Side.left:
            return -self.side_offset
        if side is Side.right:
            return self.side_offset
        return 0.0

    def target_for(self, site: Union[SiteCode, str]) -> Anchor:
        """Anchor for a full site code, shifted toward its side."""
        if isinstance(site, str):
            site = decode(site)
        anchor = self.anchor_for(site.hand, site.finger)
        return Anchor(x=anchor.x + self.offset_for(site.side), y=anchor.y)


@lru_cache
def build_default_layout(side_offset: Optional[float] = None) -> SiteLayout:
    offset = get_settings().site_side_offset if side_offset is None else side_offset
    return SiteLayout(side_offset=offset)
