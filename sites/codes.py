"""Compact three-character codes for finger puncture sites.

A site is a ``(hand, finger, side)`` triple. Its canonical string form joins
the hand letter, the finger digit and the side letter, e.g. ``L3R`` for the
right side of the left hand's middle finger. Fingers are numbered 1 (thumb)
to 5 (little finger).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from itertools import product
from typing import Tuple, Union

from errors import InvalidSite, MalformedCode

FINGERS = range(1, 6)
CODE_LENGTH = 3


class Hand(str, Enum):
    left = "L"
    right = "R"


class Side(str, Enum):
    left = "L"
    center = "C"
    right = "R"


# Center is only kept for decoding older readings.
EMITTED_SIDES = (Side.left, Side.right)


@dataclass(frozen=True, slots=True)
class SiteCode:
    """Structural form of a puncture site."""

    hand: Hand
    finger: int
    side: Side

    @property
    def code(self) -> str:
        return f"{self.hand.value}{self.finger}{self.side.value}"

    def __str__(self) -> str:
        return self.code


def as_hand(hand: Union[Hand, str]) -> Hand:
    try:
        return Hand(hand)
    except ValueError as exc:
        raise InvalidSite(f"Unknown hand {hand!r}.") from exc


def as_side(side: Union[Side, str]) -> Side:
    try:
        return Side(side)
    except ValueError as exc:
        raise InvalidSite(f"Unknown side {side!r}.") from exc


def encode(hand: Union[Hand, str], finger: int, side: Union[Side, str]) -> str:
    """Return the canonical code for a site, e.g. ``encode(Hand.left, 3, Side.right) == "L3R"``."""
    if isinstance(finger, bool) or not isinstance(finger, int) or finger not in FINGERS:
        raise InvalidSite(f"Finger must be an integer between 1 and 5, got {finger!r}.")
    return SiteCode(as_hand(hand), finger, as_side(side)).code


def decode(code: str) -> SiteCode:
    """Parse a canonical code back into its structural form."""
    if not isinstance(code, str) or len(code) != CODE_LENGTH:
        raise MalformedCode(f"Site code must be exactly {CODE_LENGTH} characters, got {code!r}.")

    hand_char, finger_char, side_char = code
    try:
        hand = Hand(hand_char)
    except ValueError as exc:
        raise MalformedCode(f"Unknown hand letter in site code {code!r}.") from exc
    if finger_char not in "12345":
        raise MalformedCode(f"Finger digit must be 1-5 in site code {code!r}.")
    try:
        side = Side(side_char)
    except ValueError as exc:
        raise MalformedCode(f"Unknown side letter in site code {code!r}.") from exc

    return SiteCode(hand, int(finger_char), side)


def all_codes(include_center: bool = True) -> Tuple[str, ...]:
    """Every valid code, hand outermost, then finger, then side.

    Display order depends on this ordering staying fixed.
    """
    sides = tuple(Side) if include_center else EMITTED_SIDES
    return tuple(
        SiteCode(hand, finger, side).code
        for hand, finger, side in product(Hand, FINGERS, sides)
    )
