"""Unit tests for puncture-site codes."""

from __future__ import annotations

from itertools import product

import pytest

from errors import InvalidSite, MalformedCode
from sites.codes import FINGERS, Hand, Side, SiteCode, all_codes, decode, encode


def test_encode_joins_hand_finger_and_side() -> None:
    assert encode(Hand.left, 3, Side.right) == "L3R"
    assert encode("R", 1, "C") == "R1C"


def test_decode_inverts_encode_for_every_site() -> None:
    for hand, finger, side in product(Hand, FINGERS, Side):
        assert decode(encode(hand, finger, side)) == SiteCode(hand, finger, side)


def test_all_codes_is_complete_and_unique() -> None:
    codes = all_codes()

    assert len(codes) == 2 * 5 * 3
    assert len(set(codes)) == len(codes)
    assert len(all_codes(include_center=False)) == 2 * 5 * 2


def test_all_codes_order_is_hand_then_finger_then_side() -> None:
    codes = all_codes()

    assert codes[:4] == ("L1L", "L1C", "L1R", "L2L")
    assert codes[-1] == "R5R"
    assert all_codes(include_center=False)[:3] == ("L1L", "L1R", "L2L")
    assert all_codes() == codes


@pytest.mark.parametrize("code", ["Z9X", "", "L3", "L3RR", "X3R", "L0R", "L6R", "L3X", "l3r", None])
def test_decode_rejects_malformed_codes(code) -> None:
    with pytest.raises(MalformedCode):
        decode(code)


@pytest.mark.parametrize("finger", [0, 6, -1, True, 2.0, "3"])
def test_encode_rejects_out_of_range_fingers(finger) -> None:
    with pytest.raises(InvalidSite):
        encode(Hand.left, finger, Side.left)


def test_encode_rejects_unknown_hand_or_side() -> None:
    with pytest.raises(InvalidSite):
        encode("X", 1, Side.left)
    with pytest.raises(InvalidSite):
        encode(Hand.right, 1, "Q")


def test_site_code_renders_as_code() -> None:
    site = SiteCode(Hand.right, 4, Side.left)

    assert site.code == "R4L"
    assert str(site) == "R4L"
