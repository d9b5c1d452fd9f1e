"""Tests for wire payload normalization and draft validation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from cli.render import record_row
from errors import ValidationError
from models.records import NewReading, ReadingDraft
from services.normalizer import (
    normalize,
    normalize_batch,
    synthetic_id,
    to_submission_payload,
    validate_draft,
)
from sites.codes import Hand, Side, SiteCode

NOW = 1_700_000_000_000


def test_numeric_string_value_and_null_note() -> None:
    record = normalize({"value": "120", "description": None}, 0, now=NOW)

    assert record.glucose_value == 120
    assert record.note == ""


def test_aliases_are_used_when_primary_names_are_missing() -> None:
    record = normalize(
        {"id": 7, "glucose": 95, "note": "after lunch", "puncture": "R2L", "timestamp": "2024-01-01T12:00:00Z"},
        0,
        now=NOW,
    )

    assert record.id == 7
    assert record.glucose_value == 95
    assert record.note == "after lunch"
    assert record.puncture_site == SiteCode(Hand.right, 2, Side.left)
    assert record.recorded_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_primary_names_win_over_aliases() -> None:
    record = normalize(
        {"value": 100, "glucose": 200, "description": "primary", "note": "alias", "punctureSpot": "L1L", "punctureType": "R5R"},
        0,
        now=NOW,
    )

    assert record.glucose_value == 100
    assert record.note == "primary"
    assert record.puncture_site.code == "L1L"


def test_missing_fields_take_defaults() -> None:
    record = normalize({}, 3, batch=2, now=NOW)

    assert record.glucose_value == 0
    assert record.note == ""
    assert record.puncture_site is None
    assert record.timestamp == NOW + 3
    assert record.id == synthetic_id(2, 3)
    assert record.id < 0


def test_unparseable_timestamp_falls_back_to_now_plus_index() -> None:
    records = normalize_batch(
        [{"value": 1, "timestamp": "yesterday"}, {"value": 2}, {"value": 3, "timestamp": ""}],
        batch=1,
        now=NOW,
    )

    assert [record.timestamp for record in records] == [NOW, NOW + 1, NOW + 2]


@pytest.mark.parametrize("raw", [10**17, -(10**17), "1e300", 1e300])
def test_out_of_range_timestamp_falls_back_to_now_plus_index(raw) -> None:
    record = normalize({"id": 1, "value": 100, "timestamp": raw}, 2, now=NOW)

    assert record.timestamp == NOW + 2
    assert record.recorded_at.year >= 2023
    assert record_row(record)[1].startswith("20")


def test_far_but_representable_timestamp_is_kept() -> None:
    moment = datetime(2999, 6, 1, tzinfo=timezone.utc)
    millis = int(moment.timestamp() * 1000)

    record = normalize({"value": 1, "timestamp": millis}, 0, now=NOW)

    assert record.timestamp == millis
    assert record.recorded_at == moment


def test_naive_timestamp_is_read_as_utc() -> None:
    record = normalize({"value": 1, "timestamp": "2024-01-01T00:00:00"}, 0, now=NOW)

    assert record.timestamp == int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)


def test_non_integer_ids_are_replaced() -> None:
    record = normalize({"id": float("nan"), "value": 1}, 4, batch=1, now=NOW)

    assert record.id == synthetic_id(1, 4)


def test_synthetic_ids_differ_between_batches() -> None:
    first = normalize_batch([{"value": 1}, {"value": 2}], batch=1, now=NOW)
    second = normalize_batch([{"value": 1}, {"value": 2}], batch=2, now=NOW)

    assert {r.id for r in first}.isdisjoint({r.id for r in second})


def test_duplicate_server_ids_are_made_unique(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        records = normalize_batch([{"id": 5, "value": 1}, {"id": 5, "value": 2}], batch=1, now=NOW)

    assert records[0].id == 5
    assert records[1].id == synthetic_id(1, 1)
    assert any("Duplicate reading id" in record.getMessage() for record in caplog.records)


def test_unreadable_site_is_dropped(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        record = normalize({"value": 1, "punctureSpot": "thumb"}, 0, now=NOW)

    assert record.puncture_site is None
    assert any(getattr(entry, "site", None) == "thumb" for entry in caplog.records)


def test_validate_draft_defaults_timestamp_to_now() -> None:
    reading = validate_draft(ReadingDraft(glucose_value="105", note="fasting"), now=NOW)

    assert reading == NewReading(glucose_value=105.0, timestamp=NOW, note="fasting")


def test_validate_draft_parses_explicit_instant() -> None:
    reading = validate_draft(
        ReadingDraft(glucose_value=90, timestamp="2024-03-01T08:30:00+00:00", puncture_site="L3R"),
        now=NOW,
    )

    assert reading.timestamp == int(datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc).timestamp() * 1000)
    assert reading.puncture_site == SiteCode(Hand.left, 3, Side.right)


def test_validate_draft_reads_naive_time_as_local() -> None:
    local = datetime(2024, 3, 1, 8, 30)
    reading = validate_draft(ReadingDraft(glucose_value=90, timestamp="2024-03-01T08:30"), now=NOW)

    assert reading.timestamp == int(local.astimezone().timestamp() * 1000)


@pytest.mark.parametrize("value", [None, "", "   ", "abc", "nan", "inf", 0, -4, True])
def test_validate_draft_rejects_bad_values(value) -> None:
    with pytest.raises(ValidationError):
        validate_draft(ReadingDraft(glucose_value=value), now=NOW)


@pytest.mark.parametrize(
    "draft",
    [
        ReadingDraft(glucose_value=100, timestamp="not a date"),
        ReadingDraft(glucose_value=100, puncture_site="Z9X"),
        ReadingDraft(glucose_value=100, puncture_site="L3C"),
    ],
)
def test_validate_draft_rejects_bad_time_or_site(draft) -> None:
    with pytest.raises(ValidationError):
        validate_draft(draft, now=NOW)


def test_submission_payload_omits_missing_site() -> None:
    reading = NewReading(glucose_value=110.0, timestamp=1_704_067_200_000, note="")

    payload = to_submission_payload(reading)

    assert payload == {
        "value": 110.0,
        "timestamp": "2024-01-01T00:00:00.000Z",
        "description": "",
    }
    assert "punctureSpot" not in payload


def test_submission_payload_includes_site_code() -> None:
    reading = NewReading(
        glucose_value=110.0,
        timestamp=1_704_067_200_123,
        puncture_site=SiteCode(Hand.right, 5, Side.right),
    )

    payload = to_submission_payload(reading)

    assert payload["punctureSpot"] == "R5R"
    assert payload["timestamp"] == "2024-01-01T00:00:00.123Z"
