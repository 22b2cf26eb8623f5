from __future__ import annotations

import re
import time
from datetime import datetime

import pytest
from common.utils import generate_id, now_utc_iso, parse_iso_datetime

pytestmark = pytest.mark.unit


def test_generate_id_has_millis_prefix_and_random_suffix() -> None:
    before = time.time_ns() // 1_000_000
    identifier = generate_id()
    after = time.time_ns() // 1_000_000

    match = re.fullmatch(r"(\d+)-([a-z0-9]{9})", identifier)
    assert match is not None
    assert before <= int(match.group(1)) <= after


def test_generate_id_values_differ_within_a_burst() -> None:
    identifiers = {generate_id() for _ in range(200)}
    assert len(identifiers) == 200


def test_now_utc_iso_returns_parseable_utc_timestamp() -> None:
    parsed = datetime.fromisoformat(now_utc_iso())
    assert parsed.tzinfo is not None
    assert parsed.utcoffset() is not None
    assert parsed.utcoffset().total_seconds() == 0


def test_parse_iso_datetime_accepts_dates_and_zulu_times() -> None:
    assert parse_iso_datetime("2024-03-01") == datetime(2024, 3, 1)
    zulu = parse_iso_datetime("2024-03-01T10:30:00Z")
    assert zulu is not None
    assert zulu.utcoffset().total_seconds() == 0


def test_parse_iso_datetime_rejects_garbage() -> None:
    assert parse_iso_datetime("yesterday") is None
    assert parse_iso_datetime("") is None
    assert parse_iso_datetime(None) is None
