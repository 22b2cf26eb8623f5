from __future__ import annotations

import secrets
import string
import time
from datetime import UTC, datetime

ID_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
ID_SUFFIX_LENGTH = 9


def now_utc_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


def generate_id() -> str:
    """Return a time-ordered opaque identifier: ``<epoch millis>-<random suffix>``.

    Not guaranteed unique; the random suffix keeps the collision probability
    negligible for rows created within the same millisecond.
    """
    millis = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(ID_SUFFIX_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
    return f"{millis}-{suffix}"


def parse_iso_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        normalized = value.replace("Z", "+00:00")
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None
