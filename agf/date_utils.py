"""Shared timestamp normalization helpers.

Every source encodes "last activity" differently (float epoch milliseconds,
epoch seconds, RFC3339 strings, or only the file mtime). Scanners convert all
of them to integer Unix milliseconds here; ``0`` means unknown.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Anything below this is treated as epoch seconds (year 5138 in seconds).
_SECONDS_CUTOFF = 100_000_000_000


def _parse_datetime_token(token: str) -> datetime | None:
    cleaned = token.strip()
    if not cleaned:
        return None
    try:
        return datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        pass
    # fromisoformat on older interpreters rejects >6 fractional digits.
    if "." in cleaned:
        head, _, tail = cleaned.partition(".")
        digits = ""
        rest = tail
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        try:
            return datetime.fromisoformat(f"{head}.{digits[:6]}{rest}".replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def rfc3339_to_ms(value: Any) -> int | None:
    """Parse an RFC3339 / ISO-8601 timestamp into Unix milliseconds."""
    if not isinstance(value, str):
        return None
    parsed = _parse_datetime_token(value)
    if parsed is None:
        return None
    dt = parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    ms = int(dt.astimezone(timezone.utc).timestamp() * 1000)
    return ms if ms >= 0 else None


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def epoch_ms(value: Any) -> int | None:
    """Numeric value already expressed in milliseconds."""
    number = _finite_number(value)
    return int(number) if number is not None else None


def epoch_seconds_to_ms(value: Any) -> int | None:
    number = _finite_number(value)
    return int(number * 1000) if number is not None else None


def epoch_to_ms(value: Any) -> int | None:
    """Normalize a numeric epoch of unknown unit (seconds or milliseconds)."""
    number = _finite_number(value)
    if number is None:
        return None
    if number < _SECONDS_CUTOFF:
        return int(number * 1000)
    return int(number)


def file_mtime_ms(path: Path) -> int:
    try:
        return max(0, int(path.stat().st_mtime * 1000))
    except OSError:
        return 0


def normalize_timestamp(value: Any) -> int:
    """Best-effort conversion of any supported encoding to Unix ms (0 if unknown)."""
    if isinstance(value, str):
        token = value.strip()
        try:
            return epoch_to_ms(float(token)) or 0
        except ValueError:
            return rfc3339_to_ms(token) or 0
    return epoch_to_ms(value) or 0
