"""Date normalizer.

Source systems disagree on date formats: ServiceNow sends
"2025-03-14 09:30:00", SolarWinds sends ISO-8601 with or without an
offset, vendor pages send RFC-2822 or epoch milliseconds. Everything is
coerced to an aware UTC datetime here.

Two policies:
- to_instant() never leaves a gap. Empty or garbage input becomes "now",
  so a record with a missing start time still renders, visibly recent.
- to_optional_instant() is for change windows. Empty or garbage input
  becomes None, because a schedule gap must render as absent, not as
  "happening now".

Naive timestamps are read as UTC.
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from schemas.outage import UNKNOWN_ETA

# Epoch values above this are milliseconds, below are seconds.
_EPOCH_MS_THRESHOLD = 10**11


def to_instant(raw: Any, now: datetime | None = None) -> datetime:
    """Parse raw into a UTC datetime, falling back to now.

    Args:
        raw: String, number, datetime or None.
        now: Injected clock for tests. Defaults to the current UTC time.

    Returns:
        The parsed instant, or now when raw is empty or unparseable.
    """
    parsed = parse_instant(raw)
    if parsed is not None:
        return parsed
    return now or datetime.now(timezone.utc)


def to_optional_instant(raw: Any) -> datetime | None:
    """Parse raw into a UTC datetime, or None when empty or unparseable."""
    return parse_instant(raw)


def to_eta(raw: Any, now: datetime | None = None) -> datetime | str:
    """Outage end time, or the "Unknown" sentinel while none is recorded."""
    if raw is None or not str(raw).strip():
        return UNKNOWN_ETA
    return to_instant(raw, now)


def parse_instant(raw: Any) -> datetime | None:
    """Best-effort parse shared by both policies. Never raises."""
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        try:
            return _as_utc(raw)
        except OverflowError:
            return None

    if isinstance(raw, (int, float)):
        return _from_epoch(raw)

    text = str(raw).strip()
    if not text:
        return None

    digits = text[1:] if text.startswith("-") else text
    if digits.isascii() and digits.isdecimal():
        return _from_epoch(int(text))

    try:
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except (ValueError, OverflowError):
        pass

    try:
        return _as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def _from_epoch(value: float) -> datetime | None:
    seconds = value / 1000 if abs(value) >= _EPOCH_MS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
