"""Instant handling shared by the data model and the engine.

Relation values are ISO-8601 UTC strings with millisecond precision and a
``Z`` suffix; window identifiers are epoch milliseconds as decimal strings.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def require_aware(value: datetime) -> datetime:
    """Return `value` unchanged, or raise ValueError if it is naive."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("instant must be timezone-aware")
    return value


def as_utc(value: datetime) -> datetime:
    """Normalise to UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def truncate_millis(value: datetime) -> datetime:
    """Drop precision below one millisecond, the resolution of identifiers and relation values."""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def to_iso(value: datetime) -> str:
    """Render an instant as e.g. ``2022-08-07T08:08:21.000Z``."""
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_epoch_millis(value: datetime) -> int:
    return (as_utc(value) - EPOCH) // _ONE_MS


def from_epoch_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


def window_identifier(value: datetime) -> str:
    """Bucket identifier for a window starting at `value`."""
    return str(to_epoch_millis(value))
