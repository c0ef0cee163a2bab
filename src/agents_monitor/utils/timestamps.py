"""Timestamp parsing and file modification stamps."""

import os
from datetime import datetime, timezone
from pathlib import Path


def parse_iso8601(value) -> datetime | None:
    """Parse an ISO 8601 timestamp such as ``2026-02-13T12:00:00.000Z``.

    Naive timestamps are taken as UTC. Returns None if unparseable.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def file_mtime_ms(path: str | Path) -> int:
    """File modification time in integer milliseconds since the epoch."""
    return os.stat(path).st_mtime_ns // 1_000_000


def datetime_from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def datetime_from_epoch_seconds(seconds) -> datetime | None:
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def format_iso8601(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
