"""Clock injection and timestamp parsing for remote rows."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_scanned_at(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (fractional seconds and ``Z`` allowed).

    Returns ``None`` for anything unparseable so callers can apply their own
    fallback. Naive values are taken as UTC.
    """

    if not value:
        return None
    normalized = value.strip()
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def isoformat_utc(value: datetime) -> str:
    """Render ``value`` the way the remote log stores ``scanned_at``."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


__all__ = ["Clock", "isoformat_utc", "parse_scanned_at", "utcnow"]
