from __future__ import annotations

from datetime import date, datetime
from typing import Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current time as an aware datetime in the server's local time zone.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now().astimezone()


def as_local(value: Optional[datetime]) -> datetime:
    """Normalize to an aware local datetime; naive values are taken as local."""
    if value is None:
        return now_local()
    return value.astimezone()


def parse_timestamp(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
