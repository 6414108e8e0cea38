"""
Temporal Context
================

The model has no clock, so every system prompt carries the current time.
All values are derived from a single reading of the clock, which keeps
"today" and "tomorrow" consistent within one prompt even around midnight.

The clock is injectable for tests:

    ctx = build_temporal_context(lambda: datetime(2026, 10, 18, 23, 59, tzinfo=timezone.utc))
    ctx.tomorrow_date  # "2026-10-19"
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _human_date(dt: datetime) -> str:
    """Sunday, October 18, 2026"""
    return f"{dt:%A, %B} {dt.day}, {dt.year}"


@dataclass(frozen=True)
class TemporalContext:
    """
    Time reference for one prompt.

    Attributes:
        now: The captured instant (UTC)
        current_utc_iso: ISO-8601 UTC timestamp, e.g. 2026-10-18T14:02:11.123Z
        today: Human-readable current date
        tomorrow: Human-readable next date
        tomorrow_date: Next date as YYYY-MM-DD
    """
    now: datetime
    current_utc_iso: str
    today: str
    tomorrow: str
    tomorrow_date: str


def build_temporal_context(clock: Clock = utc_now) -> TemporalContext:
    """Read the clock once and derive every date string from that instant."""
    now = clock()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)

    tomorrow = now + timedelta(days=1)

    return TemporalContext(
        now=now,
        current_utc_iso=now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        today=_human_date(now),
        tomorrow=_human_date(tomorrow),
        tomorrow_date=tomorrow.date().isoformat(),
    )
