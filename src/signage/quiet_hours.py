"""Quiet-hours gate.

During configured class periods the display hides ads and stays silent.
Intervals are same-day and half-open: ``08:00-15:00`` is quiet at 08:00 and
at 14:59, and not quiet at 15:00.

Known limitation: intervals crossing midnight (start > end) never match.
"""

from collections.abc import Iterable
from datetime import datetime

from src.signage.errors import MalformedIntervalError
from src.signage.logging import get_logger
from src.signage.models import TimeInterval

log = get_logger(__name__)


def parse_hhmm(value: str | None) -> int:
    """Convert ``HH:MM`` to minutes since midnight.

    Raises:
        MalformedIntervalError: If the value is missing or not HH:MM.
    """
    if not value:
        raise MalformedIntervalError("missing bound")
    hours, sep, minutes = value.strip().partition(":")
    if not sep:
        raise MalformedIntervalError(f"not HH:MM: {value!r}")
    try:
        h, m = int(hours), int(minutes)
    except ValueError as e:
        raise MalformedIntervalError(f"not HH:MM: {value!r}") from e
    if not (0 <= h <= 24 and 0 <= m < 60):
        raise MalformedIntervalError(f"out of range: {value!r}")
    return h * 60 + m


def is_quiet(now: datetime, intervals: Iterable[TimeInterval]) -> bool:
    """True if ``now`` falls inside any readable interval."""
    now_minutes = now.hour * 60 + now.minute
    for interval in intervals:
        try:
            start = parse_hhmm(interval.start)
            end = parse_hhmm(interval.end)
        except MalformedIntervalError as e:
            log.debug(
                "quiet_interval_skipped",
                start=interval.start,
                end=interval.end,
                reason=str(e),
            )
            continue
        if start <= now_minutes < end:
            return True
    return False
