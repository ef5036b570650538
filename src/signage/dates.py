"""Date window helpers for the signage display.

Pure functions over local dates. Every function takes an optional ``now`` /
``today`` so callers and tests can pin the clock; None means the local
wall clock.

DateKeys are ``YYYY-MM-DD`` strings and compare correctly as strings.
"""

import math
from datetime import date, datetime, timedelta
from typing import NamedTuple

# Indexed by date.weekday(): 0 = Monday
WEEKDAY_LABELS: tuple[str, ...] = ("月", "火", "水", "木", "金", "土", "日")

# Days-left buckets
OVERDUE = "overdue"
DUE_TODAY = "due_today"
URGENT = "urgent"
NORMAL = "normal"

URGENT_WITHIN_DAYS = 3


class DeadlineLabel(NamedTuple):
    days: int
    status: str
    text: str
    css_class: str


def _local_now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now()


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def format_key(value: date | datetime) -> str:
    """Serialize a date as a DateKey (YYYY-MM-DD)."""
    return _as_date(value).strftime("%Y-%m-%d")


def parse_key(key: str) -> date:
    """Parse a DateKey. Raises ValueError for anything that is not YYYY-MM-DD."""
    return datetime.strptime(key, "%Y-%m-%d").date()


def today(now: datetime | None = None) -> str:
    return format_key(_local_now(now))


def offset(n: int, now: datetime | None = None) -> date:
    """The local date n days from today (negative n goes back)."""
    return _local_now(now).date() + timedelta(days=n)


def window_start(days_back: int, now: datetime | None = None) -> str:
    """DateKey for the start of the rolling window, ``days_back`` days ago."""
    return format_key(offset(-days_back, now))


def days_left(deadline: str, today_key: str | None = None) -> int:
    """Whole days from today until ``deadline``, rounded up.

    Both sides are taken at local midnight, so the result is the plain
    calendar-day difference: on 2023-12-30 a 2024-01-01 deadline is 2 days out,
    on 2024-01-02 it is -1.

    Raises:
        ValueError: If either date is not a valid DateKey.
    """
    start = parse_key(today_key if today_key is not None else today())
    end = parse_key(deadline)
    return math.ceil((end - start).total_seconds() / 86400)


def deadline_label(days: int) -> DeadlineLabel:
    """Bucket a days-left count into the label and style the table shows."""
    if days < 0:
        return DeadlineLabel(days, OVERDUE, "期限切れ", "days-urgent")
    if days == 0:
        return DeadlineLabel(days, DUE_TODAY, "本日締切", "days-urgent")
    if days <= URGENT_WITHIN_DAYS:
        return DeadlineLabel(days, URGENT, f"あと {days} 日", "days-urgent")
    return DeadlineLabel(days, NORMAL, f"あと {days} 日", "days-left")


def weekday_label(value: date | datetime) -> str:
    return WEEKDAY_LABELS[_as_date(value).weekday()]


def is_weekend(value: date | datetime) -> bool:
    return _as_date(value).weekday() >= 5


def format_display_date(value: date | datetime) -> str:
    """Column header text, e.g. ``03/14 (木)``."""
    d = _as_date(value)
    return f"{d.month:02d}/{d.day:02d} ({weekday_label(d)})"


def header_date(value: date | datetime) -> str:
    """Header date text, e.g. ``3月14日``."""
    d = _as_date(value)
    return f"{d.month}月{d.day}日"


def clock_text(now: datetime | None = None) -> str:
    return _local_now(now).strftime("%H:%M")
