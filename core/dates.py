"""Day-boundary math and German date labels for ZenPlaner.

All helpers work on timezone-aware datetimes and keep the tzinfo of
their input. Weeks start on Monday. Nothing here raises: arithmetic that
cannot be resolved falls back to the date it was given.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, tzinfo


WEEKDAY_NAMES = ["Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"]
WEEKDAY_SHORT = ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"]
MONTH_NAMES = [
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
]
MONTH_SHORT = ["Jan", "Feb", "Mär", "Apr", "Mai", "Jun", "Jul", "Aug", "Sep", "Okt", "Nov", "Dez"]


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now().astimezone()


# ── Boundaries ────────────────────────────────────────────────


def start_of_day(d: datetime | None = None) -> datetime:
    """Midnight of the day containing *d* (00:00:00)."""
    return _now(d).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(d: datetime | None = None) -> datetime:
    """Last second of the day containing *d* (23:59:59)."""
    start = start_of_day(d)
    try:
        return start + timedelta(days=1, seconds=-1)
    except OverflowError:
        return _now(d)


def same_day(a: datetime, b: datetime) -> bool:
    if a.tzinfo is not None and b.tzinfo is not None:
        b = b.astimezone(a.tzinfo)
    return a.date() == b.date()


def is_today(d: datetime, now: datetime | None = None) -> bool:
    return same_day(d, _now(now))


def day_key(d: datetime, tz: tzinfo | None = None) -> date:
    """Calendar day of *d*, seen from *tz* when given."""
    if tz is not None and d.tzinfo is not None:
        d = d.astimezone(tz)
    return d.date()


# ── Relative days ─────────────────────────────────────────────


def days_ago(n: int, base: datetime | None = None) -> datetime:
    """Start of the day *n* days before *base*."""
    start = start_of_day(base)
    try:
        return start - timedelta(days=n)
    except OverflowError:
        return start


def tomorrow(base: datetime | None = None) -> datetime:
    """Start of the day after *base*."""
    return days_ago(-1, base)


def is_after_time(hour: int, minute: int = 0, now: datetime | None = None) -> bool:
    """True once the wall clock of *now* has reached hour:minute."""
    current = _now(now)
    return current.hour * 60 + current.minute >= hour * 60 + minute


# ── Enumerations ──────────────────────────────────────────────


def weekday_index(d: datetime) -> int:
    """1 = Monday ... 7 = Sunday."""
    return d.isoweekday()


def days_of_week(containing: datetime | None = None) -> list[datetime]:
    """The seven day starts (Monday..Sunday) of the week containing the date."""
    day = start_of_day(containing)
    monday = days_ago(weekday_index(day) - 1, day)
    return [tomorrow_n(monday, i) for i in range(7)]


def days_of_month(containing: datetime | None = None) -> list[datetime]:
    """Every day start of the month containing the date."""
    first = start_of_day(containing).replace(day=1)
    _, length = calendar.monthrange(first.year, first.month)
    return [tomorrow_n(first, i) for i in range(length)]


def tomorrow_n(base: datetime, n: int) -> datetime:
    """Start of the day *n* days after *base*."""
    return days_ago(-n, base)


def parse_day(value: str, tz: tzinfo) -> datetime:
    """Parse 'YYYY-MM-DD' into that day's start in *tz*. Raises ValueError."""
    d = date.fromisoformat(value.strip())
    return datetime(d.year, d.month, d.day, tzinfo=tz)


# ── Labels ────────────────────────────────────────────────────


def format_day_long(d: datetime) -> str:
    """'Samstag, 7. Februar'."""
    return f"{WEEKDAY_NAMES[d.weekday()]}, {d.day}. {MONTH_NAMES[d.month - 1]}"


def format_day_short(d: datetime) -> str:
    """'7. Feb'."""
    return f"{d.day}. {MONTH_SHORT[d.month - 1]}"


def format_month_year(d: datetime) -> str:
    """'Februar 2025'."""
    return f"{MONTH_NAMES[d.month - 1]} {d.year}"


def weekday_short(d: datetime) -> str:
    return WEEKDAY_SHORT[d.weekday()]


def count_streak(active_days: set[date], now: datetime | None = None) -> int:
    """Consecutive active days walking back from today.

    A today that is not active yet does not break the streak: the walk
    then starts at yesterday.
    """
    check = start_of_day(now)
    if check.date() not in active_days:
        check = days_ago(1, check)
    streak = 0
    while check.date() in active_days:
        streak += 1
        check = days_ago(1, check)
    return streak
