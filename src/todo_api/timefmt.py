"""
Time parsing and human-readable formatting for todo timestamps.

All functions are pure: anything that depends on the current time accepts an
optional ``now`` and falls back to ``utc_now()``. Display strings use the
Indonesian locale (month and weekday names, relative phrases).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Optional, Union

MONTH_NAMES = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)
# Indexed by datetime.weekday(): Monday == 0
WEEKDAY_NAMES = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")

PLACEHOLDER = "-"
PAST_DUE = "Sudah lewat"
DUE_SOON = "Segera"

DateLike = Union[datetime, str, None]


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # Naive datetimes are treated as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# PUBLIC_INTERFACE
def parse_datetime(value: DateLike) -> Optional[datetime]:
    """
    Normalize an ISO-8601 string or datetime into an aware datetime.

    Returns None for None, empty strings and anything that does not parse.
    A trailing 'Z' is accepted as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _aware(value)
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        return _aware(datetime.fromisoformat(s))
    except ValueError:
        return None


# PUBLIC_INTERFACE
def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize as UTC ISO-8601 with millisecond precision, e.g. '2024-06-01T10:00:00.000Z'."""
    if value is None:
        return None
    v = _aware(value).astimezone(timezone.utc)
    return f"{v.strftime('%Y-%m-%dT%H:%M:%S')}.{v.microsecond // 1000:03d}Z"


def _local(value: datetime, tz: tzinfo) -> datetime:
    return _aware(value).astimezone(tz)


# PUBLIC_INTERFACE
def format_time(value: datetime, tz: tzinfo = timezone.utc) -> str:
    """HH:MM in the given timezone."""
    local = _local(value, tz)
    return f"{local.hour:02d}:{local.minute:02d}"


# PUBLIC_INTERFACE
def format_date(value: datetime, tz: tzinfo = timezone.utc) -> str:
    """DD <month name> YYYY, e.g. '01 Juni 2024'."""
    local = _local(value, tz)
    return f"{local.day:02d} {MONTH_NAMES[local.month - 1]} {local.year}"


# PUBLIC_INTERFACE
def format_datetime(value: datetime, tz: tzinfo = timezone.utc) -> str:
    """DD <month name> YYYY, HH:MM."""
    return f"{format_date(value, tz)}, {format_time(value, tz)}"


# PUBLIC_INTERFACE
def format_relative_time(value: datetime, now: Optional[datetime] = None) -> str:
    """
    Describe how long ago ``value`` was, using the largest fitting unit.

    Months are 30 days and years 365 days; every unit is floored.
    """
    now = _aware(now) if now is not None else utc_now()
    seconds = math.floor((now - _aware(value)).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    weeks = days // 7
    months = days // 30
    years = days // 365

    if seconds < 60:
        return "baru saja"
    if minutes < 60:
        return f"{minutes} menit yang lalu"
    if hours < 24:
        return f"{hours} jam yang lalu"
    if days < 7:
        return f"{days} hari yang lalu"
    if weeks < 4:
        return f"{weeks} minggu yang lalu"
    if months < 12:
        return f"{months} bulan yang lalu"
    return f"{years} tahun yang lalu"


# PUBLIC_INTERFACE
def format_duration(seconds: int) -> str:
    """Render a non-negative number of seconds as HH:MM:SS, or MM:SS below one hour."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    remaining = seconds % 60
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{remaining:02d}"
    return f"{minutes:02d}:{remaining:02d}"


# PUBLIC_INTERFACE
def format_time_for_display(
    value: DateLike,
    *,
    show_time: bool = True,
    show_relative: bool = False,
    style: str = "short",
    tz: tzinfo = timezone.utc,
    now: Optional[datetime] = None,
) -> str:
    """
    Format a timestamp for display.

    Args:
        value: datetime, ISO-8601 string or None.
        show_time: Append ', HH:MM' to the date.
        show_relative: Return a relative phrase ('3 jam yang lalu') instead.
        style: 'short' or 'long' ('01 Juni 2024') or 'full' (weekday prefix).
        tz: Timezone the date and time are rendered in.
        now: Reference time for relative output.

    Returns:
        The formatted string, or PLACEHOLDER when value is missing or invalid.
    """
    parsed = parse_datetime(value)
    if parsed is None:
        return PLACEHOLDER

    if show_relative:
        return format_relative_time(parsed, now)

    text = format_date(parsed, tz)
    if style == "full":
        text = f"{WEEKDAY_NAMES[_local(parsed, tz).weekday()]}, {text}"
    if show_time:
        text = f"{text}, {format_time(parsed, tz)}"
    return text


# PUBLIC_INTERFACE
def is_overdue(value: DateLike, now: Optional[datetime] = None) -> bool:
    """
    True iff value is a valid timestamp strictly before now.

    This only looks at the date. It does not know about todo status, so a
    completed todo with a past due date is still reported as overdue here.
    """
    parsed = parse_datetime(value)
    if parsed is None:
        return False
    now = _aware(now) if now is not None else utc_now()
    return parsed < now


@dataclass(frozen=True)
class TimeDifference:
    days: int
    hours: int
    minutes: int
    seconds: int
    total_seconds: int


# PUBLIC_INTERFACE
def calculate_time_difference(start: DateLike, end: DateLike) -> TimeDifference:
    """Signed difference end - start, split into whole days/hours/minutes/seconds."""
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None or end_dt is None:
        return TimeDifference(0, 0, 0, 0, 0)

    total = math.floor((end_dt - start_dt).total_seconds())
    return TimeDifference(
        days=total // 86400,
        hours=(total % 86400) // 3600,
        minutes=(total % 3600) // 60,
        seconds=total % 60,
        total_seconds=total,
    )


# PUBLIC_INTERFACE
def time_until_due(due_at: datetime, now: Optional[datetime] = None) -> str:
    """'N hari lagi' / 'N jam lagi' / 'N menit lagi', PAST_DUE or DUE_SOON."""
    diff = calculate_time_difference(now if now is not None else utc_now(), due_at)
    if diff.total_seconds < 0:
        return PAST_DUE
    if diff.days > 0:
        return f"{diff.days} hari lagi"
    if diff.hours > 0:
        return f"{diff.hours} jam lagi"
    if diff.minutes > 0:
        return f"{diff.minutes} menit lagi"
    return DUE_SOON
