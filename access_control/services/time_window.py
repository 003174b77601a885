"""
Time window rules for TIME_BOUND grants.

Times are handled as zero-padded "HH:mm:ss" strings, which compare correctly
as plain strings.
"""
import re
from datetime import datetime
from typing import Optional

import pytz

TIME_FORMAT = "%H:%M:%S"
_TIME_RE = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9]):([0-5][0-9])$")


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(pytz.UTC)


def now_iso(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-15T09:30:00.000Z"""
    if now is None:
        now = utc_now()
    elif now.tzinfo is None:
        now = pytz.UTC.localize(now)
    now = now.astimezone(pytz.UTC)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def current_time_in_timezone(timezone: str, now: Optional[datetime] = None) -> str:
    """
    Wall-clock time in an IANA timezone as "HH:mm:ss".

    Args:
        timezone: IANA timezone name (e.g. "America/New_York")
        now: Instant to convert (defaults to the current time). Naive values are taken as UTC.

    Raises:
        pytz.UnknownTimeZoneError: If the timezone name is not known
    """
    if now is None:
        now = utc_now()
    elif now.tzinfo is None:
        now = pytz.UTC.localize(now)
    return now.astimezone(pytz.timezone(timezone)).strftime(TIME_FORMAT)


def is_within_range(
    timezone: str,
    start_time: Optional[str],
    end_time: Optional[str],
    now: Optional[datetime] = None
) -> bool:
    """
    Check whether the current time in `timezone` falls within [start_time, end_time].

    - Either bound missing means no restriction.
    - start <= end is a same-day range, inclusive on both ends.
      start == end is therefore a single instant, not a full day.
    - start > end wraps past midnight (e.g. 22:00:00 - 06:00:00).
    """
    if not start_time or not end_time:
        return True

    current = current_time_in_timezone(timezone, now)

    # Overnight range
    if start_time > end_time:
        return current >= start_time or current <= end_time

    return start_time <= current <= end_time


def is_valid_time_format(value: Optional[str]) -> bool:
    """True if value is "HH:mm:ss" with HH 00-23 and mm/ss 00-59."""
    if not isinstance(value, str):
        return False
    return _TIME_RE.match(value) is not None
