"""
Time-of-day and date utilities for the seating engine.

All operating-hours arithmetic happens on minutes since midnight. A window
whose closing time is not after its opening time runs overnight; the
normalisation step for that lives in ``normalize_overnight`` and is shared
by slot generation and window construction.
"""
import re
from datetime import date, datetime, time, timedelta
from typing import List, NamedTuple, Optional, Tuple, Union

import pytz

from core.config import settings
from core.errors import ParseError


TIMEZONE = pytz.timezone(settings.timezone)

MINUTES_PER_DAY = 24 * 60

TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?$')

TimeLike = Union[str, time]
DateLike = Union[str, date]


def get_current_datetime(tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Get current datetime in the restaurant timezone."""
    return datetime.now(tz or TIMEZONE)


def localize(dt: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Attach (or convert to) the restaurant timezone."""
    tz = tz or TIMEZONE
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


# ============================================================================
# Parsing & formatting
# ============================================================================

def parse_time(value: TimeLike) -> time:
    """
    Parse a time of day.

    Accepts "HH:MM", "HH:MM:SS" or a ``datetime.time``.

    Raises:
        ParseError: if the value is not a valid time of day
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ParseError(f"Invalid time: {value!r}")

    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ParseError(f"Invalid time: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3)) if match.group(3) else 0
    try:
        return time(hour, minute, second)
    except ValueError:
        raise ParseError(f"Invalid time: {value!r}")


def parse_date(value: DateLike) -> date:
    """
    Parse an ISO date (YYYY-MM-DD).

    Raises:
        ParseError: if the value is not a real calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ParseError(f"Invalid date: {value!r}")


def time_to_minutes(value: TimeLike) -> int:
    """Minutes since midnight; seconds are dropped."""
    parsed = parse_time(value)
    return parsed.hour * 60 + parsed.minute


def minutes_to_time(minutes: int) -> str:
    """Format minutes as "HH:MM", reduced modulo one day."""
    minutes = minutes % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_time(value: TimeLike) -> str:
    """Normalise any accepted time representation to "HH:MM"."""
    return minutes_to_time(time_to_minutes(value))


def add_minutes(value: TimeLike, minutes: int) -> str:
    """Shift a time of day, wrapping past midnight."""
    return minutes_to_time(time_to_minutes(value) + minutes)


# ============================================================================
# Windows
# ============================================================================

def normalize_overnight(open_minutes: int, close_minutes: int) -> Tuple[int, int]:
    """Roll the closing minute into the next day when it is not after opening."""
    if close_minutes <= open_minutes:
        close_minutes += MINUTES_PER_DAY
    return open_minutes, close_minutes


def is_overnight(opening: TimeLike, closing: TimeLike) -> bool:
    return time_to_minutes(closing) <= time_to_minutes(opening)


def is_within_window(check: int, start: int, end: int) -> bool:
    """Inclusive containment of a minute-of-day in a possibly overnight window."""
    if end > start:
        return start <= check <= end
    return check >= start or check <= end


def _minute_of_day(value: Union[datetime, TimeLike]) -> int:
    if isinstance(value, datetime):
        return value.hour * 60 + value.minute
    return time_to_minutes(value)


def within_operating_hours(
    instant: Union[datetime, TimeLike],
    opening: TimeLike,
    closing: TimeLike
) -> bool:
    """
    Check whether an instant falls inside operating hours.

    Only the time of day is compared. Boundaries are inclusive, and
    unparseable hours are treated as closed.
    """
    try:
        check = _minute_of_day(instant)
        open_minutes = time_to_minutes(opening)
        close_minutes = time_to_minutes(closing)
    except ParseError:
        return False
    return is_within_window(check, open_minutes, close_minutes)


def is_peak_hour(value: TimeLike, peak_start: TimeLike, peak_end: TimeLike) -> bool:
    """Same containment rule as operating hours, applied to the peak window."""
    try:
        check = time_to_minutes(value)
        start = time_to_minutes(peak_start)
        end = time_to_minutes(peak_end)
    except ParseError:
        return False
    return is_within_window(check, start, end)


def overlaps(start1, end1, start2, end2) -> bool:
    """Half-open interval overlap: [start1, end1) against [start2, end2)."""
    return start1 < end2 and end1 > start2


class TimeWindow(NamedTuple):
    """A [start, end) interval in minutes on the service-day axis."""

    start: int
    end: int

    @classmethod
    def from_times(
        cls,
        start: TimeLike,
        end: TimeLike,
        opening: Optional[TimeLike] = None,
        closing: Optional[TimeLike] = None
    ) -> "TimeWindow":
        """
        Build a window from two times of day.

        For an overnight restaurant, times before opening belong to the
        following calendar day and are shifted by 24h so that windows on
        either side of midnight compare correctly.
        """
        start_minutes = time_to_minutes(start)
        end_minutes = time_to_minutes(end)

        if opening is not None and closing is not None and is_overnight(opening, closing):
            open_minutes = time_to_minutes(opening)
            if start_minutes < open_minutes:
                start_minutes += MINUTES_PER_DAY
            if end_minutes < open_minutes:
                end_minutes += MINUTES_PER_DAY

        if end_minutes <= start_minutes:
            end_minutes += MINUTES_PER_DAY

        return cls(start_minutes, end_minutes)

    @property
    def minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)


def generate_slots(opening: TimeLike, closing: TimeLike, step_minutes: int = 30) -> List[str]:
    """
    Candidate start times across operating hours.

    Starts at opening and emits every start whose full step still fits
    before closing. Overnight hours are normalised first, and values are
    formatted modulo one day.
    """
    if step_minutes <= 0:
        return []
    try:
        open_minutes, close_minutes = normalize_overnight(
            time_to_minutes(opening), time_to_minutes(closing)
        )
    except ParseError:
        return []

    return [
        minutes_to_time(m)
        for m in range(open_minutes, close_minutes - step_minutes + 1, step_minutes)
    ]


# ============================================================================
# Dates
# ============================================================================

def is_within_advance_booking(target: DateLike, max_days: int, today: date) -> bool:
    """A date is bookable when it is on or before today + max_days."""
    return parse_date(target) <= today + timedelta(days=max_days)


def service_datetime(
    service_date: DateLike,
    value: TimeLike,
    opening: Optional[TimeLike] = None,
    closing: Optional[TimeLike] = None,
    tz: Optional[pytz.BaseTzInfo] = None
) -> datetime:
    """
    Aware instant of a time on a service day.

    After-midnight times of an overnight restaurant fall on the next
    calendar day.
    """
    day = parse_date(service_date)
    parsed = parse_time(value)
    if (
        opening is not None
        and closing is not None
        and is_overnight(opening, closing)
        and time_to_minutes(parsed) < time_to_minutes(opening)
    ):
        day += timedelta(days=1)
    return localize(datetime.combine(day, parsed), tz)
