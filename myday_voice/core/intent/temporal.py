"""Date, time and recurrence normalization.

All helpers are pure functions of their inputs (no clock reads) so extraction
stays reproducible for a given transcript and reference date.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta

WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

# RRULE day codes, Monday-first (index == date.weekday())
DAY_CODES: tuple[str, ...] = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

MONTHS: dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    # Abbreviations ("may" is already its own abbreviation)
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

TIME_LITERALS: dict[str, str] = {
    "noon": "12:00",
    "midday": "12:00",
    "midnight": "00:00",
    "end of day": "17:00",
}

_CLOCK_RE = re.compile(
    r"^\s*(\d{1,2})(?::(\d{2}))?\s*(a\.?m\.?|p\.?m\.?)?\s*$",
    re.IGNORECASE,
)


def format_date(value: date) -> str:
    """Format a date as ``YYYY-MM-DD``."""
    return value.isoformat()


def weekday_index(name: str) -> int:
    """Map a weekday name (any case, optional trailing 's') to 0-6.

    Raises:
        ValueError: If the name is not a weekday
    """
    key = name.strip().lower()
    if key.endswith("s") and key[:-1] in WEEKDAYS:
        key = key[:-1]
    return WEEKDAYS.index(key)


def month_index(name: str) -> int:
    """Map a month name or abbreviation to 1-12.

    Raises:
        KeyError: If the name is not a month
    """
    return MONTHS[name.strip().lower().rstrip(".")]


def next_weekday(reference: date, weekday: int) -> date:
    """Get the next strictly-future occurrence of a weekday.

    If the reference date is already that weekday, a full week is added.

    Args:
        reference: Date to count from
        weekday: 0 (Monday) through 6 (Sunday)

    Returns:
        The resolved date
    """
    delta = (weekday - reference.weekday()) % 7
    return reference + timedelta(days=delta or 7)


def add_months(reference: date, months: int, day: int) -> date:
    """Move ``months`` forward and land on ``day``, clamped to month length."""
    month_zero = reference.month - 1 + months
    year = reference.year + month_zero // 12
    month = month_zero % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def resolve_month_day(reference: date, month: int, day: int, year: int | None = None) -> date:
    """Resolve a month/day to the nearest occurrence on or after ``reference``.

    When ``year`` is given it is used as-is.

    Raises:
        ValueError: If the month/day combination does not exist
    """
    if year is not None:
        return date(year, month, day)

    candidate_year = reference.year
    # Feb 29 may only exist in a later year
    for _ in range(8):
        try:
            candidate = date(candidate_year, month, day)
        except ValueError:
            if month == 2 and day == 29:
                candidate_year += 1
                continue
            raise
        if candidate >= reference:
            return candidate
        candidate_year += 1
    raise ValueError(f"Cannot resolve month={month} day={day}")


def resolve_day_of_month(reference: date, day: int) -> date:
    """Resolve a bare "the 15th" to this month, or next month if passed."""
    if not 1 <= day <= 31:
        raise ValueError(f"Invalid day of month: {day}")
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    if reference.day <= day <= last_day:
        return date(reference.year, reference.month, day)
    return add_months(reference, 1, day)


def end_of_quarter(quarter: int, year: int) -> date:
    """Get the last calendar day of a quarter.

    Raises:
        ValueError: If quarter is not 1-4
    """
    if not 1 <= quarter <= 4:
        raise ValueError(f"Invalid quarter: {quarter}")
    month = quarter * 3
    return date(year, month, calendar.monthrange(year, month)[1])


def normalize_time(text: str) -> str | None:
    """Convert a spoken clock time to 24-hour ``HH:MM``.

    Examples:
        >>> normalize_time("5pm")
        '17:00'
        >>> normalize_time("12am")
        '00:00'
        >>> normalize_time("noon")
        '12:00'

    Args:
        text: Time expression ("5pm", "10:30 am", "14:15", "midnight")

    Returns:
        ``HH:MM`` string, or None if the text is not a valid time
    """
    key = " ".join(text.strip().lower().split())
    if key in TIME_LITERALS:
        return TIME_LITERALS[key]

    match = _CLOCK_RE.match(key)
    if not match:
        return None
    return clock_to_24h(match.group(1), match.group(2), match.group(3))


def clock_to_24h(hour_text: str, minute_text: str | None, meridiem: str | None) -> str | None:
    """Convert clock parts to ``HH:MM``; None if out of range."""
    hour = int(hour_text)
    minute = int(minute_text) if minute_text else 0
    if minute > 59:
        return None

    if meridiem:
        suffix = meridiem.lower().replace(".", "")
        if not 1 <= hour <= 12:
            return None
        if suffix == "pm" and hour < 12:
            hour += 12
        elif suffix == "am" and hour == 12:
            hour = 0
    elif hour > 23:
        return None

    return f"{hour:02d}:{minute:02d}"


def bare_hour_to_24h(hour_text: str) -> str | None:
    """Read an hour spoken without am/pm ("at 3").

    1 to 6 are taken as afternoon, 7 to 12 as spoken, and 0 or 13 to 23 as
    24-hour values.
    """
    hour = int(hour_text)
    if hour > 23:
        return None
    if 1 <= hour <= 6:
        hour += 12
    return f"{hour:02d}:00"


def weekly_rrule(weekdays: list[int] | set[int], interval: int = 1) -> str:
    """Build a weekly RRULE with BYDAY codes in Monday-first order."""
    codes = ",".join(DAY_CODES[d] for d in sorted(set(weekdays)))
    rule = "FREQ=WEEKLY"
    if interval > 1:
        rule += f";INTERVAL={interval}"
    if codes:
        rule += f";BYDAY={codes}"
    return rule


def describe_rrule(rule: str) -> str:
    """Render a simple RRULE as English ("Every Monday and Wednesday").

    Args:
        rule: RRULE-like string ("FREQ=WEEKLY;BYDAY=MO,WE")

    Returns:
        Human-readable description
    """
    parts = dict(p.split("=", 1) for p in rule.split(";") if "=" in p)
    freq = parts.get("FREQ", "")
    interval = int(parts.get("INTERVAL", "1"))
    unit = {"DAILY": "day", "WEEKLY": "week", "MONTHLY": "month", "YEARLY": "year"}.get(freq)
    if unit is None:
        return rule

    byday = parts.get("BYDAY")
    if byday:
        codes = byday.split(",")
        if codes == list(DAY_CODES[:5]):
            return "Every weekday"
        names = [WEEKDAYS[DAY_CODES.index(c)].capitalize() for c in codes if c in DAY_CODES]
        joined = names[0] if len(names) == 1 else ", ".join(names[:-1]) + " and " + names[-1]
        prefix = "Every" if interval == 1 else f"Every {interval} weeks on"
        return f"{prefix} {joined}"

    if interval == 1:
        return f"Every {unit}"
    return f"Every {interval} {unit}s"
