"""
Payday calculation: turn a payday specification into concrete calendar dates.

Pure functions, no state. A spec is one of FixedDay(day), LastFriday(), LastWorkingDay()
or Custom(day, month). Occurrences are inclusive of the reference day: if payday is today,
today is returned.

Malformed specs never raise. They fall back to FixedDay(1) and the fallback is logged, so a
bad profile value can never break the reminder path.
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, NamedTuple

logger = logging.getLogger(__name__)

FRIDAY = 4  # date.weekday(): Monday = 0


@dataclass(frozen=True)
class FixedDay:
    day: int


@dataclass(frozen=True)
class LastFriday:
    pass


@dataclass(frozen=True)
class LastWorkingDay:
    pass


@dataclass(frozen=True)
class Custom:
    """Day of month, optionally pinned to one month of the year ("DD" or "DD-MM").

    Fields may hold the raw strings from the profile; they are validated when resolved.
    """

    day: int | str
    month: int | str | None = None


PaydaySpec = FixedDay | LastFriday | LastWorkingDay | Custom

FALLBACK_SPEC = FixedDay(1)


class PaydayOption(NamedTuple):
    value: str
    label: str
    type: str  # 'fixed' | 'relative' | 'custom'


PAYDAY_OPTIONS: list[PaydayOption] = [
    PaydayOption("1", "1st of month", "fixed"),
    PaydayOption("15", "15th of month", "fixed"),
    PaydayOption("last-friday", "Last Friday of month", "relative"),
    PaydayOption("last-working-day", "Last working day of month", "relative"),
    PaydayOption("custom", "Custom date", "custom"),
]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _to_int(value: int | str | None) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _parse_custom(text: str | None) -> PaydaySpec:
    parts = (text or "").strip().split("-")
    if len(parts) == 1 and parts[0]:
        return Custom(parts[0])
    if len(parts) == 2:
        return Custom(parts[0], parts[1])
    logger.warning("Invalid custom payday %r; falling back to the 1st of the month", text)
    return FALLBACK_SPEC


def parse_payday_spec(payday: int | str | None, custom_date: str | None = None) -> PaydaySpec:
    """
    Profile value -> PaydaySpec.
    Accepts a day number ('15' or 15), 'last-friday', 'last-working-day', 'custom' together
    with custom_date ('DD' or 'DD-MM'), or a bare 'DD-MM'. Anything else is FixedDay(1).
    """
    if isinstance(payday, int) and not isinstance(payday, bool):
        return FixedDay(payday)
    value = (payday or "").strip().lower() if isinstance(payday, str) else ""
    if value == "last-friday":
        return LastFriday()
    if value == "last-working-day":
        return LastWorkingDay()
    if value == "custom":
        return _parse_custom(custom_date)
    if value.isdigit():
        return FixedDay(int(value))
    if "-" in value:
        return _parse_custom(value)
    logger.warning("Unknown payday option %r; falling back to the 1st of the month", payday)
    return FALLBACK_SPEC


def _normalize(spec: PaydaySpec) -> PaydaySpec:
    """Validate ranges; Custom without a month becomes FixedDay. Bad values -> FixedDay(1)."""
    if isinstance(spec, (LastFriday, LastWorkingDay)):
        return spec
    if isinstance(spec, FixedDay):
        day = _to_int(spec.day)
        if day is not None and 1 <= day <= 31:
            return spec
        logger.warning("Payday day %r out of range; falling back to the 1st of the month", spec.day)
        return FALLBACK_SPEC
    if isinstance(spec, Custom):
        day = _to_int(spec.day)
        month = _to_int(spec.month) if spec.month is not None else None
        valid_day = day is not None and 1 <= day <= 31
        valid_month = spec.month is None or (month is not None and 1 <= month <= 12)
        if not (valid_day and valid_month):
            logger.warning("Invalid custom payday %r; falling back to the 1st of the month", spec)
            return FALLBACK_SPEC
        if month is None:
            return FixedDay(day)
        return Custom(day, month)
    logger.warning("Unsupported payday spec %r; falling back to the 1st of the month", spec)
    return FALLBACK_SPEC


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def _ref_date(ref: date | datetime | None) -> date:
    if ref is None:
        return date.today()
    if isinstance(ref, datetime):
        return ref.date()
    return ref


def _next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamped_date(year: int, month: int, day: int) -> date:
    """Day 31 in April -> April 30. Never wraps into the following month."""
    return date(year, month, min(day, days_in_month(year, month)))


def _last_matching(year: int, month: int, predicate: Callable[[date], bool]) -> date:
    current = date(year, month, days_in_month(year, month))
    while not predicate(current):
        current -= timedelta(days=1)
    return current


def last_friday_of(year: int, month: int) -> date:
    return _last_matching(year, month, lambda d: d.weekday() == FRIDAY)


def last_working_day_of(year: int, month: int) -> date:
    """Last Monday-Friday of the month (no holiday calendar)."""
    return _last_matching(year, month, lambda d: d.weekday() < 5)


def _monthly(resolve: Callable[[int, int], date], today: date) -> date:
    candidate = resolve(today.year, today.month)
    if candidate >= today:
        return candidate
    year, month = _next_month(today.year, today.month)
    return resolve(year, month)


# ---------------------------------------------------------------------------
# Public calculator
# ---------------------------------------------------------------------------


def occurrence_in_month(spec: PaydaySpec, year: int, month: int) -> date:
    """The spec's payday inside one given month (Custom with a month ignores the month)."""
    spec = _normalize(spec)
    if isinstance(spec, LastFriday):
        return last_friday_of(year, month)
    if isinstance(spec, LastWorkingDay):
        return last_working_day_of(year, month)
    return clamped_date(year, month, int(spec.day))


def next_occurrence(spec: PaydaySpec, ref: date | datetime | None = None) -> date:
    """Next payday on or after ref's calendar day (ref defaults to today)."""
    today = _ref_date(ref)
    spec = _normalize(spec)
    if isinstance(spec, Custom):
        day, month = int(spec.day), int(spec.month)
        candidate = clamped_date(today.year, month, day)
        if candidate >= today:
            return candidate
        return clamped_date(today.year + 1, month, day)
    return _monthly(lambda y, m: occurrence_in_month(spec, y, m), today)


def days_until(spec: PaydaySpec, ref: date | datetime | None = None) -> int:
    """Whole days from ref to the next payday; 0 means today."""
    today = _ref_date(ref)
    return (next_occurrence(spec, today) - today).days


def is_today(spec: PaydaySpec, ref: date | datetime | None = None) -> bool:
    today = _ref_date(ref)
    return next_occurrence(spec, today) == today


def upcoming_occurrences(spec: PaydaySpec, count: int = 3, ref: date | datetime | None = None) -> list[date]:
    """Next `count` paydays in order, starting at ref. Preview only; scheduling uses next_occurrence."""
    cursor = _ref_date(ref)
    found: list[date] = []
    for _ in range(max(count, 0)):
        occurrence = next_occurrence(spec, cursor)
        found.append(occurrence)
        cursor = occurrence + timedelta(days=1)
    return found


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def describe_next_payday(spec: PaydaySpec, ref: date | datetime | None = None) -> str:
    days = days_until(spec, ref)
    if days == 0:
        return "Today!"
    if days == 1:
        return "Tomorrow"
    return f"In {days} days"


def payday_explanation(payday: str) -> str:
    if payday == "last-friday":
        return "You will be reminded on the last Friday of each month"
    if payday == "last-working-day":
        return "You will be reminded on the last working day (Monday-Friday) of each month"
    if payday == "custom":
        return "You will be reminded on your custom date"
    day = _to_int(payday)
    if day is not None and 1 <= day <= 31:
        return f"You will be reminded on the {day}{ordinal_suffix(day)} of each month"
    return "Custom payday schedule"


def validate_payday_option(payday: str | None) -> tuple[bool, str | None]:
    """(is_valid, error). Unlike parse_payday_spec this reports bad input instead of defaulting."""
    if not payday:
        return False, "Payday option is required"
    if any(opt.value == payday for opt in PAYDAY_OPTIONS):
        return True, None
    day = _to_int(payday)
    if day is not None and 1 <= day <= 31:
        return True, None
    parts = payday.split("-")
    if len(parts) == 2:
        day, month = _to_int(parts[0]), _to_int(parts[1])
        if day is not None and month is not None and 1 <= day <= 31 and 1 <= month <= 12:
            return True, None
    return False, "Invalid payday option format"


def spec_label(spec: PaydaySpec) -> str:
    spec = _normalize(spec)
    if isinstance(spec, LastFriday):
        return "last-friday"
    if isinstance(spec, LastWorkingDay):
        return "last-working-day"
    if isinstance(spec, Custom):
        return f"{int(spec.day):02d}-{int(spec.month):02d}"
    return str(spec.day)
