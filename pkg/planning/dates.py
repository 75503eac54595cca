"""
Date helpers for bucketing.

All ranges are half-open and lower-inclusive: a date d is in [start, end)
when start <= d < end. None on either side means unbounded.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Optional

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta, weekdays

from .schema import TodoItem
from .settings import PlanningSettings

ONE_DAY = timedelta(days=1)
ONE_WEEK = timedelta(weeks=1)

WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)


@dataclass(frozen=True)
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def day(cls, d: date) -> "DateRange":
        return cls(d, d + ONE_DAY)

    def contains(self, d: Optional[date]) -> bool:
        return in_range(d, self)

    @property
    def is_empty(self) -> bool:
        return self.start is not None and self.end is not None and self.end <= self.start


def parse_date(value: Any) -> Optional[date]:
    """Parse an attribute value as a calendar date. Returns None when it isn't one."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return isoparse(text).date()
    except (ValueError, OverflowError):
        return None


def date_of(todo: TodoItem, attribute: str) -> Optional[date]:
    """Date stored in a todo attribute, or None if absent or unparsable."""
    if not todo.attributes:
        return None
    value = todo.attributes.get(attribute)
    if not value:
        return None
    return parse_date(value)


def in_range(d: Optional[date], rng: DateRange) -> bool:
    if d is None:
        return False
    if rng.start is not None and d < rng.start:
        return False
    if rng.end is not None and d >= rng.end:
        return False
    return True


def local_weekday(d: date, first_weekday: int) -> int:
    """1-based position of d in a week starting on first_weekday (ISO 1-7)."""
    return ((d.isoweekday() - first_weekday + 7) % 7) + 1


def is_week_end(d: date, first_weekday: int) -> bool:
    return local_weekday(d, first_weekday) >= 6


def start_of_week(today: date, first_weekday: int) -> date:
    """Most recent first_weekday on or before today."""
    return today + relativedelta(weekday=weekdays[first_weekday - 1](-1))


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def add_months(d: date, months: int) -> date:
    return d + relativedelta(months=months)


def format_day(d: date) -> str:
    """dd/mm"""
    return d.strftime("%d/%m")


def format_weekday(d: date) -> str:
    """Weekday name followed by dd/mm, e.g. 'Tuesday 11/06'."""
    return f"{WEEKDAY_NAMES[d.weekday()]} {format_day(d)}"


def in_date_range(
    todo: TodoItem,
    rng: DateRange,
    settings: PlanningSettings,
    include_selected: bool = False,
) -> bool:
    """
    True if the todo's due date is in rng.

    With include_selected, a todo carrying the selected marker also
    qualifies while open, or once done if its completed date is in rng.
    """
    if in_range(date_of(todo, settings.due_date_attribute), rng):
        return True
    if not include_selected or not todo.has_attribute(settings.selected_attribute):
        return False
    if not todo.is_done:
        return True
    return in_range(date_of(todo, settings.completed_date_attribute), rng)


def todos_by_date(
    todos: Iterable[TodoItem],
    rng: DateRange,
    settings: PlanningSettings,
    include_selected: bool = False,
) -> List[TodoItem]:
    return [t for t in todos if in_date_range(t, rng, settings, include_selected)]
