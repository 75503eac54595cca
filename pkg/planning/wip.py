"""
Work-in-progress limits.

A column holding more todos than the daily limit gets the exceeded style.
The Today group is judged on its open todos only, and flagged with its
own marker independently of its three columns.
"""
from datetime import date
from typing import Sequence

from .dates import DateRange, todos_by_date
from .schema import OPEN_STATUSES, TodoItem
from .settings import PlanningSettings, WipLimit

WIP_EXCEEDED = "wip-exceeded"
TODAY_WIP_EXCEEDED = "today-wip-exceeded"


def is_exceeded(count: int, wip_limit: WipLimit) -> bool:
    return wip_limit.is_limited and count > wip_limit.daily_limit


def wip_style(todos: Sequence[TodoItem], wip_limit: WipLimit) -> str:
    return WIP_EXCEEDED if is_exceeded(len(todos), wip_limit) else ""


def today_open_todos(
    todos: Sequence[TodoItem], settings: PlanningSettings, today: date
) -> list:
    in_today = todos_by_date(todos, DateRange.day(today), settings, include_selected=True)
    return [t for t in in_today if t.status in OPEN_STATUSES]


def today_wip_style(todos: Sequence[TodoItem], settings: PlanningSettings, today: date) -> str:
    if not settings.wip_limit.is_limited:
        return ""
    count = len(today_open_todos(todos, settings, today))
    return TODAY_WIP_EXCEEDED if is_exceeded(count, settings.wip_limit) else ""
