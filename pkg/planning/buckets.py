"""
Bucket generation: turns a todo snapshot into the planning board's columns.

Two passes over the filtered todos:

  Today group:   Todo / In progress / Done for today, selected todos pinned
  Main sequence: Backlog, Past, 6 days, 4 weeks, 3 months, Later

The dated brackets of the main sequence are laid end to end: each one
starts where the previous one ended, so every due date from tomorrow on
lands in exactly one bracket. Labels keep the calendar dates; with
weekends hidden, skipped weekend days fall into the next shown day.
"""
from dataclasses import dataclass, field
from datetime import date
from functools import partial
from typing import List, Optional, Sequence

from .commands import DropTarget, MoveCommand, RemoveDateCommand
from .dates import (
    ONE_DAY,
    ONE_WEEK,
    DateRange,
    add_months,
    date_of,
    format_day,
    format_weekday,
    is_week_end,
    start_of_month,
    start_of_week,
    todos_by_date,
)
from .matcher import filter_todos
from .schema import ACTIVE_STATUSES, DONE_STATUSES, TodoItem, TodoStatus
from .settings import PlanningSettings
from .wip import today_wip_style, wip_style

DAILY_BRACKETS = 6
WEEKLY_BRACKETS = 4
MONTHLY_BRACKETS = 3

TODAY_STYLE = "today"


@dataclass
class Bucket:
    """One column of the board. Rebuilt on every recompute."""
    key: str
    icon: str
    title: str
    todos: List[TodoItem] = field(default_factory=list)
    hide_if_empty: bool = False
    drop_target: Optional[DropTarget] = None
    style: str = ""
    date_range: Optional[DateRange] = None

    @property
    def is_hidden(self) -> bool:
        return self.hide_if_empty and not self.todos

    def drop(self, todo_id: str):
        """Command for a todo dropped on this bucket, or None if it accepts no drops."""
        if self.drop_target is None:
            return None
        return self.drop_target(todo_id)

    def __contains__(self, todo_id: str) -> bool:
        return any(t.todo_id == todo_id for t in self.todos)


@dataclass
class PlanningView:
    today: List[Bucket]
    today_style: str
    columns: List[Bucket]
    generated_for: date

    def all_buckets(self) -> List[Bucket]:
        return self.today + self.columns

    def find(self, key: str) -> Optional[Bucket]:
        for bucket in self.all_buckets():
            if bucket.key == key:
                return bucket
        return None

    def buckets_containing(self, todo_id: str) -> List[Bucket]:
        return [b for b in self.all_buckets() if todo_id in b]


class BucketGenerator:
    """Builds buckets for one (settings, today) pair."""

    def __init__(self, settings: PlanningSettings, today: date):
        self.settings = settings
        self.today = today
        self._cursor = today + ONE_DAY

    # ── Today group ──────────────────────────────────────────

    def today_group(self, todos: Sequence[TodoItem]) -> List[Bucket]:
        today = self.today
        in_today = todos_by_date(todos, DateRange.day(today), self.settings, include_selected=True)

        def column(key, icon, title, statuses, drop_status):
            return Bucket(
                key=key,
                icon=icon,
                title=title,
                todos=[t for t in in_today if t.status in statuses],
                hide_if_empty=False,
                drop_target=partial(MoveCommand, target_date=today, target_status=drop_status),
                style=TODAY_STYLE,
                date_range=DateRange.day(today),
            )

        return [
            column("today-todo", "◻️", "Todo", {TodoStatus.TODO}, TodoStatus.TODO),
            column("today-in-progress", "⏩", "In progress", ACTIVE_STATUSES, TodoStatus.IN_PROGRESS),
            column("today-done", "✅", "Done", DONE_STATUSES, TodoStatus.COMPLETE),
        ]

    # ── Main sequence ────────────────────────────────────────

    def columns(self, todos: Sequence[TodoItem]) -> List[Bucket]:
        self._cursor = self.today + ONE_DAY
        buckets = [self.backlog(todos), self.past(todos)]
        buckets.extend(self._daily(todos))
        buckets.extend(self._weekly(todos))
        buckets.extend(self._monthly(todos))
        buckets.append(self._bracket(todos, "later", "Later", self._cursor, None, styled=False))
        return buckets

    def backlog(self, todos: Sequence[TodoItem]) -> Bucket:
        s = self.settings
        undated = [
            t for t in todos
            if date_of(t, s.due_date_attribute) is None
            and not t.has_attribute(s.selected_attribute)
            and not t.is_done
        ]
        return Bucket(
            key="backlog",
            icon="📃",
            title="Backlog",
            todos=undated,
            hide_if_empty=False,
            drop_target=RemoveDateCommand,
        )

    def past(self, todos: Sequence[TodoItem]) -> Bucket:
        rng = DateRange(None, self.today)
        overdue = [t for t in todos_by_date(todos, rng, self.settings) if not t.is_done]
        return Bucket(
            key="past",
            icon="🕸️",
            title="Past",
            todos=overdue,
            hide_if_empty=True,
            date_range=rng,
        )

    def _daily(self, todos: Sequence[TodoItem]) -> List[Bucket]:
        s = self.settings
        tomorrow = self.today + ONE_DAY
        buckets = []
        day = tomorrow
        while len(buckets) < DAILY_BRACKETS:
            next_day = day + ONE_DAY
            if not s.show_week_ends and is_week_end(day, s.first_weekday):
                day = next_day
                continue
            label = "Tomorrow" if day == tomorrow else format_weekday(day)
            buckets.append(
                self._bracket(todos, f"day-{len(buckets)}", label, day, next_day)
            )
            day = next_day
        return buckets

    def _weekly(self, todos: Sequence[TodoItem]) -> List[Bucket]:
        week_start = start_of_week(self.today, self.settings.first_weekday) + ONE_WEEK
        buckets = []
        for i in range(WEEKLY_BRACKETS):
            week_end = week_start + ONE_WEEK
            if i == 0:
                label = "Next week"
            else:
                label = f"Week +{i + 1} ({format_day(week_start)} - {format_day(week_end - ONE_DAY)})"
            buckets.append(self._bracket(todos, f"week-{i}", label, week_start, week_end))
            week_start = week_end
        return buckets

    def _monthly(self, todos: Sequence[TodoItem]) -> List[Bucket]:
        month_start = add_months(start_of_month(self.today), 1)
        buckets = []
        for i in range(MONTHLY_BRACKETS):
            month_end = add_months(month_start, 1)
            if i == 0:
                label = "Next month"
            else:
                label = f"Month +{i + 1} ({format_day(month_start)} - {format_day(month_end - ONE_DAY)})"
            buckets.append(self._bracket(todos, f"month-{i}", label, month_start, month_end))
            month_start = month_end
        return buckets

    def _bracket(
        self,
        todos: Sequence[TodoItem],
        key: str,
        label: str,
        start: date,
        end: Optional[date],
        styled: bool = True,
    ) -> Bucket:
        """Dated bracket covering [cursor, end); advances the cursor."""
        cursor = self._cursor
        range_end = None if end is None else max(end, cursor)
        rng = DateRange(cursor, range_end)
        bucket_todos = todos_by_date(todos, rng, self.settings)
        drop_target = None
        if not rng.is_empty:
            drop_target = partial(MoveCommand, target_date=max(start, cursor))
        if range_end is not None:
            self._cursor = range_end
        return Bucket(
            key=key,
            icon="📅",
            title=label,
            todos=bucket_todos,
            hide_if_empty=self.settings.hide_empty,
            drop_target=drop_target,
            style=wip_style(bucket_todos, self.settings.wip_limit) if styled else "",
            date_range=rng,
        )


def generate_view(
    todos: Sequence[TodoItem], settings: PlanningSettings, today: date
) -> PlanningView:
    """Filter, then bucket. Pure function of its arguments."""
    visible = filter_todos(todos, settings.search)
    generator = BucketGenerator(settings, today)
    return PlanningView(
        today=generator.today_group(visible),
        today_style=today_wip_style(visible, settings, today),
        columns=generator.columns(visible),
        generated_for=today,
    )
