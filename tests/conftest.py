"""Shared fixtures for planning board tests."""

import asyncio
import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure the repo root is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.planning.persistence import Persistence, PersistenceFailure  # noqa: E402
from pkg.planning.schema import TodoItem, TodoStatus  # noqa: E402
from pkg.planning.settings import PlanningSettings  # noqa: E402

# Monday
MONDAY = date(2024, 6, 10)


class RecordingPersistence(Persistence):
    """Records every write; raises PersistenceFailure on the call named in fail_on."""

    def __init__(self):
        self.calls = []
        self.trace = []
        self.fail_on = None

    async def _write(self, call):
        self.trace.append(("start", call[0]))
        await asyncio.sleep(0)
        if self.fail_on == call[0]:
            self.trace.append(("fail", call[0]))
            raise PersistenceFailure(f"disk full during {call[0]}")
        self.calls.append(call)
        self.trace.append(("end", call[0]))

    async def update_attribute(self, todo, attribute, value):
        await self._write(("update_attribute", todo.todo_id, attribute, value))

    async def remove_attribute(self, todo, attribute):
        await self._write(("remove_attribute", todo.todo_id, attribute))

    async def update_status(self, todo, completed_date_attribute):
        await self._write(("update_status", todo.todo_id, todo.status, completed_date_attribute))


@pytest.fixture
def today():
    return MONDAY


@pytest.fixture
def settings():
    return PlanningSettings()


@pytest.fixture
def persistence():
    return RecordingPersistence()


@pytest.fixture
def make_todo():
    """Factory: make_todo("id", due=date, status=TodoStatus, **attributes)."""
    def factory(todo_id="note.md:1", title="", status=TodoStatus.TODO, due=None, **attributes):
        if due is not None:
            attributes["due"] = due.isoformat() if isinstance(due, date) else due
        return TodoItem(
            todo_id=todo_id,
            title=title or f"Todo {todo_id}",
            status=status,
            attributes=attributes,
            source=todo_id.split(":")[0],
        )
    return factory
