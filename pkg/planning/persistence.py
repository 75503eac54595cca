"""
Persistence: where the board's attribute and status writes end up.

The command engine only talks to the Persistence interface. StorePersistence
writes to a TodoStore off the event loop and refreshes the index after each
successful write, which is what triggers the next recompute.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Callable, Optional

from .index import TodoIndex
from .schema import TodoItem
from .store import TodoStore

logger = logging.getLogger(__name__)


class PersistenceFailure(Exception):
    """Raised when a todo's backing document cannot be written."""
    pass


class Persistence(ABC):
    """Async write interface used by the command engine."""

    @abstractmethod
    async def update_attribute(self, todo: TodoItem, attribute: str, value: Any) -> None:
        ...

    @abstractmethod
    async def remove_attribute(self, todo: TodoItem, attribute: str) -> None:
        ...

    @abstractmethod
    async def update_status(self, todo: TodoItem, completed_date_attribute: str) -> None:
        """
        Write todo.status. Entering a done status stamps the completed-date
        attribute with today's date; leaving one clears it.
        """
        ...


class StorePersistence(Persistence):
    """Persistence backed by a SQLite TodoStore."""

    def __init__(
        self,
        store: TodoStore,
        index: Optional[TodoIndex] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.store = store
        self.index = index
        self.clock = clock

    async def update_attribute(self, todo: TodoItem, attribute: str, value: Any) -> None:
        if isinstance(value, date):
            value = value.isoformat()
        ok = await asyncio.to_thread(self.store.set_attribute, todo.todo_id, attribute, value)
        await self._finish(ok, f"set {attribute}={value} on {todo.todo_id}")

    async def remove_attribute(self, todo: TodoItem, attribute: str) -> None:
        ok = await asyncio.to_thread(self.store.remove_attribute, todo.todo_id, attribute)
        await self._finish(ok, f"remove {attribute} from {todo.todo_id}")

    async def update_status(self, todo: TodoItem, completed_date_attribute: str) -> None:
        ok = await asyncio.to_thread(
            self.store.set_status,
            todo.todo_id,
            todo.status,
            completed_date_attribute,
            self.clock().isoformat(),
        )
        await self._finish(ok, f"set status {todo.status.value} on {todo.todo_id}")

    async def _finish(self, ok: bool, what: str) -> None:
        if not ok:
            raise PersistenceFailure(f"Could not {what}")
        logger.debug(f"Persisted: {what}")
        if self.index is not None:
            todos = await asyncio.to_thread(self.store.list_all)
            self.index.update(todos)
