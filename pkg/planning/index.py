"""
Todo index: the current snapshot of todos plus update notifications.

The snapshot is replaced, never mutated. Subscribers are called with the
new snapshot every time it changes.
"""
import logging
from typing import Callable, Dict, Iterable, List, Tuple

from .schema import TodoItem

logger = logging.getLogger(__name__)


class TodoNotFound(Exception):
    """Raised when a todo id is absent from the current snapshot."""
    pass


class TodoIndex:
    """In-process todo index with update subscriptions."""

    def __init__(self, todos: Iterable[TodoItem] = ()):
        self._todos: Tuple[TodoItem, ...] = tuple(todos)
        self._by_id: Dict[str, TodoItem] = {t.todo_id: t for t in self._todos}
        self.subscribers: List[Callable[[Tuple[TodoItem, ...]], None]] = []

    @property
    def todos(self) -> Tuple[TodoItem, ...]:
        return self._todos

    def get(self, todo_id: str) -> TodoItem:
        try:
            return self._by_id[todo_id]
        except KeyError:
            raise TodoNotFound(f"Todo {todo_id} not found") from None

    def subscribe(self, callback: Callable[[Tuple[TodoItem, ...]], None]) -> None:
        """Register a callback fired on every snapshot update."""
        self.subscribers.append(callback)

    def update(self, todos: Iterable[TodoItem]) -> None:
        """Replace the snapshot and notify subscribers."""
        self._todos = tuple(todos)
        self._by_id = {t.todo_id: t for t in self._todos}
        logger.debug(f"Todo index updated: {len(self._todos)} todos")
        self._emit()

    def _emit(self) -> None:
        for callback in self.subscribers:
            try:
                callback(self._todos)
            except Exception as e:
                logger.error(f"Error in todo index update callback: {e}")
