"""
Todo schema for the planning board.

A todo is a single checklist line from a note file. The board never owns
todos: the index hands out snapshots, and every change goes back through
the persistence layer as an attribute or status write.

Status cycle:
  Todo → InProgress / AttentionRequired / Delegated → Complete | Canceled
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class TodoStatus(Enum):
    """Valid todo statuses. Complete and Canceled are the only done states."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    ATTENTION_REQUIRED = "attention_required"
    DELEGATED = "delegated"
    COMPLETE = "complete"
    CANCELED = "canceled"

    @classmethod
    def from_str(cls, value: str) -> "TodoStatus":
        try:
            return cls(value.lower())
        except (ValueError, AttributeError):
            pass
        try:
            return cls[value.upper()]
        except (KeyError, AttributeError):
            return cls.TODO

    @property
    def is_done(self) -> bool:
        return self in DONE_STATUSES


DONE_STATUSES = frozenset({TodoStatus.COMPLETE, TodoStatus.CANCELED})
OPEN_STATUSES = frozenset(s for s in TodoStatus if s not in DONE_STATUSES)

# Statuses shown in the "In progress" column of the Today group
ACTIVE_STATUSES = frozenset({
    TodoStatus.ATTENTION_REQUIRED,
    TodoStatus.DELEGATED,
    TodoStatus.IN_PROGRESS,
})

STATUS_ICONS: Dict[TodoStatus, str] = {
    TodoStatus.COMPLETE: "✔",
    TodoStatus.ATTENTION_REQUIRED: "❗",
    TodoStatus.CANCELED: "❌",
    TodoStatus.DELEGATED: "👬",
    TodoStatus.IN_PROGRESS: "⏩",
    TodoStatus.TODO: "⚪️",
}

# Secondary-activation menu, in display order
STATUS_MENU: List[Tuple[TodoStatus, str]] = [
    (TodoStatus.TODO, "◻️ Mark as todo"),
    (TodoStatus.COMPLETE, "✔️ Mark as complete"),
    (TodoStatus.IN_PROGRESS, "⏩ Mark as in progress"),
    (TodoStatus.ATTENTION_REQUIRED, "❗ Mark as attention required"),
    (TodoStatus.DELEGATED, "👬 Mark as delegated"),
    (TodoStatus.CANCELED, "❌ Mark as cancelled"),
]


def status_icon(status: TodoStatus) -> str:
    return STATUS_ICONS.get(status, "")


def make_todo_id(source: Any, line: Optional[int]) -> str:
    """Stable todo id derived from where the todo lives."""
    if line is None:
        return str(source)
    return f"{source}:{line}"


@dataclass
class TodoItem:
    """One todo as seen by the board. Replaced wholesale on every index update."""

    todo_id: str
    title: str = ""
    status: TodoStatus = TodoStatus.TODO
    attributes: Dict[str, Any] = field(default_factory=dict)
    source: Any = None               # owning document, never interpreted here
    line: Optional[int] = None

    @property
    def is_done(self) -> bool:
        return self.status.is_done

    def has_attribute(self, name: str) -> bool:
        """True if the attribute is present and truthy (e.g. the selected marker)."""
        return bool(self.attributes.get(name))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "todo_id": self.todo_id,
            "title": self.title,
            "status": self.status.value,
            "attributes": dict(self.attributes),
            "source": None if self.source is None else str(self.source),
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TodoItem":
        source = data.get("source")
        line = data.get("line")
        todo_id = data.get("todo_id") or make_todo_id(source, line)
        attributes = data.get("attributes") or {}
        if not isinstance(attributes, dict):
            attributes = {}
        return cls(
            todo_id=todo_id,
            title=data.get("title", ""),
            status=TodoStatus.from_str(data.get("status", "todo")),
            attributes=dict(attributes),
            source=source,
            line=line,
        )
