"""
Board commands: what a drop or a status click asks the persistence layer to do.

A command is a pure intent. plan() turns it into an ordered list of
mutations for one todo; CommandEngine looks the todo up and applies the
mutations one at a time, each awaited before the next is issued.

Mutation order for a move: due date, then status, then started date.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Callable, List, Optional, Set, Tuple, Union

from .index import TodoIndex, TodoNotFound
from .persistence import Persistence
from .schema import STATUS_MENU, TodoItem, TodoStatus
from .settings import PlanningSettings

logger = logging.getLogger(__name__)


class MutationKind(Enum):
    SET_ATTRIBUTE = "set_attribute"
    REMOVE_ATTRIBUTE = "remove_attribute"
    SET_STATUS = "set_status"


@dataclass(frozen=True)
class Mutation:
    """One write request against a single todo."""
    kind: MutationKind
    attribute: Optional[str] = None
    value: Any = None
    status: Optional[TodoStatus] = None

    @classmethod
    def set_attribute(cls, attribute: str, value: Any) -> "Mutation":
        return cls(MutationKind.SET_ATTRIBUTE, attribute=attribute, value=value)

    @classmethod
    def remove_attribute(cls, attribute: str) -> "Mutation":
        return cls(MutationKind.REMOVE_ATTRIBUTE, attribute=attribute)

    @classmethod
    def set_status(cls, status: TodoStatus) -> "Mutation":
        return cls(MutationKind.SET_STATUS, status=status)

    def apply_to(self, todo: TodoItem) -> TodoItem:
        """Copy of todo with this mutation applied in memory."""
        if self.kind == MutationKind.SET_STATUS:
            return replace(todo, status=self.status)
        attributes = dict(todo.attributes)
        if self.kind == MutationKind.SET_ATTRIBUTE:
            attributes[self.attribute] = self.value
        else:
            attributes.pop(self.attribute, None)
        return replace(todo, attributes=attributes)


# ── Commands ─────────────────────────────────────────────────


@dataclass(frozen=True)
class MoveCommand:
    """Set the due date, and optionally the status, of a todo."""
    todo_id: str
    target_date: date
    target_status: Optional[TodoStatus] = None

    def plan(self, todo: TodoItem, settings: PlanningSettings, today: date) -> List[Mutation]:
        mutations = [
            Mutation.set_attribute(settings.due_date_attribute, self.target_date.isoformat())
        ]
        if self.target_status is not None:
            mutations.append(Mutation.set_status(self.target_status))
            if (
                settings.track_start_time
                and self.target_status == TodoStatus.IN_PROGRESS
                and not todo.has_attribute(settings.started_attribute)
            ):
                mutations.append(
                    Mutation.set_attribute(settings.started_attribute, today.isoformat())
                )
        return mutations

    def describe(self) -> str:
        target = self.target_date.isoformat()
        if self.target_status is not None:
            target = f"{target} ({self.target_status.value})"
        return f"move {self.todo_id} to {target}"


@dataclass(frozen=True)
class RemoveDateCommand:
    """Clear the due date, sending the todo back to the backlog."""
    todo_id: str

    def plan(self, todo: TodoItem, settings: PlanningSettings, today: date) -> List[Mutation]:
        return [Mutation.remove_attribute(settings.due_date_attribute)]

    def describe(self) -> str:
        return f"move {self.todo_id} to backlog"


@dataclass(frozen=True)
class ToggleStatusCommand:
    """Done todos go back to Todo; anything open becomes Complete."""
    todo_id: str

    def plan(self, todo: TodoItem, settings: PlanningSettings, today: date) -> List[Mutation]:
        status = TodoStatus.TODO if todo.is_done else TodoStatus.COMPLETE
        return [Mutation.set_status(status)]

    def describe(self) -> str:
        return f"toggle {self.todo_id}"


@dataclass(frozen=True)
class SetStatusCommand:
    todo_id: str
    status: TodoStatus

    def plan(self, todo: TodoItem, settings: PlanningSettings, today: date) -> List[Mutation]:
        return [Mutation.set_status(self.status)]

    def describe(self) -> str:
        return f"set {self.todo_id} to {self.status.value}"


Command = Union[MoveCommand, RemoveDateCommand, ToggleStatusCommand, SetStatusCommand]

# Builds a command for the todo dropped onto a bucket
DropTarget = Callable[[str], Command]


def status_menu(todo_id: str) -> List[Tuple[str, SetStatusCommand]]:
    """Label and command for every entry of the status menu."""
    return [(label, SetStatusCommand(todo_id, status)) for status, label in STATUS_MENU]


# ── Engine ───────────────────────────────────────────────────


class CommandEngine:
    """Resolves commands against the index and hands mutations to persistence."""

    def __init__(
        self,
        index: TodoIndex,
        persistence: Persistence,
        clock: Callable[[], date] = date.today,
    ):
        self.index = index
        self.persistence = persistence
        self.clock = clock
        # In-flight commands, released once done
        self._tasks: Set["asyncio.Task[bool]"] = set()

    def resolve(
        self, command: Command, settings: PlanningSettings
    ) -> Optional[Tuple[TodoItem, List[Mutation]]]:
        """
        Look the todo up and plan the command.

        Returns None, after logging a warning, when the todo is not in the
        current snapshot.
        """
        try:
            todo = self.index.get(command.todo_id)
        except TodoNotFound:
            logger.warning(f"Todo {command.todo_id} not found, couldn't {command.describe()}")
            return None
        return todo, command.plan(todo, settings, self.clock())

    def preview(self, command: Command, settings: PlanningSettings) -> Optional[TodoItem]:
        """The todo as it will look once the command's mutations land."""
        resolved = self.resolve(command, settings)
        if resolved is None:
            return None
        todo, mutations = resolved
        for mutation in mutations:
            todo = mutation.apply_to(todo)
        return todo

    async def run(self, command: Command, settings: PlanningSettings) -> bool:
        """
        Apply a command's mutations in order.

        Returns False when the command was dropped. A PersistenceFailure
        stops the remaining mutations and propagates.
        """
        resolved = self.resolve(command, settings)
        if resolved is None:
            return False
        todo, mutations = resolved
        logger.debug(f"Running {command.describe()}: {len(mutations)} mutation(s)")
        for mutation in mutations:
            await self._apply(todo, mutation, settings)
        return True

    def execute(self, command: Command, settings: PlanningSettings) -> "asyncio.Task[bool]":
        """Schedule run() on the running loop and return without waiting."""
        task = asyncio.get_running_loop().create_task(self.run(command, settings))
        self._tasks.add(task)
        task.add_done_callback(self._report)
        return task

    def _report(self, task: "asyncio.Task[bool]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Command failed: {exc}")

    async def _apply(self, todo: TodoItem, mutation: Mutation, settings: PlanningSettings) -> None:
        if mutation.kind == MutationKind.SET_ATTRIBUTE:
            await self.persistence.update_attribute(todo, mutation.attribute, mutation.value)
        elif mutation.kind == MutationKind.REMOVE_ATTRIBUTE:
            await self.persistence.remove_attribute(todo, mutation.attribute)
        else:
            await self.persistence.update_status(
                replace(todo, status=mutation.status),
                settings.completed_date_attribute,
            )
