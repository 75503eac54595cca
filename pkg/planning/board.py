"""
Planning board: wires the index, settings and command engine together.

recompute() is the single entry point that rebuilds the view. It runs on
every index update and every settings change; a request that arrives
while a recompute is in progress is coalesced into one extra pass.
"""
import asyncio
import logging
from datetime import date
from typing import Callable, List, Optional, Tuple

from .buckets import Bucket, PlanningView, generate_view
from .commands import CommandEngine, SetStatusCommand, ToggleStatusCommand, status_menu
from .index import TodoIndex
from .settings import PlanningSettings, PlanningSettingsStore

logger = logging.getLogger(__name__)


class PlanningBoard:
    """Holds the latest PlanningView and turns user actions into commands."""

    def __init__(
        self,
        index: TodoIndex,
        settings_store: PlanningSettingsStore,
        engine: CommandEngine,
        clock: Callable[[], date] = date.today,
    ):
        self.index = index
        self.settings_store = settings_store
        self.engine = engine
        self.clock = clock
        self.view: Optional[PlanningView] = None
        self._listeners: List[Callable[[PlanningView], None]] = []
        self._recomputing = False
        self._pending = False

        index.subscribe(lambda todos: self.recompute())
        settings_store.subscribe(lambda settings: self.recompute())

    @property
    def settings(self) -> PlanningSettings:
        return self.settings_store.get_settings()

    def on_view(self, callback: Callable[[PlanningView], None]) -> None:
        self._listeners.append(callback)

    def recompute(self) -> Optional[PlanningView]:
        if self._recomputing:
            self._pending = True
            return self.view
        self._recomputing = True
        try:
            while True:
                self._pending = False
                self.view = generate_view(self.index.todos, self.settings, self.clock())
                logger.debug(
                    f"Recomputed planning view: {len(self.index.todos)} todos, "
                    f"{len(self.view.all_buckets())} buckets"
                )
                for callback in self._listeners:
                    try:
                        callback(self.view)
                    except Exception as e:
                        logger.error(f"Error in planning view callback: {e}")
                if not self._pending:
                    break
        finally:
            self._recomputing = False
        return self.view

    def current_view(self) -> PlanningView:
        return self.view if self.view is not None else self.recompute()

    # ── Interactions ─────────────────────────────────────────

    def find_bucket(self, key: str) -> Optional[Bucket]:
        return self.current_view().find(key)

    def drop(self, bucket_key: str, todo_id: str) -> "Optional[asyncio.Task[bool]]":
        """Drag-release of a todo onto a bucket."""
        bucket = self.find_bucket(bucket_key)
        if bucket is None:
            logger.warning(f"Bucket {bucket_key} not found, couldn't move {todo_id}")
            return None
        command = bucket.drop(todo_id)
        if command is None:
            logger.debug(f"Bucket {bucket_key} does not accept drops")
            return None
        logger.debug(f"Moving {todo_id} to {bucket.title}")
        return self.engine.execute(command, self.settings)

    def toggle(self, todo_id: str) -> "asyncio.Task[bool]":
        """Primary activation on a todo's status checkbox."""
        logger.debug(f"Changing status on {todo_id}")
        return self.engine.execute(ToggleStatusCommand(todo_id), self.settings)

    def status_menu(self, todo_id: str) -> List[Tuple[str, SetStatusCommand]]:
        """Secondary activation: every status with its label."""
        return status_menu(todo_id)

    def set_status(self, command: SetStatusCommand) -> "asyncio.Task[bool]":
        return self.engine.execute(command, self.settings)
