"""
Todo storage backend (SQLite).

Holds the todo collection the board plans over, plus an append-only
history of status changes. Write methods report failure by returning
False; the persistence layer turns that into PersistenceFailure.
"""
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .schema import TodoItem, TodoStatus

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "planboard" / "todos.db"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with FK enforcement and WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class TodoStore:
    """SQLite-backed store for todos."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize store and create tables if needed."""
        if db_path is None:
            db_path = str(DEFAULT_DB_PATH)
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS todos (
                    position INTEGER PRIMARY KEY AUTOINCREMENT,
                    todo_id TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    status TEXT DEFAULT 'todo',
                    attributes TEXT,  -- JSON object
                    source TEXT,
                    line INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS status_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    todo_id TEXT NOT NULL,
                    from_status TEXT NOT NULL,
                    to_status TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    FOREIGN KEY (todo_id) REFERENCES todos(todo_id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_todos_status ON todos(status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_todos_source ON todos(source)")
            conn.commit()

    # ── Writes ───────────────────────────────────────────────

    def save(self, todo: TodoItem) -> bool:
        """Insert or update a todo, keeping its original position."""
        try:
            with _connect(self.db_path) as conn:
                data = todo.to_dict()
                now = _utc_now()
                conn.execute("""
                    INSERT INTO todos
                    (todo_id, title, status, attributes, source, line, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(todo_id) DO UPDATE SET
                        title = excluded.title,
                        status = excluded.status,
                        attributes = excluded.attributes,
                        source = excluded.source,
                        line = excluded.line,
                        updated_at = excluded.updated_at
                """, (
                    data["todo_id"],
                    data["title"],
                    data["status"],
                    json.dumps(data["attributes"], default=str),
                    data["source"],
                    data["line"],
                    now,
                    now,
                ))
                conn.commit()
                return True
        except sqlite3.Error as e:
            logger.error(f"Error saving todo {todo.todo_id}: {e}")
            return False

    def set_attribute(self, todo_id: str, name: str, value: Any) -> bool:
        return self._rewrite_attributes(todo_id, lambda attrs: attrs.__setitem__(name, value))

    def remove_attribute(self, todo_id: str, name: str) -> bool:
        return self._rewrite_attributes(todo_id, lambda attrs: attrs.pop(name, None))

    def _rewrite_attributes(self, todo_id: str, change) -> bool:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT attributes FROM todos WHERE todo_id = ?", (todo_id,)
                ).fetchone()
                if not row:
                    logger.error(f"Cannot update attributes of {todo_id}: not in store")
                    return False
                attrs = self._load_attributes(row["attributes"])
                change(attrs)
                conn.execute(
                    "UPDATE todos SET attributes = ?, updated_at = ? WHERE todo_id = ?",
                    (json.dumps(attrs, default=str), _utc_now(), todo_id),
                )
                conn.commit()
                return True
        except sqlite3.Error as e:
            logger.error(f"Error updating attributes of {todo_id}: {e}")
            return False

    def set_status(
        self,
        todo_id: str,
        status: TodoStatus,
        completed_attribute: Optional[str] = None,
        completed_on: Optional[str] = None,
    ) -> bool:
        """
        Write a status and record the transition.

        When completed_attribute is given, entering a done status stamps it
        with completed_on and leaving a done status clears it.
        """
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT status, attributes FROM todos WHERE todo_id = ?", (todo_id,)
                ).fetchone()
                if not row:
                    logger.error(f"Cannot update status of {todo_id}: not in store")
                    return False
                previous = TodoStatus.from_str(row["status"])
                attrs = self._load_attributes(row["attributes"])
                if completed_attribute:
                    if status.is_done and not previous.is_done:
                        attrs[completed_attribute] = completed_on
                    elif not status.is_done:
                        attrs.pop(completed_attribute, None)
                now = _utc_now()
                conn.execute(
                    "UPDATE todos SET status = ?, attributes = ?, updated_at = ? WHERE todo_id = ?",
                    (status.value, json.dumps(attrs, default=str), now, todo_id),
                )
                if previous != status:
                    conn.execute(
                        "INSERT INTO status_history (todo_id, from_status, to_status, timestamp) "
                        "VALUES (?, ?, ?, ?)",
                        (todo_id, previous.value, status.value, now),
                    )
                conn.commit()
                return True
        except sqlite3.Error as e:
            logger.error(f"Error updating status of {todo_id}: {e}")
            return False

    def delete(self, todo_id: str) -> bool:
        """Delete a todo and its status history."""
        try:
            with _connect(self.db_path) as conn:
                conn.execute("DELETE FROM status_history WHERE todo_id = ?", (todo_id,))
                conn.execute("DELETE FROM todos WHERE todo_id = ?", (todo_id,))
                conn.commit()
                return True
        except sqlite3.Error as e:
            logger.error(f"Error deleting todo {todo_id}: {e}")
            return False

    # ── Reads ────────────────────────────────────────────────

    def get(self, todo_id: str) -> Optional[TodoItem]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT * FROM todos WHERE todo_id = ?", (todo_id,)
                ).fetchone()
            return self._row_to_todo(row) if row else None
        except sqlite3.Error as e:
            logger.error(f"Error retrieving todo {todo_id}: {e}")
            return None

    def list_all(self) -> List[TodoItem]:
        """All todos in insertion order."""
        try:
            with _connect(self.db_path) as conn:
                rows = conn.execute("SELECT * FROM todos ORDER BY position ASC").fetchall()
            return [self._row_to_todo(row) for row in rows]
        except sqlite3.Error as e:
            logger.error(f"Error listing todos: {e}")
            return []

    def status_history(self, todo_id: str) -> List[Dict[str, Any]]:
        try:
            with _connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT from_status, to_status, timestamp FROM status_history "
                    "WHERE todo_id = ? ORDER BY id ASC",
                    (todo_id,),
                ).fetchall()
            return [dict(r) for r in rows]
        except sqlite3.Error as e:
            logger.error(f"Error reading status history of {todo_id}: {e}")
            return []

    def next_todo_id(self, source: str = "inbox") -> str:
        """Next free line-based id for a source."""
        with _connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT MAX(line) FROM todos WHERE source = ?", (source,)
            ).fetchone()
        last = row[0] if row and row[0] is not None else 0
        return f"{source}:{last + 1}"

    @staticmethod
    def _load_attributes(raw: Optional[str]) -> Dict[str, Any]:
        if not raw:
            return {}
        try:
            attrs = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}
        return attrs if isinstance(attrs, dict) else {}

    def _row_to_todo(self, row: sqlite3.Row) -> TodoItem:
        data = dict(row)
        data["attributes"] = self._load_attributes(data.get("attributes"))
        return TodoItem.from_dict(data)
