"""Tests for the SQLite todo store and the async persistence layer on top of it."""
import asyncio
import threading
from datetime import date

import pytest

from pkg.planning.index import TodoIndex
from pkg.planning.persistence import PersistenceFailure, StorePersistence
from pkg.planning.schema import TodoItem, TodoStatus
from pkg.planning.store import TodoStore

MONDAY = date(2024, 6, 10)


@pytest.fixture
def store(tmp_path):
    return TodoStore(str(tmp_path / "todos.db"))


def add(store, todo_id, status=TodoStatus.TODO, **attributes):
    source, line = todo_id.split(":")
    todo = TodoItem(
        todo_id=todo_id,
        title=f"Todo {todo_id}",
        status=status,
        attributes=attributes,
        source=source,
        line=int(line),
    )
    assert store.save(todo)
    return todo


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TodoStore
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestTodoStore:

    def test_save_and_get(self, store):
        add(store, "inbox:1", due="2024-06-10", selected=True)
        todo = store.get("inbox:1")
        assert todo.title == "Todo inbox:1"
        assert todo.status == TodoStatus.TODO
        assert todo.attributes == {"due": "2024-06-10", "selected": True}
        assert todo.source == "inbox"
        assert todo.line == 1

    def test_get_missing(self, store):
        assert store.get("nope:1") is None

    def test_save_updates_in_place(self, store):
        add(store, "inbox:1")
        add(store, "inbox:2")
        updated = TodoItem("inbox:1", "Renamed", TodoStatus.DELEGATED, {}, "inbox", 1)
        assert store.save(updated)
        todos = store.list_all()
        assert [t.todo_id for t in todos] == ["inbox:1", "inbox:2"]
        assert todos[0].title == "Renamed"
        assert todos[0].status == TodoStatus.DELEGATED

    def test_list_keeps_insertion_order(self, store):
        for todo_id in ("b:3", "a:1", "c:2"):
            add(store, todo_id)
        assert [t.todo_id for t in store.list_all()] == ["b:3", "a:1", "c:2"]

    def test_set_and_remove_attribute(self, store):
        add(store, "inbox:1", due="2024-06-10")
        assert store.set_attribute("inbox:1", "due", "2024-06-11")
        assert store.set_attribute("inbox:1", "started", "2024-06-10")
        assert store.get("inbox:1").attributes == {"due": "2024-06-11", "started": "2024-06-10"}
        assert store.remove_attribute("inbox:1", "due")
        assert store.remove_attribute("inbox:1", "not-there")
        assert store.get("inbox:1").attributes == {"started": "2024-06-10"}

    def test_attribute_writes_on_missing_todo(self, store):
        assert store.set_attribute("ghost:1", "due", "2024-06-10") is False
        assert store.remove_attribute("ghost:1", "due") is False

    def test_completion_stamps_completed_date(self, store):
        add(store, "inbox:1")
        assert store.set_status("inbox:1", TodoStatus.COMPLETE, "completed", "2024-06-10")
        todo = store.get("inbox:1")
        assert todo.status == TodoStatus.COMPLETE
        assert todo.attributes["completed"] == "2024-06-10"

    def test_done_to_done_keeps_completed_date(self, store):
        add(store, "inbox:1")
        store.set_status("inbox:1", TodoStatus.COMPLETE, "completed", "2024-06-10")
        store.set_status("inbox:1", TodoStatus.CANCELED, "completed", "2024-06-12")
        assert store.get("inbox:1").attributes["completed"] == "2024-06-10"

    def test_reopening_clears_completed_date(self, store):
        add(store, "inbox:1", status=TodoStatus.COMPLETE, completed="2024-06-01")
        assert store.set_status("inbox:1", TodoStatus.TODO, "completed", "2024-06-10")
        todo = store.get("inbox:1")
        assert todo.status == TodoStatus.TODO
        assert "completed" not in todo.attributes

    def test_status_history(self, store):
        add(store, "inbox:1")
        store.set_status("inbox:1", TodoStatus.IN_PROGRESS)
        store.set_status("inbox:1", TodoStatus.IN_PROGRESS)
        store.set_status("inbox:1", TodoStatus.COMPLETE)
        history = store.status_history("inbox:1")
        assert [(h["from_status"], h["to_status"]) for h in history] == [
            ("todo", "in_progress"),
            ("in_progress", "complete"),
        ]

    def test_set_status_on_missing_todo(self, store):
        assert store.set_status("ghost:1", TodoStatus.COMPLETE) is False

    def test_delete(self, store):
        add(store, "inbox:1")
        store.set_status("inbox:1", TodoStatus.COMPLETE)
        assert store.delete("inbox:1")
        assert store.get("inbox:1") is None
        assert store.status_history("inbox:1") == []

    def test_next_todo_id(self, store):
        assert store.next_todo_id() == "inbox:1"
        add(store, "inbox:1")
        add(store, "inbox:7")
        add(store, "work:2")
        assert store.next_todo_id() == "inbox:8"
        assert store.next_todo_id("work") == "work:3"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# StorePersistence
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestStorePersistence:

    def test_writes_refresh_the_index(self, store):
        todo = add(store, "inbox:1")
        index = TodoIndex(store.list_all())
        updates = []
        index.subscribe(updates.append)
        persistence = StorePersistence(store, index, clock=lambda: MONDAY)

        asyncio.run(persistence.update_attribute(todo, "due", MONDAY))

        assert store.get("inbox:1").attributes == {"due": "2024-06-10"}
        assert len(updates) == 1
        assert index.get("inbox:1").attributes == {"due": "2024-06-10"}

    def test_reload_runs_off_the_loop_thread(self, store, monkeypatch):
        todo = add(store, "inbox:1")
        index = TodoIndex(store.list_all())
        persistence = StorePersistence(store, index)
        threads = []
        list_all = store.list_all

        def recording_list_all():
            threads.append(threading.get_ident())
            return list_all()

        monkeypatch.setattr(store, "list_all", recording_list_all)

        async def scenario():
            await persistence.update_attribute(todo, "due", "2024-06-11")
            return threading.get_ident()

        loop_thread = asyncio.run(scenario())

        assert len(threads) == 1
        assert loop_thread not in threads
        assert index.get("inbox:1").attributes == {"due": "2024-06-11"}

    def test_update_status_uses_clock(self, store):
        todo = add(store, "inbox:1")
        persistence = StorePersistence(store, clock=lambda: MONDAY)
        done = TodoItem(todo.todo_id, todo.title, TodoStatus.COMPLETE, {}, "inbox", 1)

        asyncio.run(persistence.update_status(done, "completed"))

        stored = store.get("inbox:1")
        assert stored.status == TodoStatus.COMPLETE
        assert stored.attributes == {"completed": "2024-06-10"}

    def test_remove_attribute(self, store):
        todo = add(store, "inbox:1", due="2024-06-10")
        asyncio.run(StorePersistence(store).remove_attribute(todo, "due"))
        assert store.get("inbox:1").attributes == {}

    def test_failed_write_raises(self, store):
        ghost = TodoItem("ghost:1", "Ghost")
        index = TodoIndex()
        updates = []
        index.subscribe(updates.append)
        persistence = StorePersistence(store, index)

        with pytest.raises(PersistenceFailure):
            asyncio.run(persistence.update_attribute(ghost, "due", "2024-06-10"))
        assert updates == []
