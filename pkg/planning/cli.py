#!/usr/bin/env python3
"""
planboard — command line host for the planning board.

Usage:
    planboard board                          # show today + columns
    planboard board --all                    # include hidden empty columns
    planboard add "Write report" --due 2024-06-11
    planboard move inbox:3 day-0             # drop a todo on a bucket
    planboard backlog inbox:3                # clear its due date
    planboard toggle inbox:3                 # complete / reopen
    planboard status inbox:3 delegated
    planboard search "report" --fuzzy        # persisted search filter

Environment:
    PLANBOARD_DB      SQLite database (default ~/.local/share/planboard/todos.db)
    PLANBOARD_CONFIG  settings YAML (default ~/.config/planboard/planning.yaml)
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from .board import PlanningBoard
from .buckets import Bucket, PlanningView
from .commands import CommandEngine, SetStatusCommand
from .dates import parse_date
from .index import TodoIndex
from .persistence import PersistenceFailure, StorePersistence
from .schema import TodoItem, TodoStatus, status_icon
from .settings import ConfigError, PlanningSettingsStore, SearchParameters
from .store import TodoStore


# ── Rendering ────────────────────────────────────────────────


def format_bucket(bucket: Bucket) -> List[str]:
    header = f"{bucket.icon} {bucket.title} ({len(bucket.todos)})"
    if bucket.style and bucket.style != "today":
        header += f" [{bucket.style}]"
    lines = [header, f"   key: {bucket.key}"]
    for todo in bucket.todos:
        lines.append(f"   {status_icon(todo.status)} {todo.todo_id}: {todo.title}")
    return lines


def format_view(view: PlanningView, show_hidden: bool = False) -> str:
    today_header = f"☀️ Today {view.generated_for.isoformat()}"
    if view.today_style:
        today_header += f" [{view.today_style}]"
    lines = [today_header]
    for bucket in view.today:
        lines.extend(format_bucket(bucket))
    lines.append("")
    for bucket in view.columns:
        if bucket.is_hidden and not show_hidden:
            continue
        lines.extend(format_bucket(bucket))
    return "\n".join(lines)


# ── Wiring ───────────────────────────────────────────────────


def build_board(db_path: Optional[str], config_path: Optional[str]):
    store = TodoStore(db_path or os.environ.get("PLANBOARD_DB"))
    index = TodoIndex(store.list_all())
    settings_store = PlanningSettingsStore(config_path)
    engine = CommandEngine(index, StorePersistence(store, index))
    board = PlanningBoard(index, settings_store, engine)
    return store, board


def _run_action(action) -> int:
    async def runner():
        task = action()
        if task is None:
            return False
        return await task

    try:
        applied = asyncio.run(runner())
    except PersistenceFailure as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    return 0 if applied else 1


# ── Subcommands ──────────────────────────────────────────────


def cmd_board(args, store: TodoStore, board: PlanningBoard) -> int:
    print(format_view(board.current_view(), show_hidden=args.all))
    return 0


def cmd_add(args, store: TodoStore, board: PlanningBoard) -> int:
    settings = board.settings
    todo_id = store.next_todo_id(args.source)
    attributes = {}
    if args.due:
        due = parse_date(args.due)
        if due is None:
            print(f"❌ Not a date: {args.due}", file=sys.stderr)
            return 2
        attributes[settings.due_date_attribute] = due.isoformat()
    if args.selected:
        attributes[settings.selected_attribute] = True
    todo = TodoItem(
        todo_id=todo_id,
        title=args.title,
        status=TodoStatus.from_str(args.status),
        attributes=attributes,
        source=args.source,
        line=int(todo_id.rsplit(":", 1)[1]),
    )
    if not store.save(todo):
        return 1
    print(f"✅ Added {todo_id}: {args.title}")
    return 0


def cmd_move(args, store: TodoStore, board: PlanningBoard) -> int:
    return _run_action(lambda: board.drop(args.bucket, args.todo_id))


def cmd_backlog(args, store: TodoStore, board: PlanningBoard) -> int:
    return _run_action(lambda: board.drop("backlog", args.todo_id))


def cmd_toggle(args, store: TodoStore, board: PlanningBoard) -> int:
    return _run_action(lambda: board.toggle(args.todo_id))


def cmd_status(args, store: TodoStore, board: PlanningBoard) -> int:
    status = TodoStatus.from_str(args.status)
    return _run_action(lambda: board.set_status(SetStatusCommand(args.todo_id, status)))


def cmd_search(args, store: TodoStore, board: PlanningBoard) -> int:
    board.settings_store.update(
        search=SearchParameters(search_phrase=args.phrase or "", fuzzy_search=args.fuzzy)
    )
    print(format_view(board.current_view()))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="planboard", description="Personal planning board")
    parser.add_argument("--db", help="SQLite database path")
    parser.add_argument("--config", help="Settings YAML path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("board", help="Show the board")
    p.add_argument("--all", action="store_true", help="Include hidden empty columns")
    p.set_defaults(func=cmd_board)

    p = sub.add_parser("add", help="Add a todo")
    p.add_argument("title")
    p.add_argument("--due", help="Due date (YYYY-MM-DD)")
    p.add_argument("--status", default="todo", choices=[s.value for s in TodoStatus])
    p.add_argument("--selected", action="store_true", help="Pin to today")
    p.add_argument("--source", default="inbox", help="Owning document")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("move", help="Move a todo onto a bucket")
    p.add_argument("todo_id")
    p.add_argument("bucket", help="Bucket key, e.g. today-todo, day-0, week-1, later")
    p.set_defaults(func=cmd_move)

    p = sub.add_parser("backlog", help="Clear a todo's due date")
    p.add_argument("todo_id")
    p.set_defaults(func=cmd_backlog)

    p = sub.add_parser("toggle", help="Complete or reopen a todo")
    p.add_argument("todo_id")
    p.set_defaults(func=cmd_toggle)

    p = sub.add_parser("status", help="Set a todo's status")
    p.add_argument("todo_id")
    p.add_argument("status", choices=[s.value for s in TodoStatus])
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("search", help="Set the search filter")
    p.add_argument("phrase", nargs="?", default="")
    p.add_argument("--fuzzy", action="store_true")
    p.set_defaults(func=cmd_search)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [planboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    try:
        store, board = build_board(args.db, args.config)
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2
    return args.func(args, store, board)


if __name__ == "__main__":
    sys.exit(main())
