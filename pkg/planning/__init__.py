# Planning board: bucketing, filtering and status/move commands over a todo snapshot.
#
# Components:
#   schema.py      - Todo model (TodoItem, TodoStatus, status icons/menu)
#   dates.py       - Date ranges, attribute date parsing, week/month helpers
#   settings.py    - PlanningSettings and the YAML settings store
#   matcher.py     - Search matcher and filter stage
#   buckets.py     - Bucket generator (Today group + main sequence)
#   wip.py         - Work-in-progress limit styling
#   commands.py    - Move/status command intents and the command engine
#   index.py       - Todo snapshot with update subscriptions
#   store.py       - SQLite persistence layer
#   persistence.py - Async write interface over the store
#   board.py       - Recompute entry point and user interactions
#   cli.py         - planboard command line
