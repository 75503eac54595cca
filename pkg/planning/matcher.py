"""
Search filtering for the planning board.

TodoMatcher is built from the search box (phrase + fuzzy toggle) and
decides whether a single todo is shown. filter_todos runs it over the
whole snapshot before bucketing.
"""
import re
from typing import Iterable, List

from .schema import TodoItem
from .settings import SearchParameters

_WS_RE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _WS_RE.sub(" ", text).strip().lower()


def _is_subsequence(term: str, text: str) -> bool:
    it = iter(text)
    return all(ch in it for ch in term)


class TodoMatcher:
    """Every whitespace-separated term must match the todo's searchable text."""

    def __init__(self, search_phrase: str = "", fuzzy: bool = False):
        self.search_phrase = search_phrase or ""
        self.fuzzy = fuzzy
        self.terms = [t for t in _normalize(self.search_phrase).split(" ") if t]

    def searchable_text(self, todo: TodoItem) -> str:
        parts = [todo.title or ""]
        if todo.source is not None:
            parts.append(str(todo.source))
        for value in todo.attributes.values():
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                parts.append(str(value))
        return _normalize(" ".join(parts))

    def matches(self, todo: TodoItem) -> bool:
        if not self.terms:
            return True
        text = self.searchable_text(todo)
        if self.fuzzy:
            return all(_is_subsequence(term, text) for term in self.terms)
        return all(term in text for term in self.terms)


def filter_todos(todos: Iterable[TodoItem], search: SearchParameters) -> List[TodoItem]:
    """Todos matching the search, in their original order."""
    matcher = TodoMatcher(search.search_phrase, search.fuzzy_search)
    return [todo for todo in todos if matcher.matches(todo)]
