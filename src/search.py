"""Regex search over task titles and descriptions.

Search-as-you-type: a pattern that fails to compile raises PatternError and
leaves the previous state untouched, so one bad keystroke never blanks the
highlights. Matching is a linear scan in the order the nodes are given.
"""
from __future__ import annotations
import logging
import re
from enum import Enum
from typing import FrozenSet, Iterable, Iterator, Optional, Sequence, Tuple, Union

from errors import PatternError
from tree import Forest, VisibilityFilter, flatten

logger = logging.getLogger(__name__)

SearchItem = Tuple[int, Union[str, Sequence[str]]]


class SearchMode(Enum):
    ALL = "all"          # list view: every record, filters ignored
    VISIBLE = "visible"  # tree view: anything that could be expanded into view


class MatchCursor:
    """Ordered match ids with a cyclic cursor; shared by search and goto."""

    def __init__(self, matches: Iterable[int] = ()):
        self.matches: Tuple[int, ...] = tuple(matches)
        self.index: Optional[int] = 0 if self.matches else None

    def __len__(self) -> int:
        return len(self.matches)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.matches

    @property
    def highlights(self) -> FrozenSet[int]:
        return frozenset(self.matches)

    def current(self) -> Optional[int]:
        if self.index is None:
            return None
        return self.matches[self.index]

    def next(self) -> Optional[int]:
        if self.index is None:
            return None
        self.index = (self.index + 1) % len(self.matches)
        return self.matches[self.index]

    def previous(self) -> Optional[int]:
        if self.index is None:
            return None
        self.index = (self.index - 1) % len(self.matches)
        return self.matches[self.index]

    def select(self, task_id: int) -> bool:
        """Move the cursor onto task_id if it is a match."""
        try:
            self.index = self.matches.index(task_id)
        except ValueError:
            return False
        return True


class SearchState(MatchCursor):
    def __init__(self, pattern: str = '', matches: Iterable[int] = ()):
        super().__init__(matches)
        self.pattern = pattern

    def __repr__(self) -> str:
        return f"SearchState(pattern={self.pattern!r}, matches={self.matches}, index={self.index})"


def searchable_nodes(forest: Forest, mode: SearchMode = SearchMode.VISIBLE,
                     visibility: Optional[VisibilityFilter] = None) -> Iterator[SearchItem]:
    """(id, (title, description)) in tree order for the given mode."""
    flt = visibility if mode is SearchMode.VISIBLE else None
    for line in flatten(forest, None, flt):
        task = forest.records[line.id]
        yield line.id, (task.title, task.description)


class SearchEngine:
    def __init__(self, case_sensitive: bool = False):
        self.case_sensitive = case_sensitive
        self.state = SearchState()

    def compile(self, pattern: str) -> re.Pattern[str]:
        flags = 0 if self.case_sensitive else re.IGNORECASE
        try:
            return re.compile(pattern, flags)
        except re.error as exc:
            raise PatternError(pattern, str(exc)) from exc

    def search(self, pattern: str, nodes: Iterable[SearchItem]) -> SearchState:
        """Recompute matches for pattern over nodes.

        An empty or blank pattern matches nothing. Re-running the same
        pattern keeps the cursor on the same id while it still matches; a
        new pattern starts from the first match.
        """
        if not pattern.strip():
            self.state = SearchState(pattern)
            return self.state
        regex = self.compile(pattern)
        matches = [tid for tid, texts in nodes if _matches(regex, texts)]
        previous = self.state
        state = SearchState(pattern, matches)
        if previous.pattern == pattern:
            kept = previous.current()
            if kept is not None:
                state.select(kept)
        self.state = state
        logger.debug("search %r: %d matches", pattern, len(matches))
        return state

    def clear(self) -> None:
        self.state = SearchState()

    @property
    def active(self) -> bool:
        return bool(self.state.pattern)

    def current(self) -> Optional[int]:
        return self.state.current()

    def next(self) -> Optional[int]:
        return self.state.next()

    def previous(self) -> Optional[int]:
        return self.state.previous()


def _matches(regex: re.Pattern[str], texts: Union[str, Sequence[str]]) -> bool:
    if isinstance(texts, str):
        texts = (texts,)
    return any(regex.search(text) for text in texts if text)
