"""Jump to a task by its short id (id % 100), typed one digit at a time."""
from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Tuple

from search import MatchCursor

logger = logging.getLogger(__name__)

MAX_DIGITS = 2
DIGITS = '0123456789'


class GotoState(MatchCursor):
    def __init__(self, digits: str = '', matches: Iterable[int] = ()):
        super().__init__(matches)
        self.digits = digits

    def __repr__(self) -> str:
        return f"GotoState(digits={self.digits!r}, matches={self.matches}, index={self.index})"


def match_ids(digits: str, ids: Iterable[int]) -> List[int]:
    """Ids whose last two decimal digits equal int(digits); '' matches none."""
    if not digits:
        return []
    target = int(digits)
    return [tid for tid in ids if tid % 100 == target]


def _check_digits(digits: str) -> None:
    if len(digits) > MAX_DIGITS or not all(c in DIGITS for c in digits):
        raise ValueError(f'Goto takes up to {MAX_DIGITS} digits, got "{digits}".')


class GotoEngine:
    """Incremental goto state.

    The node order given to goto() (normally the visible tree order) is
    kept so that append_digit/backspace can recompute from scratch.
    """

    def __init__(self):
        self.state = GotoState()
        self._nodes: Tuple[int, ...] = ()

    @property
    def active(self) -> bool:
        return bool(self.state.digits)

    def goto(self, digits: str, nodes: Iterable[int]) -> GotoState:
        _check_digits(digits)
        self._nodes = tuple(nodes)
        return self._recompute(digits)

    def append_digit(self, digit: str) -> GotoState:
        if len(digit) != 1 or digit not in DIGITS:
            raise ValueError(f'Not a digit: "{digit}".')
        if len(self.state.digits) >= MAX_DIGITS:
            logger.debug("goto already has %d digits; ignoring %s", MAX_DIGITS, digit)
            return self.state
        return self._recompute(self.state.digits + digit)

    def backspace(self) -> GotoState:
        return self._recompute(self.state.digits[:-1])

    def refresh(self, nodes: Iterable[int]) -> GotoState:
        """Re-run the current digits over a new node order (after a rebuild)."""
        self._nodes = tuple(nodes)
        kept = self.state.current()
        state = self._recompute(self.state.digits)
        if kept is not None:
            state.select(kept)
        return state

    def confirm(self) -> Optional[int]:
        """Hand back the selected id and reset."""
        selected = self.state.current()
        self.cancel()
        return selected

    def cancel(self) -> None:
        self.state = GotoState()
        self._nodes = ()

    def next(self) -> Optional[int]:
        return self.state.next()

    def previous(self) -> Optional[int]:
        return self.state.previous()

    def _recompute(self, digits: str) -> GotoState:
        self.state = GotoState(digits, match_ids(digits, self._nodes))
        return self.state
