"""Tree building, expansion bookkeeping and flattening.

The forest is an arena: nodes are looked up by id and children are kept as
tuples of ids, so nothing holds a reference that can go stale after a move.
Forests are never patched; every store mutation is followed by a fresh
build().

Ordering: roots and children are sorted by ascending id, which keeps the
rendering stable across rebuilds.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Set, Tuple

from errors import TaskNotFoundError
from models import Task

logger = logging.getLogger(__name__)

VisibilityFilter = Callable[[Task], bool]

PIPE = "│   "
TEE = "├── "
ELBOW = "└── "
BLANK = "    "


@dataclass(frozen=True)
class TreeNode:
    id: int
    children: Tuple[int, ...] = ()
    parent_id: Optional[int] = None  # resolved parent; None for roots and orphans

    @property
    def has_children(self) -> bool:
        return bool(self.children)


@dataclass(frozen=True)
class Forest:
    roots: Tuple[int, ...]
    nodes: Mapping[int, TreeNode]
    records: Mapping[int, Task]

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, task_id: int) -> TreeNode:
        try:
            return self.nodes[task_id]
        except KeyError:
            raise TaskNotFoundError(task_id) from None

    def record(self, task_id: int) -> Task:
        try:
            return self.records[task_id]
        except KeyError:
            raise TaskNotFoundError(task_id) from None


class VisibleNode(NamedTuple):
    id: int
    depth: int


# -------------------- building --------------------
def build(records: Iterable[Task]) -> Forest:
    """Turn a flat record list into a forest.

    A record whose parent does not resolve is surfaced as a root (logged).
    Records caught in a parent cycle would otherwise be unreachable; the
    smallest id of each such cycle is promoted to a root so every record
    stays visible.
    """
    by_id: Dict[int, Task] = {}
    for rec in records:
        if rec.id in by_id:
            logger.warning("duplicate task id %s; keeping the later record", rec.id)
        by_id[rec.id] = rec

    children: Dict[int, List[int]] = {tid: [] for tid in by_id}
    parents: Dict[int, Optional[int]] = {}
    roots: List[int] = []
    # ascending iteration keeps every child list sorted without a second pass
    for tid in sorted(by_id):
        parent = by_id[tid].parent_id
        if parent is not None and parent != tid and parent in by_id:
            children[parent].append(tid)
            parents[tid] = parent
            continue
        if parent is not None:
            logger.warning("task %s has unresolved parent %s; showing it as a root", tid, parent)
        parents[tid] = None
        roots.append(tid)

    reached = _reachable(roots, children)
    if len(reached) < len(by_id):
        for tid in sorted(by_id):
            if tid in reached:
                continue
            head = min(_parent_cycle(tid, parents))
            children[parents[head]].remove(head)  # type: ignore[index]
            parents[head] = None
            roots.append(head)
            reached |= _reachable([head], children)
            logger.warning("task %s is part of a parent cycle; showing it as a root", head)
        roots.sort()

    nodes = {tid: TreeNode(tid, tuple(children[tid]), parents[tid]) for tid in by_id}
    return Forest(tuple(roots), MappingProxyType(nodes), MappingProxyType(by_id))


def _reachable(start: Iterable[int], children: Mapping[int, List[int]]) -> Set[int]:
    seen: Set[int] = set()
    stack = list(start)
    while stack:
        tid = stack.pop()
        if tid in seen:
            continue
        seen.add(tid)
        stack.extend(children[tid])
    return seen


def _parent_cycle(tid: int, parents: Mapping[int, Optional[int]]) -> List[int]:
    """Walk up from an unreachable id until an id repeats; return the loop."""
    order: List[int] = []
    index: Dict[int, int] = {}
    current: Optional[int] = tid
    while current is not None and current not in index:
        index[current] = len(order)
        order.append(current)
        current = parents[current]
    if current is None:  # pragma: no cover - unreachable ids always loop
        return [tid]
    return order[index[current]:]


# -------------------- traversal helpers --------------------
def descendants(forest: Forest, task_id: int) -> Set[int]:
    """All ids below task_id (task_id itself excluded)."""
    found: Set[int] = set()
    stack = list(forest.node(task_id).children)
    while stack:
        tid = stack.pop()
        if tid in found:
            continue
        found.add(tid)
        stack.extend(forest.nodes[tid].children)
    return found


def ancestors(forest: Forest, task_id: int) -> List[int]:
    """Parent chain of task_id, nearest first."""
    chain: List[int] = []
    parent = forest.node(task_id).parent_id
    while parent is not None and parent not in chain:
        chain.append(parent)
        parent = forest.nodes[parent].parent_id
    return chain


# -------------------- expansion state --------------------
class ExpansionState:
    """Expanded/collapsed flag per task id, kept across rebuilds.

    Ids never toggled are expanded. Entries for deleted tasks are harmless
    and are left in place.
    """

    def __init__(self, states: Optional[Mapping[int, bool]] = None):
        self._states: Dict[int, bool] = dict(states or {})

    def is_expanded(self, task_id: int) -> bool:
        return self._states.get(task_id, True)

    def set(self, task_id: int, expanded: bool) -> None:
        self._states[task_id] = expanded

    def expand(self, task_id: int) -> None:
        self._states[task_id] = True

    def collapse(self, task_id: int) -> None:
        self._states[task_id] = False

    def toggle(self, task_id: int) -> bool:
        new_state = not self.is_expanded(task_id)
        self._states[task_id] = new_state
        return new_state

    def expand_path(self, forest: Forest, task_id: int) -> List[int]:
        """Expand every collapsed ancestor of task_id; return the ones opened."""
        opened: List[int] = []
        for parent in ancestors(forest, task_id):
            if not self.is_expanded(parent):
                self._states[parent] = True
                opened.append(parent)
        return opened

    def collapse_all(self, forest: Forest) -> None:
        for tid, node in forest.nodes.items():
            if node.children:
                self._states[tid] = False

    def expand_all(self) -> None:
        self._states.clear()

    def snapshot(self) -> Dict[int, bool]:
        return dict(self._states)


# -------------------- flattening --------------------
def visibility_filter(show_completed: bool = True, show_hidden: bool = False) -> Optional[VisibilityFilter]:
    """Standard per-task predicate; None when nothing is filtered."""
    if show_completed and show_hidden:
        return None

    def _visible(task: Task) -> bool:
        if task.hidden and not show_hidden:
            return False
        if task.is_completed and not show_completed:
            return False
        return True

    return _visible


def flatten(forest: Forest,
            expansion: Optional[ExpansionState] = None,
            visibility: Optional[VisibilityFilter] = None) -> Iterator[VisibleNode]:
    """Pre-order walk yielding (id, depth) for every visible task.

    Children are entered only when the parent is expanded (expansion=None
    means everything is expanded). A task rejected by the filter hides its
    whole branch. Uses an explicit stack so deep chains are fine.
    """
    stack: List[Tuple[int, int]] = [(rid, 0) for rid in reversed(forest.roots)]
    while stack:
        tid, depth = stack.pop()
        if visibility is not None and not visibility(forest.records[tid]):
            continue
        yield VisibleNode(tid, depth)
        node = forest.nodes[tid]
        if node.children and (expansion is None or expansion.is_expanded(tid)):
            stack.extend((cid, depth + 1) for cid in reversed(node.children))


def tree_prefixes(lines: Sequence[VisibleNode]) -> List[str]:
    """Branch connectors for each flattened line (roots get '')."""
    prefixes = [''] * len(lines)
    # later_sibling[d]: a line at depth d follows before anything shallower
    later_sibling: List[bool] = []
    for i in range(len(lines) - 1, -1, -1):
        depth = lines[i].depth
        del later_sibling[depth + 1:]
        while len(later_sibling) <= depth:
            later_sibling.append(False)
        if depth > 0:
            cols = ''.join(PIPE if later_sibling[k] else BLANK for k in range(1, depth))
            prefixes[i] = cols + (TEE if later_sibling[depth] else ELBOW)
        later_sibling[depth] = True
    return prefixes
