"""Reparenting with cycle prevention.

A task's descendants can never become its ancestor, so the candidate set
is every task except the source and its subtree. move() re-checks against
a fresh read of the store instead of trusting the caller's forest.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterator, Optional

from errors import CycleError, TaskNotFoundError
from tree import Forest, build, descendants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DestinationSet:
    """Legal new parents for source_id.

    current_parent is included in ids (when it resolves) and flagged so the
    renderer can emphasise it. root_allowed is False only when the source
    already is a root with no declared parent.
    """
    source_id: int
    ids: FrozenSet[int]
    current_parent: Optional[int]
    root_allowed: bool

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.ids

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self.ids))

    def __len__(self) -> int:
        return len(self.ids)

    def is_current(self, task_id: Optional[int]) -> bool:
        return task_id is not None and task_id == self.current_parent


def candidate_destinations(forest: Forest, source_id: int) -> DestinationSet:
    excluded = descendants(forest, source_id)  # raises TaskNotFoundError
    excluded.add(source_id)
    ids = frozenset(tid for tid in forest.nodes if tid not in excluded)
    return DestinationSet(
        source_id=source_id,
        ids=ids,
        current_parent=forest.nodes[source_id].parent_id,
        root_allowed=forest.records[source_id].parent_id is not None,
    )


def move(store, source_id: int, destination_id: Optional[int]) -> bool:
    """Reparent source_id under destination_id (None = root).

    Returns False when the task already sits there, True after a single
    store.update_parent call. Raises CycleError for the source itself or a
    descendant, TaskNotFoundError for unknown ids. The caller must rebuild
    its forest afterwards.
    """
    forest = build(store.load_all())
    if source_id not in forest:
        raise TaskNotFoundError(source_id)
    if destination_id is not None:
        if destination_id not in forest:
            raise TaskNotFoundError(destination_id)
        if destination_id == source_id or destination_id in descendants(forest, source_id):
            logger.info("rejected move of %s under %s: cycle", source_id, destination_id)
            raise CycleError(source_id, destination_id)
    if forest.records[source_id].parent_id == destination_id:
        return False
    store.update_parent(source_id, destination_id)
    logger.info("moved task %s under %s", source_id, destination_id if destination_id is not None else 'root')
    return True
