"""Exception types raised by the task tree engine and the record store.

Nothing here is fatal: callers catch TaskTreeError, show the message and keep
the previous state. Orphaned parents are logged by the tree builder and never
raised.
"""
from typing import Optional


class TaskTreeError(Exception):
    """Base class for recoverable task tree failures."""


class TaskNotFoundError(TaskTreeError, LookupError):
    def __init__(self, task_id: int):
        super().__init__(f'Task id {task_id} not found.')
        self.task_id = task_id


class CycleError(TaskTreeError):
    """A move would make a task its own ancestor."""

    def __init__(self, source_id: int, destination_id: int):
        if source_id == destination_id:
            msg = f'Cannot move task {source_id} under itself.'
        else:
            msg = f'Cannot move task {source_id} under its descendant {destination_id}.'
        super().__init__(msg)
        self.source_id = source_id
        self.destination_id = destination_id


class PatternError(TaskTreeError):
    """Search expression failed to compile; the previous search stays active."""

    def __init__(self, pattern: str, reason: Optional[str] = None):
        msg = f'Invalid search pattern "{pattern}"'
        if reason:
            msg += f': {reason}'
        super().__init__(msg)
        self.pattern = pattern
        self.reason = reason


class StoreError(TaskTreeError):
    """The task file could not be read or parsed."""
