"""Data models for the terminal task tree.

Timestamps are ISO strings, as written by the store. A task is completed
when completed_at is set; there is no separate flag on disk. parent_id of
None means the task is a root.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Mapping, Optional

TRUE_WORDS = {'1', 'true', 'yes', 'on'}


def _flag(value: Any) -> bool:
    """Stored booleans may come back as strings from hand-edited files."""
    if isinstance(value, str):
        return value.strip().lower() in TRUE_WORDS
    return bool(value)


@dataclass
class Task:
    """A single persisted task record.

    Fields:
        id: Integer id assigned by the store; never reused.
        title: Short, single-line title.
        description: Free text, may span several lines.
        parent_id: Id of the parent task, or None for a root.
        completed_at: ISO timestamp when completed (None while open).
        hidden: Explicitly hidden from the default tree view.
        created_at / updated_at: ISO timestamps maintained by the store.
        due_by: Optional ISO due date, shown but not interpreted.
    """
    id: int
    title: str
    description: str = ''
    parent_id: Optional[int] = None
    completed_at: Optional[str] = None
    hidden: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    due_by: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> 'Task':
        parent = raw.get('parent_id')
        return cls(
            id=int(raw['id']),
            title=str(raw.get('title') or ''),
            description=str(raw.get('description') or ''),
            parent_id=int(parent) if parent is not None else None,
            completed_at=raw.get('completed_at'),
            hidden=_flag(raw.get('hidden')),
            created_at=raw.get('created_at'),
            updated_at=raw.get('updated_at'),
            due_by=raw.get('due_by'),
        )

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"Task(id={self.id}, title={self.title}, parent_id={self.parent_id})"


@dataclass
class NewTask:
    """Input to Storage.create; the store assigns id and timestamps."""
    title: str
    description: str = ''
    parent_id: Optional[int] = None
    due_by: Optional[str] = None
    hidden: bool = field(default=False)
