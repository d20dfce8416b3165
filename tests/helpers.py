from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from models import Task


def make_task(tid: int, parent: Optional[int] = None, title: str = '', **kw) -> Task:
    return Task(id=tid, title=title or f'task {tid}', parent_id=parent, **kw)


def assert_acyclic(records: List[Task]) -> None:
    """Walk every parent chain and fail on a repeat."""
    parents: Dict[int, Optional[int]] = {t.id: t.parent_id for t in records}
    for tid in parents:
        seen = {tid}
        current = parents[tid]
        while current is not None and current in parents:
            assert current not in seen, f"cycle through {tid}"
            seen.add(current)
            current = parents[current]


def write_store(path: Path, records: List[Task]) -> Path:
    """Write records straight to a task file, bypassing Storage."""
    next_id = max((t.id for t in records), default=0) + 1
    payload = {'next_id': next_id, 'tasks': [t.to_dict() for t in records]}
    path.write_text(json.dumps(payload), encoding='utf-8')
    return path
