"""Persistence for task records (JSON file).

File layout: {"next_id": int, "tasks": [record, ...]}. Ids are handed out
from next_id and never reused, even after deletes. Every mutation rewrites
the whole file through a temp file + os.replace so a crash never leaves a
half-written store behind.

The store checks that ids exist but knows nothing about the tree: cycle
checks live in move.py and orphans are handled by the tree builder.
"""
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from errors import StoreError, TaskNotFoundError
from models import NewTask, Task

logger = logging.getLogger(__name__)

DEFAULT_TASKS_FILE = Path.home() / '.local' / 'share' / 'tasktree' / 'tasks.json'

StoreData = Dict[str, Any]


def _now() -> str:
    return datetime.now().isoformat(timespec='seconds')


class Storage:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else DEFAULT_TASKS_FILE

    # -------------------- raw file access --------------------
    def _read(self) -> StoreData:
        """Load the JSON document; a missing file is an empty store."""
        if not self.path.exists():
            return {'next_id': 1, 'tasks': []}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise StoreError(f'Cannot read task file {self.path}: {exc}') from exc
        if not isinstance(data, dict) or not isinstance(data.get('tasks'), list):
            raise StoreError(f'Task file {self.path} has no "tasks" list.')
        return data

    def _write(self, next_id: int, tasks: List[Task]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + '.tmp')
        payload = {'next_id': next_id, 'tasks': [t.to_dict() for t in tasks]}
        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=4, ensure_ascii=False)
        os.replace(tmp, self.path)

    def _load(self) -> Tuple[int, List[Task]]:
        data = self._read()
        tasks: List[Task] = []
        for raw in data['tasks']:
            if not isinstance(raw, dict) or raw.get('id') is None:
                logger.warning("skipping task entry without id in %s", self.path)
                continue
            try:
                tasks.append(Task.from_dict(raw))
            except (TypeError, ValueError) as exc:
                logger.warning("skipping malformed task entry %r: %s", raw.get('id'), exc)
        highest = max((t.id for t in tasks), default=0)
        try:
            stored_next = int(data.get('next_id') or 1)
        except (TypeError, ValueError) as exc:
            raise StoreError(f'Task file {self.path} has an invalid "next_id": {data.get("next_id")!r}.') from exc
        next_id = max(stored_next, highest + 1)
        return next_id, tasks

    def _modify(self, task_id: int, change: Callable[[Task], None]) -> Task:
        next_id, tasks = self._load()
        task = _find(tasks, task_id)
        change(task)
        task.updated_at = _now()
        self._write(next_id, tasks)
        return task

    # -------------------- record store API --------------------
    def load_all(self) -> List[Task]:
        return self._load()[1]

    def get(self, task_id: int) -> Task:
        return _find(self.load_all(), task_id)

    def create(self, new_task: NewTask) -> int:
        next_id, tasks = self._load()
        if new_task.parent_id is not None:
            _find(tasks, new_task.parent_id)
        now = _now()
        task = Task(
            id=next_id,
            title=new_task.title,
            description=new_task.description,
            parent_id=new_task.parent_id,
            hidden=new_task.hidden,
            created_at=now,
            updated_at=now,
            due_by=new_task.due_by,
        )
        tasks.append(task)
        self._write(next_id + 1, tasks)
        logger.info("created task %s (parent %s)", task.id, task.parent_id)
        return task.id

    def update(self, task_id: int, title: str, description: str) -> None:
        def change(task: Task) -> None:
            task.title = title
            task.description = description
        self._modify(task_id, change)
        logger.info("updated task %s", task_id)

    def update_parent(self, task_id: int, parent_id: Optional[int]) -> None:
        if parent_id is not None:
            self.get(parent_id)

        def change(task: Task) -> None:
            task.parent_id = parent_id
        self._modify(task_id, change)

    def set_completed(self, task_id: int, completed: bool) -> None:
        def change(task: Task) -> None:
            if completed and not task.completed_at:
                task.completed_at = _now()
            elif not completed:
                task.completed_at = None
        self._modify(task_id, change)

    def toggle_completed(self, task_id: int) -> bool:
        def change(task: Task) -> None:
            task.completed_at = None if task.completed_at else _now()
        return self._modify(task_id, change).is_completed

    def toggle_hidden(self, task_id: int) -> bool:
        def change(task: Task) -> None:
            task.hidden = not task.hidden
        return self._modify(task_id, change).hidden

    def delete(self, task_id: int) -> None:
        """Remove one record. Its children keep their parent_id and surface as orphans."""
        next_id, tasks = self._load()
        task = _find(tasks, task_id)
        tasks.remove(task)
        self._write(next_id, tasks)
        logger.info("deleted task %s", task_id)


def _find(tasks: List[Task], task_id: int) -> Task:
    for task in tasks:
        if task.id == task_id:
            return task
    raise TaskNotFoundError(task_id)
