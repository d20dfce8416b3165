# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from helpers import make_task
from models import NewTask, Task
from storage import Storage


@pytest.fixture()
def sample_records() -> list[Task]:
    """
    1 Build Web Application
      2 Frontend Development
        4 Setup React
        5 Add Styling
      3 Backend Development
        6 Create REST API
        7 Setup Database
    8 Water plants
    """
    return [
        make_task(1, None, 'Build Web Application', description='Main project'),
        make_task(2, 1, 'Frontend Development', description='UI and client-side logic'),
        make_task(3, 1, 'Backend Development', description='Server-side logic'),
        make_task(4, 2, 'Setup React', description='Initialize React project'),
        make_task(5, 2, 'Add Styling', description='CSS and design'),
        make_task(6, 3, 'Create REST API', description='Backend API endpoints'),
        make_task(7, 3, 'Setup Database', description='Configure database schema'),
        make_task(8, None, 'Water plants'),
    ]


@pytest.fixture()
def store(tmp_path: Path) -> Storage:
    return Storage(tmp_path / "tasks.json")


@pytest.fixture()
def filled_store(store: Storage) -> Storage:
    """Same shape as sample_records, created through the store (ids 1..8)."""
    root = store.create(NewTask('Build Web Application', 'Main project'))
    front = store.create(NewTask('Frontend Development', 'UI and client-side logic', parent_id=root))
    back = store.create(NewTask('Backend Development', 'Server-side logic', parent_id=root))
    store.create(NewTask('Setup React', 'Initialize React project', parent_id=front))
    store.create(NewTask('Add Styling', 'CSS and design', parent_id=front))
    store.create(NewTask('Create REST API', 'Backend API endpoints', parent_id=back))
    store.create(NewTask('Setup Database', 'Configure database schema', parent_id=back))
    store.create(NewTask('Water plants'))
    return store
