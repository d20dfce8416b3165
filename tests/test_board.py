from __future__ import annotations

import re

import pytest

from board import Board, Page
from config import Settings
from helpers import make_task, write_store
from search import SearchMode
from storage import Storage

ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def plain(lines):
    return [ANSI_RE.sub("", line) for line in lines]


@pytest.fixture()
def board(filled_store) -> Board:
    return Board(filled_store, Settings(data_path=filled_store.path))


def test_render_draws_tree(board):
    lines = plain(board.render(width=80))
    assert " 1 [ ] ▼ Build Web Application" in lines
    assert "├──  2 [ ] ▼ Frontend Development" in lines
    assert "│   ├──  4 [ ] Setup React" in lines
    assert "    └──  7 [ ] Setup Database" in lines
    assert " 8 [ ] Water plants" in lines


def test_render_empty_store(store):
    lines = plain(Board(store).render())
    assert "(empty)" in lines


def test_toggle_collapses_branch(board):
    assert board.toggle(2) == "Task 2 collapsed."
    assert board.visible_ids() == [1, 2, 3, 6, 7, 8]
    assert "├──  2 [ ] ▶ Frontend Development" in plain(board.render())
    assert board.toggle(4) == "Task 4 has no subtasks."


def test_complete_and_filters(board):
    board.complete(3)
    assert "[✓]" in "".join(plain(board.render()))
    board.toggle_show_completed()
    assert board.visible_ids() == [1, 2, 4, 5, 8]
    board.hide(8)
    assert 8 not in board.visible_ids()
    board.toggle_show_hidden()
    assert 8 in board.visible_ids()


def test_add_subtask_and_remove(board):
    assert board.add_task("Write tests", parent_id=5) == "Task 9 added."
    assert board.forest.nodes[5].children == (9,)
    assert board.add_task("x", parent_id=77) == "Task id 77 not found."
    msg = board.remove_task(2)
    assert "2 subtask(s)" in msg
    assert board.forest.roots == (1, 4, 5, 8)


def test_find_expands_collapsed_ancestors(board):
    board.toggle(1)
    assert board.visible_ids() == [1, 8]
    assert board.find("database") == "1 match(es)."
    assert board.cursor == 7
    assert 7 in board.visible_ids()
    assert board.highlights() == frozenset({7})


def test_find_invalid_pattern_keeps_previous(board):
    board.find("setup")
    assert board.find("set(").startswith('Invalid search pattern "set("')
    assert board.search.state.matches == (4, 7)


def test_find_all_mode_lists_results(board):
    board.hide(3)
    board.find("setup", SearchMode.ALL)
    assert board.search.state.matches == (4, 7)
    lines = plain(board.render())
    assert "Search results (2 found)" in lines
    board.find("setup", SearchMode.VISIBLE)
    assert board.search.state.matches == (4,)


def test_search_survives_rebuild(board):
    board.find("setup")
    board.next_match()
    board.add_task("Setup CI")
    assert board.search.state.matches == (4, 7, 9)
    assert board.search.current() == 7


def test_goto_uses_visible_order(board):
    board.toggle(3)
    assert board.goto_digits("7") == "No matches."
    board.toggle(3)
    assert board.goto_digits("7") == "1 match(es)."
    assert board.confirm_match() == 7
    assert not board.goto.active
    assert board.goto_digits("abc").startswith("Goto takes up to")


def test_next_match_prefers_goto(board):
    board.find("setup")
    board.goto_digits("8")
    assert not board.search.active
    assert board.next_match() == 8


def test_move_flow(board):
    dest = board.begin_move(8)
    assert 3 in dest
    assert "Moving task 8" in plain(board.render())[-1]
    assert board.move_task(8, 3) == "Task 8 moved under 3."
    assert board.moving is None
    assert board.forest.nodes[3].children == (6, 7, 8)
    assert board.move_task(8, 3) == "Task 8 already there."


def test_move_into_descendant_is_refused(board):
    board.begin_move(2)
    assert board.move_task(2, 4) == "Cannot move task 2 under its descendant 4."
    assert board.moving is not None
    assert board.forest.nodes[4].parent_id == 2


def test_edit_updates_store(board):
    msg = board.edit(4, edit=lambda text: text.replace("# Setup React", "# Setup React 18"))
    assert msg == "Task 4 updated."
    assert board.task(4).title == "Setup React 18"
    assert board.edit(4, edit=lambda text: None) == "Task 4 unchanged."


def test_str_counts(board):
    board.complete(4)
    assert str(board) == "Tasks: 8, Done: 1, Hidden: 0"


def test_bad_pattern_keeps_active_goto(board):
    board.goto_digits("4")
    assert board.find("(").startswith('Invalid search pattern "("')
    assert board.goto.state.matches == (4,)
    assert board.highlights() == frozenset({4})


def test_bad_goto_keeps_active_search(board):
    board.find("setup")
    assert board.goto_digits("abc").startswith("Goto takes up to")
    assert board.search.state.matches == (4, 7)


def test_tree_shows_full_ids_past_99(tmp_path):
    store = Storage(write_store(tmp_path / "tasks.json", [make_task(n) for n in range(1, 108)]))
    lines = plain(Board(store).render(width=80))
    assert "  7 [ ] task 7" in lines
    assert "107 [ ] task 107" in lines


def test_completed_page_lists_most_recent_first(tmp_path):
    records = [
        make_task(1, title="Plan", completed_at="2024-03-01T09:00:00", created_at="2024-02-01T08:00:00"),
        make_task(2, 1, "Build", completed_at="2024-03-05T17:30:00", created_at="2024-02-02T08:00:00"),
        make_task(3, 1, "Ship"),
    ]
    board = Board(Storage(write_store(tmp_path / "tasks.json", records)))
    assert [t.id for t in board.completed_tasks()] == [2, 1]
    assert board.show_completed_page() == "2 completed task(s)."
    lines = plain(board.render(width=120))
    assert lines[0] == "All completed tasks (2 total)"
    assert lines[2] == " 2 [✓] Build | Created: 02/02 08:00 | Completed: 03/05 17:30 | Parent: #1 Plan"
    assert lines[3].endswith("Parent: none (top level)")


def test_reopen_from_completed_page(board):
    board.complete(4)
    board.show_completed_page()
    assert board.complete(4) == "Task 4 marked open."
    assert board.completed_tasks() == []
    assert "(none)" in plain(board.render())


def test_detail_view_and_back(tmp_path):
    records = [make_task(1, title="Plan"),
               make_task(2, 1, "Build", description="step one\nstep two", due_by="2024-04-01",
                         created_at="2024-02-02T08:00:00")]
    board = Board(Storage(write_store(tmp_path / "tasks.json", records)))
    assert board.view_task(2) == "Viewing task 2."
    lines = plain(board.render())
    assert lines[0] == "Task #2 | Status: ○ Incomplete"
    assert "Title: Build" in lines
    assert "Created: Friday, February 02, 2024 at 08:00 AM" in lines
    assert "Due: 2024-04-01" in lines
    assert "Parent: #1 Plan" in lines
    assert lines[lines.index("Description") + 1:][:2] == ["step one", "step two"]
    board.close_page()
    assert board.page is Page.TREE
    assert plain(board.render())[0] == "Tasks (not showing: hidden)"


def test_detail_returns_to_completed_page(board):
    board.complete(5)
    board.show_completed_page()
    board.view_task(5)
    board.close_page()
    assert board.page is Page.COMPLETED
    board.close_page()
    assert board.page is Page.TREE


def test_edit_viewed_task(board):
    assert board.edit_viewed() == "No task open; use view <id> first."
    board.view_task(8)
    msg = board.edit_viewed(edit=lambda text: text.replace("# Water plants", "# Water the plants"))
    assert msg == "Task 8 updated."
    assert board.task(8).title == "Water the plants"


def test_removing_viewed_task_leaves_detail(board):
    board.view_task(8)
    board.remove_task(8)
    assert board.page is Page.TREE
    assert board.viewing is None
