from __future__ import annotations

import logging

import pytest
from click.testing import CliRunner

from board import Board, Page
from cli import CLI
from config import Settings
from helpers import make_task, write_store
from main import main
from storage import Storage


def scripted(*answers):
    replies = iter(answers)
    return lambda prompt='': next(replies)


@pytest.fixture()
def cli(filled_store) -> CLI:
    board = Board(filled_store, Settings(data_path=filled_store.path))
    return CLI(board, alt_screen=False, input_fn=scripted())


@pytest.mark.parametrize("line, expected", [
    ("add Buy milk", "Task 9 added."),
    ("sub 1 Deploy", "Task 9 added."),
    ("sub x Deploy", "Invalid id."),
    ("rm x", "Invalid id."),
    ("rm", "Usage: rm <id>"),
    ("done 99", "Task id 99 not found."),
    ("done 4", "Task 4 marked done."),
    ("hide 8", "Task 8 hidden."),
    ("t 2", "Task 2 collapsed."),
    ("mv 2 4", "Cannot move task 2 under its descendant 4."),
    ("mv 8 root", "Task 8 already there."),
    ("mv 4 3", "Task 4 moved under 3."),
    ("mv 4 x", "Invalid parent id."),
    ("/react", "1 match(es)."),
    ("find setup", "2 match(es)."),
    ("g 07", "1 match(es)."),
    ("g 123", 'Goto takes up to 2 digits, got "123".'),
    ("n", "No matches."),
    ("ok", "Nothing selected."),
    ("show hidden", "Hidden tasks shown."),
    ("show", "Usage: show done | show hidden"),
    ("completed", "0 completed task(s)."),
    ("view 4", "Viewing task 4."),
    ("view x", "Invalid id."),
    ("view 99", "Task id 99 not found."),
    ("e", "No task open; use view <id> first."),
    ("back", None),
    ("bogus", "Unknown command. Type 'help' for instructions."),
])
def test_commands(cli, line, expected):
    assert cli.handle_command(line) == expected


def test_sub_places_task_under_parent(cli):
    cli.handle_command("sub 1 Deploy")
    assert cli.board.forest.nodes[1].children == (2, 3, 9)


def test_interactive_move(filled_store, capsys):
    board = Board(filled_store, Settings(data_path=filled_store.path))
    cli = CLI(board, alt_screen=False, input_fn=scripted("root"))
    assert cli.handle_command("mv 6") == "Task 6 moved to the top level."
    assert board.forest.roots == (1, 6, 8)


def test_interactive_move_cancel(filled_store, capsys):
    board = Board(filled_store, Settings(data_path=filled_store.path))
    cli = CLI(board, alt_screen=False, input_fn=scripted(""))
    assert cli.handle_command("mv 6") == "Move cancelled."
    assert board.moving is None


def test_ok_opens_goto_match_in_editor(cli, monkeypatch):
    edited = {}

    def fake_edit(task_id):
        edited["id"] = task_id
        return f"Task {task_id} unchanged."

    monkeypatch.setattr(cli.board, "edit", fake_edit)
    cli.handle_command("g 5")
    assert cli.handle_command("ok") == "Task 5 unchanged."
    assert edited == {"id": 5}


def test_esc_clears_search(cli):
    cli.handle_command("/setup")
    cli.handle_command("esc")
    assert not cli.board.search.active


def test_run_loop_until_exit(filled_store, capsys):
    board = Board(filled_store, Settings(data_path=filled_store.path))
    CLI(board, alt_screen=False, input_fn=scripted("add Hello", "", "exit")).run()
    out = capsys.readouterr().out
    assert "Task 9 added." in out
    assert out.rstrip().endswith("Goodbye.")
    assert filled_store.get(9).title == "Hello"


def test_run_loop_handles_eof(filled_store, capsys):
    def eof(prompt=''):
        raise EOFError

    board = Board(filled_store, Settings(data_path=filled_store.path))
    CLI(board, alt_screen=False, input_fn=eof).run()
    assert "Interrupted. Goodbye." in capsys.readouterr().out


@pytest.fixture()
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_main_demo_populates_store(tmp_path, monkeypatch, restore_logging):
    monkeypatch.setenv("TASKTREE_LOG_DIR", str(tmp_path / "logs"))
    data = tmp_path / "demo.json"
    result = CliRunner().invoke(main, [str(data), "--demo"])
    assert result.exit_code == 0, result.output
    assert "Added 21 demo tasks" in result.output
    tasks = Storage(data).load_all()
    assert len(tasks) == 21
    assert sum(1 for t in tasks if t.is_completed) == 3
    assert (tmp_path / "logs" / "tasktree.log").exists()


def test_main_reports_corrupt_store(tmp_path, monkeypatch, restore_logging):
    monkeypatch.setenv("TASKTREE_LOG_DIR", str(tmp_path / "logs"))
    data = tmp_path / "bad.json"
    data.write_text("[]", encoding="utf-8")
    result = CliRunner().invoke(main, [str(data)])
    assert result.exit_code == 1
    assert "has no \"tasks\" list" in result.output


def test_bad_pattern_is_reported(cli):
    assert cli.handle_command("/ set(").startswith('Invalid search pattern "set(": missing )')


def test_rm_asks_for_confirmation(filled_store):
    board = Board(filled_store, Settings(data_path=filled_store.path))
    cli = CLI(board, alt_screen=False, input_fn=scripted("n", "y"))
    assert cli.handle_command("rm 2") == "Delete cancelled."
    assert 2 in board.forest
    assert cli.handle_command("rm 2") == "Task 2 removed; 2 subtask(s) moved to the top level."
    assert 2 not in board.forest


def test_commands_take_full_ids_past_99(tmp_path):
    store = Storage(write_store(tmp_path / "tasks.json", [make_task(n) for n in range(1, 108)]))
    board = Board(store)
    cli = CLI(board, alt_screen=False, input_fn=scripted("y"))
    assert cli.handle_command("g 07") == "2 match(es)."
    assert board.highlights() == frozenset({7, 107})
    assert cli.handle_command("rm 107") == "Task 107 removed."
    assert 7 in board.forest
    assert 107 not in board.forest


def test_view_then_edit_and_back(cli, monkeypatch):
    edited = {}

    def fake_edit(task_id, edit=None):
        edited["id"] = task_id
        return f"Task {task_id} unchanged."

    monkeypatch.setattr(cli.board, "edit", fake_edit)
    cli.handle_command("completed")
    cli.handle_command("view 6")
    assert cli.handle_command("e") == "Task 6 unchanged."
    assert edited == {"id": 6}
    cli.handle_command("back")
    assert cli.board.page is Page.COMPLETED
    cli.handle_command("esc")
    assert cli.board.page is Page.TREE
