"""Command-line interface loop for the task tree.

Every command is a single line; the tree is cleared and redrawn after each
one. The store is written by each mutating command, so there is nothing to
flush on exit.
"""
import logging
from typing import Callable, Dict, List, Optional

from board import Board
from errors import TaskTreeError
from search import SearchMode

logger = logging.getLogger(__name__)

# ESC[3J (scrollback), ESC[H (home), ESC[2J (screen), ESC[H (home)
# Order (3J first) improves reliability in some terminals.
def _clear_screen() -> None:
    print("\033[3J\033[H\033[2J\033[H", end="", flush=True)


def _enter_alt_screen() -> None:
    print("\033[?1049h", end="", flush=True)


def _leave_alt_screen() -> None:
    print("\033[?1049l", end="", flush=True)


ROOT_ALIASES = {'root', '/', '-', '0'}

HELP_LINES = [
    "Commands:",
    "  add <title...>           Add a top-level task",
    "  sub <id> <title...>      Add a subtask under task <id>",
    "  rm <id>                  Remove a task after a y/n prompt (its subtasks move to the top level)",
    "  done <id>                Toggle completed",
    "  hide <id>                Toggle hidden",
    "  t <id>                   Expand/collapse a task",
    "  mv <id> <parent|root>    Move a task under another task or to the top level",
    "  mv <id>                  Show where a task can go, then ask for the parent",
    "  / <pattern>              Highlight tasks matching a regex (tree view)",
    "  find <pattern>           Search every task, listed flat",
    "  g <digits>               Goto by short id (last two digits)",
    "  n / p                    Next / previous match",
    "  ok                       Open the selected match in the editor",
    "  edit <id>                Open a task in $EDITOR",
    "  esc                      Clear search/goto",
    "  show done | show hidden  Toggle completed/hidden tasks in the tree",
    "  completed                List completed tasks, most recently completed first",
    "  view <id>                Show a task's details",
    "  e                        Edit the task being viewed",
    "  back                     Leave the completed list or detail view",
    "  help                     Show this help (press Enter to return)",
    "  exit                     Exit",
]


def _parse_id(raw: str) -> Optional[int]:
    raw = raw.rstrip('.')
    return int(raw) if raw.isdigit() else None


class CLI:
    def __init__(self, board: Board, alt_screen: bool = True, input_fn: Callable[[str], str] = input):
        self.board: Board = board
        self.alt_screen: bool = alt_screen
        self._input = input_fn
        self.message: Optional[str] = None
        self._commands: Dict[str, Callable[[List[str]], Optional[str]]] = {
            'add': self._cmd_add,
            'sub': self._cmd_sub,
            'rm': self._cmd_rm,
            'done': self._cmd_done,
            'hide': self._cmd_hide,
            't': self._cmd_toggle,
            'mv': self._cmd_mv,
            '/': self._cmd_search,
            'find': self._cmd_find,
            'g': self._cmd_goto,
            'n': self._cmd_next,
            'p': self._cmd_previous,
            'ok': self._cmd_ok,
            'edit': self._cmd_edit,
            'esc': self._cmd_esc,
            'show': self._cmd_show,
            'completed': self._cmd_completed,
            'view': self._cmd_view,
            'e': self._cmd_edit_viewed,
            'back': self._cmd_back,
        }

    def run(self) -> None:
        """Main REPL loop; the tree is cleared/redrawn each cycle."""
        exit_message: Optional[str] = None
        if self.alt_screen:
            _enter_alt_screen()
        try:
            while True:
                _clear_screen()
                self.board.display()
                if self.message:
                    print(f"\n{self.message}")
                    self.message = None
                line = self._input("\n: ").strip()
                if not line:
                    continue
                lower = line.lower()
                if lower == 'help':
                    _clear_screen()
                    print("\n".join(HELP_LINES))
                    self._input("\nPress Enter to return to the tree...")
                    continue
                if lower in ('exit', 'q', 'quit'):
                    exit_message = "Goodbye."
                    break
                self.message = self.handle_command(line)
        except (KeyboardInterrupt, EOFError):
            exit_message = "Interrupted. Goodbye."
        finally:
            if self.alt_screen:
                _leave_alt_screen()
            if exit_message:
                print(exit_message)

    # -------------------- command dispatch --------------------
    def handle_command(self, line: str) -> Optional[str]:
        """Run one command line and return the message to show (if any)."""
        if line.startswith('/') and not line.startswith('/ '):
            line = '/ ' + line[1:]
        tokens = line.split()
        if not tokens:
            return None
        handler = self._commands.get(tokens[0].lower())
        if handler is None:
            return "Unknown command. Type 'help' for instructions."
        try:
            return handler(tokens)
        except TaskTreeError as exc:
            logger.info("command %r failed: %s", line, exc)
            return str(exc)

    # ---- individual command helpers ----
    def _cmd_add(self, tokens: List[str]) -> Optional[str]:
        title = ' '.join(tokens[1:]).strip()
        if not title:
            title = self._input("Enter task title: ").strip()
        if not title:
            return "Title required."
        return self.board.add_task(title)

    def _cmd_sub(self, tokens: List[str]) -> Optional[str]:
        if len(tokens) < 3:
            return "Usage: sub <id> <title...>"
        parent = _parse_id(tokens[1])
        if parent is None:
            return "Invalid id."
        return self.board.add_task(' '.join(tokens[2:]), parent_id=parent)

    def _with_id(self, tokens: List[str], usage: str, action: Callable[[int], str]) -> str:
        if len(tokens) != 2:
            return usage
        tid = _parse_id(tokens[1])
        if tid is None:
            return "Invalid id."
        return action(tid)

    def _cmd_rm(self, tokens: List[str]) -> Optional[str]:
        return self._with_id(tokens, "Usage: rm <id>", self._confirm_remove)

    def _confirm_remove(self, tid: int) -> str:
        task = self.board.task(tid)
        children = self.board.forest.node(tid).children
        note = f" ({len(children)} subtask(s) will move to the top level)" if children else ""
        answer = self._input(f"Delete task {tid} \"{task.title}\"{note}? (y/n): ").strip().lower()
        if answer not in ('y', 'yes'):
            return "Delete cancelled."
        return self.board.remove_task(tid)

    def _cmd_done(self, tokens: List[str]) -> Optional[str]:
        return self._with_id(tokens, "Usage: done <id>", self.board.complete)

    def _cmd_hide(self, tokens: List[str]) -> Optional[str]:
        return self._with_id(tokens, "Usage: hide <id>", self.board.hide)

    def _cmd_toggle(self, tokens: List[str]) -> Optional[str]:
        return self._with_id(tokens, "Usage: t <id>", self.board.toggle)

    def _cmd_edit(self, tokens: List[str]) -> Optional[str]:
        return self._with_id(tokens, "Usage: edit <id>", self.board.edit)

    def _cmd_mv(self, tokens: List[str]) -> Optional[str]:
        if len(tokens) not in (2, 3):
            return "Usage: mv <id> <parent|root>"
        tid = _parse_id(tokens[1])
        if tid is None:
            return "Invalid id."
        if len(tokens) == 3:
            return self._finish_move(tid, tokens[2])
        destinations = self.board.begin_move(tid)
        _clear_screen()
        self.board.display()
        target = self._input(f"\nNew parent for {tid} ({len(destinations)} choices, 'root', or Enter to cancel): ").strip()
        if not target:
            self.board.cancel_move()
            return "Move cancelled."
        return self._finish_move(tid, target)

    def _finish_move(self, tid: int, target: str) -> str:
        if target.lower() in ROOT_ALIASES:
            return self.board.move_task(tid, None)
        parent = _parse_id(target)
        if parent is None:
            self.board.cancel_move()
            return "Invalid parent id."
        return self.board.move_task(tid, parent)

    def _cmd_search(self, tokens: List[str]) -> Optional[str]:
        pattern = ' '.join(tokens[1:])
        if not pattern:
            self.board.clear_matches()
            return None
        return self.board.find(pattern, SearchMode.VISIBLE)

    def _cmd_find(self, tokens: List[str]) -> Optional[str]:
        pattern = ' '.join(tokens[1:])
        if not pattern:
            return "Usage: find <pattern>"
        return self.board.find(pattern, SearchMode.ALL)

    def _cmd_goto(self, tokens: List[str]) -> Optional[str]:
        if len(tokens) != 2:
            return "Usage: g <digits>"
        return self.board.goto_digits(tokens[1])

    def _cmd_next(self, tokens: List[str]) -> Optional[str]:
        if self.board.next_match() is None:
            return "No matches."
        return None

    def _cmd_previous(self, tokens: List[str]) -> Optional[str]:
        if self.board.previous_match() is None:
            return "No matches."
        return None

    def _cmd_ok(self, tokens: List[str]) -> Optional[str]:
        selected = self.board.confirm_match()
        if selected is None:
            return "Nothing selected."
        return self.board.edit(selected)

    def _cmd_esc(self, tokens: List[str]) -> Optional[str]:
        self.board.clear_matches()
        self.board.cancel_move()
        self.board.show_tree()
        return None

    def _cmd_show(self, tokens: List[str]) -> Optional[str]:
        what = tokens[1].lower() if len(tokens) == 2 else ''
        if what in ('done', 'completed'):
            return self.board.toggle_show_completed()
        if what == 'hidden':
            return self.board.toggle_show_hidden()
        return "Usage: show done | show hidden"

    def _cmd_completed(self, tokens: List[str]) -> Optional[str]:
        return self.board.show_completed_page()

    def _cmd_view(self, tokens: List[str]) -> Optional[str]:
        return self._with_id(tokens, "Usage: view <id>", self.board.view_task)

    def _cmd_edit_viewed(self, tokens: List[str]) -> Optional[str]:
        return self.board.edit_viewed()

    def _cmd_back(self, tokens: List[str]) -> Optional[str]:
        self.board.close_page()
        return None
