"""Board: ties the record store to the tree engine and renders the tree.

Every mutation goes to the store first and is followed by refresh(), which
rebuilds the forest from scratch. Expansion, search and goto state live on
the board and survive rebuilds. Operations return a short user-facing
message string; recoverable engine errors are turned into messages here.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
import logging, shutil

import click

from config import Settings
from editor import NO_DESCRIPTION, EditFn, edit_task
from errors import CycleError, PatternError, TaskNotFoundError
from goto import GotoEngine
from models import NewTask, Task
from move import DestinationSet, candidate_destinations, move
from search import SearchEngine, SearchMode, searchable_nodes
from storage import Storage
from theme import (color, BOLD, BRANCH_COLOR, CURRENT_PARENT_COLOR, CURSOR_STYLE, DIM, DONE_COLOR,
                   EMPTY_COLOR, HEADER_COLOR, HIDDEN_COLOR, ID_COLOR, MATCH_COLOR, MOVE_COLOR)
from tree import ExpansionState, Forest, VisibleNode, build, flatten, tree_prefixes, visibility_filter

logger = logging.getLogger(__name__)

DONE_MARK = "[✓]"
OPEN_MARK = "[ ]"
EXPANDED_MARK = "▼ "
COLLAPSED_MARK = "▶ "
MIN_TITLE_WIDTH = 10
SHORT_TIME = "%m/%d %H:%M"
LONG_TIME = "%A, %B %d, %Y at %I:%M %p"


class Page(Enum):
    TREE = "tree"
    COMPLETED = "completed"
    DETAIL = "detail"


class Board:
    def __init__(self, store: Storage, settings: Optional[Settings] = None,
                 expansion: Optional[ExpansionState] = None):
        settings = settings or Settings()
        self.store = store
        self.expansion = expansion if expansion is not None else ExpansionState()
        self.show_completed: bool = settings.show_completed
        self.show_hidden: bool = settings.show_hidden
        self.search = SearchEngine(case_sensitive=settings.case_sensitive)
        self.search_mode = SearchMode.VISIBLE
        self.goto = GotoEngine()
        self.moving: Optional[DestinationSet] = None
        self.cursor: Optional[int] = None
        self.page = Page.TREE
        self.viewing: Optional[int] = None
        self._return_page = Page.TREE
        self.forest: Forest = build([])
        self.refresh()

    # -------------------- rebuild --------------------
    def refresh(self) -> None:
        """Re-read the store and rebuild; re-run any active search/goto."""
        self.forest = build(self.store.load_all())
        if self.moving is not None:
            if self.moving.source_id in self.forest:
                self.moving = candidate_destinations(self.forest, self.moving.source_id)
            else:
                self.moving = None
        if self.search.active:
            # the pattern compiled before, so this cannot raise
            self.search.search(self.search.state.pattern, self._search_nodes())
        if self.goto.active:
            self.goto.refresh(self.visible_ids())
        if self.cursor not in self.forest:
            self.cursor = None
        if self.viewing is not None and self.viewing not in self.forest:
            self.viewing = None
            if self.page is Page.DETAIL:
                self.page = self._return_page

    # -------------------- queries --------------------
    def visibility(self):
        return visibility_filter(self.show_completed, self.show_hidden)

    def visible(self) -> List[VisibleNode]:
        return list(flatten(self.forest, self.expansion, self.visibility()))

    def visible_ids(self) -> List[int]:
        return [line.id for line in flatten(self.forest, self.expansion, self.visibility())]

    def task(self, task_id: int) -> Task:
        return self.forest.record(task_id)

    def _search_nodes(self):
        return searchable_nodes(self.forest, self.search_mode, self.visibility())

    # -------------------- task operations --------------------
    def add_task(self, title: str, parent_id: Optional[int] = None, description: str = '') -> str:
        if parent_id is not None and parent_id not in self.forest:
            return f'Task id {parent_id} not found.'
        new_id = self.store.create(NewTask(title=title, description=description, parent_id=parent_id))
        if parent_id is not None:
            self.expansion.expand(parent_id)
        self.refresh()
        self.cursor = new_id
        return f'Task {new_id} added.'

    def complete(self, task_id: int) -> str:
        done = self.store.toggle_completed(task_id)
        self.refresh()
        return f'Task {task_id} marked {"done" if done else "open"}.'

    def hide(self, task_id: int) -> str:
        hidden = self.store.toggle_hidden(task_id)
        self.refresh()
        return f'Task {task_id} {"hidden" if hidden else "unhidden"}.'

    def remove_task(self, task_id: int) -> str:
        children = self.forest.node(task_id).children
        self.store.delete(task_id)
        self.refresh()
        if children:
            return f'Task {task_id} removed; {len(children)} subtask(s) moved to the top level.'
        return f'Task {task_id} removed.'

    def edit(self, task_id: int, edit: Optional[EditFn] = None) -> str:
        """Run the external editor on a task and store the result."""
        task = self.task(task_id)
        try:
            result = edit_task(task, edit) if edit is not None else edit_task(task)
        except click.ClickException as exc:
            return f'Editor error: {exc.format_message()}'
        if result is None:
            return f'Task {task_id} unchanged.'
        title, description = result
        self.store.update(task_id, title, description)
        self.refresh()
        return f'Task {task_id} updated.'

    def toggle(self, task_id: int) -> str:
        node = self.forest.node(task_id)
        if not node.has_children:
            return f'Task {task_id} has no subtasks.'
        expanded = self.expansion.toggle(task_id)
        if self.goto.active:
            self.goto.refresh(self.visible_ids())
        return f'Task {task_id} {"expanded" if expanded else "collapsed"}.'

    def toggle_show_completed(self) -> str:
        self.show_completed = not self.show_completed
        self.refresh()
        return f'Completed tasks {"shown" if self.show_completed else "hidden"}.'

    def toggle_show_hidden(self) -> str:
        self.show_hidden = not self.show_hidden
        self.refresh()
        return f'Hidden tasks {"shown" if self.show_hidden else "hidden"}.'

    # -------------------- pages --------------------
    def completed_tasks(self) -> List[Task]:
        """Every completed task, most recently completed first."""
        done = [t for t in self.forest.records.values() if t.is_completed]
        return sorted(done, key=lambda t: (t.completed_at or '', t.id), reverse=True)

    def show_completed_page(self) -> str:
        self.page = Page.COMPLETED
        self.viewing = None
        self._return_page = Page.TREE
        return f'{len(self.completed_tasks())} completed task(s).'

    def view_task(self, task_id: int) -> str:
        self.task(task_id)
        if self.page is not Page.DETAIL:
            self._return_page = self.page
        self.page = Page.DETAIL
        self.viewing = task_id
        self.cursor = task_id
        return f'Viewing task {task_id}.'

    def edit_viewed(self, edit: Optional[EditFn] = None) -> str:
        if self.page is not Page.DETAIL or self.viewing is None:
            return 'No task open; use view <id> first.'
        return self.edit(self.viewing, edit)

    def close_page(self) -> None:
        """Detail goes back to the page it was opened from; anything else to the tree."""
        if self.page is Page.DETAIL and self._return_page is not Page.TREE:
            self.page = self._return_page
            self.viewing = None
            self._return_page = Page.TREE
        else:
            self.show_tree()

    def show_tree(self) -> None:
        self.page = Page.TREE
        self.viewing = None
        self._return_page = Page.TREE

    # -------------------- move --------------------
    def begin_move(self, task_id: int) -> DestinationSet:
        self.moving = candidate_destinations(self.forest, task_id)
        self.show_tree()
        return self.moving

    def cancel_move(self) -> None:
        self.moving = None

    def move_task(self, task_id: int, destination: Optional[int]) -> str:
        try:
            moved = move(self.store, task_id, destination)
        except (CycleError, TaskNotFoundError) as exc:
            return str(exc)
        self.moving = None
        if not moved:
            return f'Task {task_id} already there.'
        if destination is not None:
            self.expansion.expand(destination)
        self.refresh()
        self.cursor = task_id
        where = f'under {destination}' if destination is not None else 'to the top level'
        return f'Task {task_id} moved {where}.'

    # -------------------- search / goto --------------------
    def find(self, pattern: str, mode: SearchMode = SearchMode.VISIBLE) -> str:
        previous_mode = self.search_mode
        self.search_mode = mode
        try:
            state = self.search.search(pattern, self._search_nodes())
        except PatternError as exc:
            self.search_mode = previous_mode
            return str(exc)
        self.goto.cancel()
        self.show_tree()
        self._jump(state.current())
        if not state.matches:
            return 'No matches.'
        return f'{len(state.matches)} match(es).'

    def goto_digits(self, digits: str) -> str:
        try:
            state = self.goto.goto(digits, self.visible_ids())
        except ValueError as exc:
            return str(exc)
        self.search.clear()
        self.show_tree()
        self._jump(state.current())
        if not state.matches:
            return 'No matches.'
        return f'{len(state.matches)} match(es).'

    def next_match(self) -> Optional[int]:
        engine = self.goto if self.goto.active else self.search
        return self._jump(engine.next())

    def previous_match(self) -> Optional[int]:
        engine = self.goto if self.goto.active else self.search
        return self._jump(engine.previous())

    def confirm_match(self) -> Optional[int]:
        """Selected goto/search match, clearing goto; None when nothing is selected."""
        if self.goto.active:
            return self.goto.confirm()
        return self.search.current()

    def clear_matches(self) -> None:
        self.search.clear()
        self.goto.cancel()
        self.search_mode = SearchMode.VISIBLE

    def highlights(self) -> frozenset:
        if self.goto.active:
            return self.goto.state.highlights
        return self.search.state.highlights

    def _jump(self, task_id: Optional[int]) -> Optional[int]:
        if task_id is None:
            return None
        opened = self.expansion.expand_path(self.forest, task_id)
        if opened:
            logger.debug("expanded %s to reveal task %s", opened, task_id)
        self.cursor = task_id
        return task_id

    # -------------------- display --------------------
    def display(self) -> None:
        width = shutil.get_terminal_size((120, 30)).columns
        for line in self.render(width):
            print(line)

    def render(self, width: int = 120) -> List[str]:
        if self.page is Page.COMPLETED:
            return self._render_completed(width)
        if self.page is Page.DETAIL and self.viewing is not None:
            return self._render_detail(width)
        out: List[str] = [color('Tasks', HEADER_COLOR, BOLD) + self._filter_note()]
        out.append(color('-' * min(width, 60), HEADER_COLOR))
        lines = self.visible()
        if not lines:
            out.append(color('(empty)', EMPTY_COLOR))
        highlights = self.highlights()
        id_width = _id_width(self.forest.records)
        for line, prefix in zip(lines, tree_prefixes(lines)):
            out.append(self._render_line(line, prefix, highlights, width, id_width))
        if self.search.active and self.search_mode is SearchMode.ALL:
            out.extend(self._render_results(width))
        status = self._status_line()
        if status:
            out.append('')
            out.append(status)
        return out

    def _render_line(self, line: VisibleNode, prefix: str, highlights: frozenset, width: int,
                     id_width: int = 2) -> str:
        task = self.forest.records[line.id]
        node = self.forest.nodes[line.id]
        status = DONE_MARK if task.is_completed else OPEN_MARK
        marker = ''
        if node.has_children:
            marker = EXPANDED_MARK if self.expansion.is_expanded(line.id) else COLLAPSED_MARK
        tid = f"{task.id:>{id_width}}"
        head_visible = f"{prefix}{tid} {status} {marker}"
        title = _truncate(task.title or '<untitled>', max(MIN_TITLE_WIDTH, width - len(head_visible)))
        head = color(prefix, BRANCH_COLOR) + color(tid, ID_COLOR) + f" {status} {marker}"
        return head + color(title, *self._title_styles(task, highlights))

    def _title_styles(self, task: Task, highlights: frozenset) -> Tuple[str, ...]:
        styles: List[str] = []
        if task.is_completed:
            styles.append(DONE_COLOR)
        if task.hidden:
            styles.append(HIDDEN_COLOR)
        if self.moving is not None:
            if task.id == self.moving.source_id:
                styles.append(DIM)
            elif self.moving.is_current(task.id):
                styles.append(CURRENT_PARENT_COLOR)
            elif task.id in self.moving:
                styles.append(MOVE_COLOR)
        if task.id in highlights:
            styles.append(MATCH_COLOR)
        if task.id == self.cursor:
            styles.append(CURSOR_STYLE)
        return tuple(styles)

    def _render_results(self, width: int) -> List[str]:
        """Flat list of 'search all' matches, full ids."""
        state = self.search.state
        out = ['', color(f'Search results ({len(state.matches)} found)', HEADER_COLOR, BOLD)]
        for tid in state.matches:
            task = self.forest.records[tid]
            label = f"{tid:>4}. "
            text = _truncate(task.title, max(MIN_TITLE_WIDTH, width - len(label)))
            styles = [MATCH_COLOR, CURSOR_STYLE] if tid == state.current() else [MATCH_COLOR]
            out.append(color(label, ID_COLOR) + color(text, *styles))
        return out

    def _render_completed(self, width: int) -> List[str]:
        tasks = self.completed_tasks()
        out = [color(f'All completed tasks ({len(tasks)} total)', HEADER_COLOR, BOLD),
               color('-' * min(width, 60), HEADER_COLOR)]
        if not tasks:
            out.append(color('(none)', EMPTY_COLOR))
        id_width = _id_width(t.id for t in tasks)
        for task in tasks:
            head = f"{task.id:>{id_width}} {DONE_MARK} "
            meta = (f" | Created: {_format_time(task.created_at, SHORT_TIME)}"
                    f" | Completed: {_format_time(task.completed_at, SHORT_TIME)}"
                    f" | Parent: {self._parent_label(task)}")
            title = _truncate(task.title or '<untitled>', max(MIN_TITLE_WIDTH, width - len(head) - len(meta)))
            styles = [DONE_COLOR, CURSOR_STYLE] if task.id == self.cursor else [DONE_COLOR]
            out.append(color(head, ID_COLOR) + color(title, *styles) + color(meta, DIM))
        out.append('')
        out.append('done <id>: reopen | view <id>: details | back: tree')
        return out

    def _render_detail(self, width: int) -> List[str]:
        task = self.task(self.viewing)
        status = '✓ Completed' if task.is_completed else '○ Incomplete'
        out = [color(f'Task #{task.id} | Status: {status}', HEADER_COLOR, BOLD),
               color('-' * min(width, 60), HEADER_COLOR),
               f'Title: {task.title or "<untitled>"}',
               f'Created: {_format_time(task.created_at, LONG_TIME)}']
        if task.completed_at:
            out.append(f'Completed: {_format_time(task.completed_at, LONG_TIME)}')
        else:
            out.append('Still pending')
        if task.due_by:
            out.append(f'Due: {task.due_by}')
        out.append(f'Parent: {self._parent_label(task)}')
        out.append('')
        out.append(color('Description', HEADER_COLOR, BOLD))
        if task.description.strip():
            out.extend(task.description.splitlines())
        else:
            out.append(color(NO_DESCRIPTION, DIM))
        out.append('')
        out.append('e: edit | back: return')
        return out

    def _parent_label(self, task: Task) -> str:
        if task.parent_id is None:
            return 'none (top level)'
        parent = self.forest.records.get(task.parent_id)
        if parent is None:
            return f'#{task.parent_id} (not found)'
        return f'#{task.parent_id} {parent.title}'

    def _filter_note(self) -> str:
        hidden: List[str] = []
        if not self.show_completed:
            hidden.append('completed')
        if not self.show_hidden:
            hidden.append('hidden')
        return color(f" (not showing: {', '.join(hidden)})", DIM) if hidden else ''

    def _status_line(self) -> str:
        if self.moving is not None:
            root = 'root allowed' if self.moving.root_allowed else 'already at root'
            return f'Moving task {self.moving.source_id}: {len(self.moving)} possible parent(s), {root}.'
        if self.goto.active:
            return _position('Goto ' + self.goto.state.digits, self.goto.state.index, len(self.goto.state))
        if self.search.active:
            return _position(f'Search /{self.search.state.pattern}/', self.search.state.index,
                             len(self.search.state))
        return ''

    def counts(self) -> Dict[str, int]:
        records = self.forest.records.values()
        return {
            'total': len(self.forest),
            'done': sum(1 for t in records if t.is_completed),
            'hidden': sum(1 for t in records if t.hidden),
        }

    def __str__(self) -> str:
        c = self.counts()
        return f'Tasks: {c["total"]}, Done: {c["done"]}, Hidden: {c["hidden"]}'


def _position(label: str, index: Optional[int], total: int) -> str:
    if index is None:
        return f'{label} - no matches'
    return f'{label} - {index + 1}/{total}'


def _id_width(ids: Iterable[int]) -> int:
    return max(2, len(str(max(ids, default=0))))


def _format_time(stamp: Optional[str], fmt: str) -> str:
    if not stamp:
        return 'unknown'
    try:
        return datetime.fromisoformat(stamp).strftime(fmt)
    except ValueError:
        return stamp


def _truncate(text: str, limit: int) -> str:
    text = text.splitlines()[0] if text else text
    if len(text) <= limit:
        return text
    return text[:max(1, limit - 1)] + '…'
