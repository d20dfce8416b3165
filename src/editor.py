"""External editor bridge.

A task is handed to $EDITOR (via click.edit) as a small markdown document:

    # <title>

    ## Description
    <description or "(No description)">

    ## Metadata
    - **ID:** ...

Only the title and the description section are read back; the metadata
block is informational. The process blocks while the editor runs; the
caller re-reads the store and rebuilds afterwards.
"""
import logging
from typing import Callable, Optional, Tuple

import click

from models import Task

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "(No description)"
DESCRIPTION_HEADER = "## Description"
METADATA_HEADER = "## Metadata"

EditFn = Callable[[str], Optional[str]]


def to_markdown(task: Task) -> str:
    status = "✓ Completed" if task.is_completed else "○ Incomplete"
    lines = [
        f"# {task.title}",
        "",
        DESCRIPTION_HEADER,
        task.description if task.description.strip() else NO_DESCRIPTION,
        "",
        METADATA_HEADER,
        f"- **ID:** {task.id}",
        f"- **Status:** {status}",
        f"- **Created:** {task.created_at or '-'}",
    ]
    if task.due_by:
        lines.append(f"- **Due:** {task.due_by}")
    return "\n".join(lines) + "\n"


def parse_markdown(content: str) -> Tuple[str, str]:
    """Return (title, description) from an edited document."""
    title = ''
    description_lines = []
    in_description = False
    for line in content.splitlines():
        if line.startswith('# ') and not title:
            title = line[2:].strip()
        elif line.startswith(DESCRIPTION_HEADER):
            in_description = True
        elif line.startswith(METADATA_HEADER):
            in_description = False
        elif in_description and line.strip() != NO_DESCRIPTION:
            description_lines.append(line)
    return title, "\n".join(description_lines).strip()


def _click_edit(text: str) -> Optional[str]:
    return click.edit(text, extension='.md', require_save=True)


def edit_task(task: Task, edit: EditFn = _click_edit) -> Optional[Tuple[str, str]]:
    """Open task in the editor; return new (title, description) or None if unchanged.

    An edit that blanks the title is discarded.
    """
    edited = edit(to_markdown(task))
    if edited is None:
        logger.debug("editor closed without saving task %s", task.id)
        return None
    title, description = parse_markdown(edited)
    if not title:
        logger.warning("edited task %s has no title; keeping the old one", task.id)
        return None
    if title == task.title and description == task.description.strip():
        return None
    return title, description
