"""Main entry point for the terminal task tree.

    tasktree [DATA_PATH] [--demo] [--log-level LEVEL] [--no-alt-screen]

DATA_PATH overrides TASKTREE_DATA and the default under ~/.local/share.
--demo fills the store with sample trees and exits.
"""
import logging
from pathlib import Path
from typing import Optional

import click

from board import Board
from cli import CLI
from config import load_settings
from demo import populate
from errors import StoreError
from logging_setup import setup_logging
from storage import Storage

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


@click.command()
@click.argument('data_path', required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option('--demo', is_flag=True, help='Add sample task trees to the store and exit.')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), default='DEBUG',
              show_default=True, help='Level for the log file.')
@click.option('--alt-screen/--no-alt-screen', default=None, help='Use the terminal alternate screen.')
def main(data_path: Optional[Path], demo: bool, log_level: str, alt_screen: Optional[bool]) -> None:
    """Terminal task manager with nested tasks."""
    settings = load_settings(data_path)
    log_file = setup_logging(log_dir=settings.log_dir, file_level=getattr(logging, log_level.upper()))
    logger.info("starting; data=%s log=%s", settings.data_path, log_file)
    store = Storage(settings.data_path)
    if demo:
        created = populate(store)
        click.echo(f"Added {len(created)} demo tasks to {settings.data_path}.")
        return
    try:
        board = Board(store, settings)
    except StoreError as exc:
        raise click.ClickException(str(exc)) from exc
    CLI(board, alt_screen=settings.alt_screen if alt_screen is None else alt_screen).run()


if __name__ == "__main__":
    main()
