"""Runtime settings.

Priority: real environment variable > project .env file > default. The
.env file sits at the project root and uses KEY=VALUE lines; blank lines
and '#' comments are skipped.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from storage import DEFAULT_TASKS_FILE

logger = logging.getLogger(__name__)

ENV_FILE = Path(__file__).resolve().parent.parent / '.env'
DEFAULT_LOG_DIR = Path.home() / '.local' / 'state' / 'tasktree'


def read_env_file(path: Path = ENV_FILE) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if not path.exists():
        return values
    try:
        lines = path.read_text(encoding='utf-8').splitlines()
    except OSError as exc:
        logger.warning("cannot read %s: %s", path, exc)
        return values
    for line in lines:
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        k, v = line.split('=', 1)
        values[k.strip()] = v.strip().strip('"').strip("'")
    return values


_ENV_OVERRIDES = read_env_file()


def env_value(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key) or _ENV_OVERRIDES.get(key, default)


def truthy(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


@dataclass
class Settings:
    data_path: Path = DEFAULT_TASKS_FILE
    log_dir: Path = DEFAULT_LOG_DIR
    alt_screen: bool = True
    case_sensitive: bool = False
    show_completed: bool = True
    show_hidden: bool = False


def load_settings(data_path: Optional[Path] = None) -> Settings:
    """Build Settings from the environment; an explicit data_path wins."""
    raw_data = env_value('TASKTREE_DATA')
    raw_logs = env_value('TASKTREE_LOG_DIR')
    if data_path is None:
        data_path = Path(raw_data).expanduser() if raw_data else DEFAULT_TASKS_FILE
    return Settings(
        data_path=Path(data_path),
        log_dir=Path(raw_logs).expanduser() if raw_logs else DEFAULT_LOG_DIR,
        alt_screen=truthy(env_value('TASKTREE_ALT_SCREEN'), True),
        case_sensitive=truthy(env_value('TASKTREE_CASE_SENSITIVE'), False),
        show_completed=truthy(env_value('TASKTREE_SHOW_COMPLETED'), True),
        show_hidden=truthy(env_value('TASKTREE_SHOW_HIDDEN'), False),
    )
