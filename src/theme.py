"""Terminal styling for the tree view.

Colour is off when stdout is not a terminal (FORCE_COLOR=1 turns it back
on) and whenever NO_COLOR is set. With COLORTERM=truecolor/24bit the palette
is emitted as 24-bit colour, otherwise it is squeezed into the xterm
256-colour cube. Each palette slot can be overridden with a hex value in the
environment or the project .env file, e.g. TASKTREE_MATCH=#FFAA00.
"""
from __future__ import annotations
import os, sys
from typing import Tuple

from config import env_value, truthy

HEX_DIGITS = '0123456789abcdefABCDEF'

_FORCE = truthy(os.environ.get("FORCE_COLOR"), False)
_NO_COLOR = "NO_COLOR" in os.environ
_ENABLE = (_FORCE or sys.stdout.isatty()) and not _NO_COLOR
_TRUECOLOR = _ENABLE and os.environ.get("COLORTERM", "").lower() in {"truecolor", "24bit"}


def _sgr(*params: object) -> str:
    if not _ENABLE:
        return ''
    return "\033[" + ';'.join(str(p) for p in params) + "m"


def _rgb(hex_code: str) -> Tuple[int, int, int]:
    h = hex_code.lstrip('#')
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def _foreground(hex_code: str) -> str:
    r, g, b = _rgb(hex_code)
    if _TRUECOLOR:
        return _sgr(38, 2, r, g, b)
    # 6x6x6 cube starts at index 16
    r6, g6, b6 = (int(round(c / 255 * 5)) for c in (r, g, b))
    return _sgr(38, 5, 16 + 36 * r6 + 6 * g6 + b6)


def _palette(key: str, default: str) -> str:
    """Hex colour for a palette slot; malformed overrides fall back to default."""
    h = (env_value(key) or default).lstrip('#')
    if len(h) == 6 and all(c in HEX_DIGITS for c in h):
        return '#' + h
    return default


RESET = _sgr(0)
BOLD = _sgr(1)
DIM = _sgr(2)
UNDERLINE = _sgr(4)
REVERSE = _sgr(7)

HEX_PRIMARY = _palette('TASKTREE_PRIMARY', '#476EAE')
HEX_DONE = _palette('TASKTREE_DONE', '#A7E399')
HEX_MATCH = _palette('TASKTREE_MATCH', '#F6FF99')
HEX_MOVE = _palette('TASKTREE_MOVE', '#48B3AF')

PRIMARY = _foreground(HEX_PRIMARY)
DONE_COLOR = _foreground(HEX_DONE)
MATCH_COLOR = _foreground(HEX_MATCH) + BOLD
MOVE_COLOR = _foreground(HEX_MOVE)

HEADER_COLOR = PRIMARY + BOLD
ID_COLOR = PRIMARY + BOLD
BRANCH_COLOR = DIM + PRIMARY
HIDDEN_COLOR = DIM
CURSOR_STYLE = REVERSE
CURRENT_PARENT_COLOR = MOVE_COLOR + UNDERLINE
EMPTY_COLOR = DIM + PRIMARY


def color(text: str, *styles: str) -> str:
    """Wrap text in the given styles; plain text when colour is off."""
    if not _ENABLE or not any(styles):
        return text
    return ''.join(styles) + text + RESET


__all__ = [
    'color', 'RESET', 'BOLD', 'DIM', 'UNDERLINE', 'REVERSE', 'HEADER_COLOR', 'ID_COLOR', 'BRANCH_COLOR',
    'DONE_COLOR', 'MATCH_COLOR', 'MOVE_COLOR', 'HIDDEN_COLOR', 'CURSOR_STYLE', 'CURRENT_PARENT_COLOR',
    'EMPTY_COLOR', 'HEX_PRIMARY', 'HEX_DONE', 'HEX_MATCH', 'HEX_MOVE',
]
