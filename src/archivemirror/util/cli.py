from __future__ import annotations

import datetime
from io import TextIOBase
import sys

# ------------------------------------------------------------------------------
# Terminal Colors

_use_colors = True

# ANSI color codes
TERMINAL_FG_RED =           '\033[0;31m'
TERMINAL_FG_GREEN =         '\033[0;32m'
TERMINAL_FG_YELLOW =        '\033[0;33m'
TERMINAL_FG_CYAN =          '\033[0;36m'
TERMINAL_RESET =            '\033[0m'


def init_terminal(*, colors: bool=True) -> None:
    """
    Prepares stdout and stderr for colorized output.

    On Windows, wraps the streams so that ANSI escape sequences work.
    When output is redirected to a file, strips the escape sequences.
    """
    global _use_colors
    import colorama
    colorama.init()
    _use_colors = colors


def set_use_colors(colors: bool) -> bool:
    """Sets whether messages are colorized, returning the old setting."""
    global _use_colors
    old_colors = _use_colors
    _use_colors = colors
    return old_colors


# ------------------------------------------------------------------------------
# Print

def print_success(message: str, file: TextIOBase | None=None) -> None:
    _print_colored(TERMINAL_FG_GREEN, message, file)


def print_error(message: str, file: TextIOBase | None=None) -> None:
    _print_colored(TERMINAL_FG_RED, message, file)


def print_warning(message: str, file: TextIOBase | None=None) -> None:
    _print_colored(TERMINAL_FG_YELLOW, message, file)


def print_info(message: str, file: TextIOBase | None=None) -> None:
    _print_colored(TERMINAL_FG_CYAN, message, file)


def _print_colored(color_code: str, message: str, file: TextIOBase | None) -> None:
    line = '%s %s' % (datetime.datetime.now().strftime('%Y/%m/%d %H:%M:%S'), message)
    if _use_colors:
        line = color_code + line + TERMINAL_RESET
    try:
        print(line, file=file if file is not None else sys.stdout, flush=True)
    except (OSError, ValueError):
        # Output stream closed or broken. Messages are best-effort.
        pass


# ------------------------------------------------------------------------------
