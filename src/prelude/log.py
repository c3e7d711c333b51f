"""
Logging setup for prelude.

Messages go to stderr with a ``[prelude]`` prefix, coloured by level when the
stream is a terminal.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, TextIO

from colorama import Fore, Style, just_fix_windows_console

LOGGER_NAME = "prelude"
LEVEL_ENV_VAR = "PRELUDE_LOG"

_LEVEL_COLOURS = {
    logging.DEBUG: Style.DIM,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}


class ColourFormatter(logging.Formatter):
    def __init__(self, use_colour: bool = True) -> None:
        super().__init__("[prelude] %(message)s")
        self.use_colour = use_colour

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        colour = _LEVEL_COLOURS.get(record.levelno)
        if self.use_colour and colour:
            return colour + msg + Style.RESET_ALL
        return msg


def _level_for(verbosity: int) -> int:
    override = os.environ.get(LEVEL_ENV_VAR)
    if override:
        level = logging.getLevelName(override.strip().upper())
        if isinstance(level, int):
            return level
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbosity: int = 0, stream: Optional[TextIO] = None) -> logging.Logger:
    """Configure the ``prelude`` logger.

    ``verbosity`` is the number of ``-v`` flags: 0 shows warnings and errors,
    1 adds progress messages, 2 adds per-file and ignored-path detail. The
    ``PRELUDE_LOG`` environment variable (a level name) takes precedence.
    """
    just_fix_windows_console()
    stream = stream if stream is not None else sys.stderr

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColourFormatter(use_colour=stream.isatty()))

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(_level_for(verbosity))
    logger.propagate = False
    return logger
