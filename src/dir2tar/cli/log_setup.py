"""Logging configuration for the dir2tar command line.

Log lines go to stderr. Levels are colored when stderr is a terminal. The
default level comes from the ``DIR2TAR_LOG`` environment variable.
"""

import logging
import os
import sys
from typing import Dict, Optional, Union

from dir2tar.trace import TRACE

LOG_LEVEL_ENV = "DIR2TAR_LOG"
DEFAULT_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that adds color codes to log messages based on log level."""

    COLORS: Dict[str, str] = {
        "TRACE": "\033[90m",  # Bright Black (Gray)
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_color: bool = True) -> None:
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not self.use_color:
            return message
        color = self.COLORS.get(record.levelname, "")
        return f"{color}{message}{self.RESET}" if color else message


def parse_level(level: Union[str, int]) -> int:
    """Translate a level name (``trace``, ``info``...) or number into a logging level.

    Raises:
        ValueError: If the name is not a known level.

    Example:
        >>> parse_level("trace")
        5
        >>> parse_level("Warning")
        30
    """
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    if name == "TRACE":
        return TRACE
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level '{level}'")
    return value


def level_from_environment(default: str = DEFAULT_LEVEL) -> int:
    """Read the default level from ``DIR2TAR_LOG``, falling back to ``default`` when unset or invalid."""
    try:
        return parse_level(os.environ.get(LOG_LEVEL_ENV, default))
    except ValueError:
        return parse_level(default)


def setup_logging(level: Union[str, int, None] = None) -> None:
    """Configure the root logger with a single stderr handler.

    Args:
        level: Level to use. Defaults to the ``DIR2TAR_LOG`` environment variable,
            or INFO when it is unset.
    """
    resolved = level_from_environment() if level is None else parse_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT, use_color=sys.stderr.isatty()))
    root_logger.addHandler(console_handler)

    logging.getLogger(__name__).debug("Logger initialized.")
