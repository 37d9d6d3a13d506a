"""
Logging utilities for nrftools.

This module provides the logger shared by every stage of the receiver chain
(demodulation, timing recovery, packet scanning) and by the CLI. Logs go to
stderr so that decoded packet lines on stdout stay machine readable; colors
are only emitted when the stream is a terminal.
"""

import logging
import sys
from typing import Optional, TextIO, Union

LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ColorFormatter(logging.Formatter):
    """
    Logging formatter that wraps every record in an ANSI color per level.

    Parameters
    ----------
    use_color : bool, default True
        If False, records are formatted without escape codes.
    """

    GREY = "\x1b[38;20m"
    CYAN = "\x1b[36;20m"
    GREEN = "\x1b[32;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"
    FORMAT = "%(asctime)s [%(levelname)s] [%(name)s/%(module)s] %(message)s"
    DATEFMT = "%Y-%m-%d %H:%M:%S"

    LEVEL_COLORS = {
        logging.DEBUG: CYAN,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def __init__(self, use_color: bool = True):
        super().__init__(self.FORMAT, datefmt=self.DATEFMT)
        self.use_color = use_color
        self._by_level = {
            levelno: logging.Formatter(
                f"{color}{self.FORMAT}{self.RESET}", datefmt=self.DATEFMT
            )
            for levelno, color in self.LEVEL_COLORS.items()
        }

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_color:
            return super().format(record)
        formatter = self._by_level.get(record.levelno)
        if formatter is None:
            return super().format(record)
        return formatter.format(record)


def _is_terminal(stream) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def get_logger(
    name: str = "nrftools",
    level: Union[int, str] = logging.INFO,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Returns a logger instance for nrftools.

    A handler is only installed on the first call for ``name``; later calls
    return the configured logger unchanged.

    Args:
        name: Name of the logger.
        level: Initial level, as a logging constant or a level name.
        stream: Destination of the handler. Defaults to stderr.

    Returns:
        A configured logging.Logger instance.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        stream = sys.stderr if stream is None else stream
        logger.setLevel(_level_number(level))
        handler = logging.StreamHandler(stream)
        handler.setFormatter(ColorFormatter(use_color=_is_terminal(stream)))
        logger.addHandler(handler)

    return logger


def _level_number(level: Union[int, str]) -> int:
    if isinstance(level, str):
        name = level.upper()
        if name not in LEVEL_NAMES:
            raise ValueError(
                f"Unknown log level {level!r}; expected one of {', '.join(LEVEL_NAMES)}"
            )
        return getattr(logging, name)
    return int(level)


# Create a default logger for the package
logger = get_logger()


def set_log_level(level: Union[int, str]) -> None:
    """
    Sets the log level for the nrftools logger.

    The CLI calls this with ``ReceiverConfig.log_level`` (or its
    ``--log-level`` override) before decoding.

    Args:
        level: logging.DEBUG, logging.INFO, etc. or string "DEBUG", "INFO", etc.

    Raises:
        ValueError: If a level name is not recognised.
    """
    logger.setLevel(_level_number(level))
