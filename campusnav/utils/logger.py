"""Logging setup with colored console output."""

import copy
import logging
import re
import sys
from pathlib import Path
from typing import Optional
from colorama import Fore, Back, Style, init

# Initialize colorama for cross-platform colored output
init(autoreset=True)

# Package root logger; module loggers below it propagate here
ROOT_LOGGER_NAME = "campusnav"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Leading subsystem tag such as "[ROUTE]" or "[ARBITER]"
_TAG_PATTERN = re.compile(r"^(\[[A-Z_]+\])")


class ColoredFormatter(logging.Formatter):
    """Formatter with color coding for log levels and subsystem tags."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Back.WHITE + Style.BRIGHT,
    }

    TAG_COLOR = Fore.MAGENTA

    def __init__(self, fmt: str, use_colors: bool = True):
        """
        Initialize colored formatter.

        Args:
            fmt: Log format string.
            use_colors: Whether to use colors in output.
        """
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record with colors.

        The record is copied so other handlers still see plain text.

        Args:
            record: Log record to format.

        Returns:
            Formatted log string with color codes.
        """
        if not self.use_colors:
            return super().format(record)

        record = copy.copy(record)
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"

        message = record.getMessage()
        record.args = None
        message = _TAG_PATTERN.sub(f"{self.TAG_COLOR}\\1{Style.RESET_ALL}", message)

        if record.levelno >= logging.ERROR:
            message = f"{Fore.RED}{message}{Style.RESET_ALL}"
        elif record.levelno == logging.WARNING:
            message = f"{Fore.YELLOW}{message}{Style.RESET_ALL}"
        record.msg = message

        return super().format(record)


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str = "INFO",
    fmt: Optional[str] = None,
    use_colors: bool = True,
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    Attach console (and optionally file) output to the package logger.

    Call once from the entry point. Module loggers from get_logger() sit
    below the package root and propagate to its handlers.

    Args:
        name: Logger to configure.
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        fmt: Format string (None = timestamp, name, level, message).
        use_colors: Colorize console output.
        log_file: Also write uncolored records here.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    log_level = getattr(logging, level.upper())
    logger.setLevel(log_level)

    # Already configured by an earlier call
    if logger.handlers:
        return logger

    fmt = fmt or DEFAULT_FORMAT

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(ColoredFormatter(fmt, use_colors=use_colors))
    logger.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, always inside the package hierarchy.

    Args:
        name: Usually __name__; "__main__" and foreign names are nested
            under the package root so they share its handlers.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name.strip('_') or 'main'}"
    return logging.getLogger(name)
