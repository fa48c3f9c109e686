"""
Logging Configuration
Sets up the 'pivoteditor' logger for the desktop app and the command line.
"""
import logging
import sys
from typing import Optional, Union

LOGGER_NAMESPACE = "pivoteditor"

# Format: Time - Module - Level - Message
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'


def resolve_level(level: Union[int, str]) -> int:
    """Accept logging.DEBUG as well as 'debug' / 'DEBUG'."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configures the logger for the 'pivoteditor' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG or "debug")
        log_file: Optional path to save logs to a file.
        console: Also log to stdout.
    """
    level = resolve_level(level)
    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(level)

    # Avoid duplicate records when the window is re-created
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized at level {logging.getLevelName(level)}.")
    return logger
