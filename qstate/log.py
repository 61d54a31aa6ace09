# qstate/log.py
"""
Logging configuration for qstate.

Library modules only create loggers through get_logger(); handlers are
installed by applications (e.g. the benchmark CLI) via setup_logging().
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER = "qstate"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging for the qstate logger hierarchy.

    Args:
        level: Logging level, as an int or a level name such as "DEBUG".
        log_file: Optional file to write logs to.
        format_string: Optional custom format string.

    Returns:
        The configured "qstate" logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a qstate module, e.g. get_logger("state_cpu") -> "qstate.state_cpu"."""
    if name.startswith(ROOT_LOGGER + ".") or name == ROOT_LOGGER:
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
