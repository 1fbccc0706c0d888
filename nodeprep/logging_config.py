"""Logging configuration for nodeprep."""

import logging
import os
import sys
from pathlib import Path

LOG_LEVEL_ENV_VAR = "NODEPREP_LOG_LEVEL"

# Batch operations log from worker threads, so the thread name is part of every record
LOG_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = ("urllib3", "kubernetes")


def setup_logging(
    level: str | None = None, log_file: Path | None = None, verbose: bool = False
) -> None:
    """Configure logging for the application.

    The console only shows warnings and errors unless ``verbose`` is set; the log file, when
    given, receives everything at ``level`` and above.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL); defaults to
            $NODEPREP_LOG_LEVEL, then INFO
        log_file: Optional path to log file
        verbose: If True, set level to DEBUG and show it on the console
    """
    if verbose:
        level = "DEBUG"
    elif level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO")

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else max(numeric_level, logging.WARNING))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logging.warning(f"Failed to create log file handler: {e}")

    # The kubernetes client logs every request body at DEBUG
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
