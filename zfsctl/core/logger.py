"""Logging for zfsctl: Rich console output plus an optional log file.

External commands are logged at DEBUG, changes at INFO and failures at
ERROR, so a verbose log file is a record of everything zfsctl ran.
"""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "zfsctl"

# log lines go to stderr; command results go to stdout
console = Console(stderr=True)

LOG_FILE = Path("/var/log/zfsctl/zfsctl.log")
FALLBACK_LOG_FILE = Path("/tmp/zfsctl.log")
FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_file_handler: Optional[logging.FileHandler] = None


def _level(verbose: bool) -> int:
    return logging.DEBUG if verbose else logging.INFO


def _open_log(path: Path) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path)


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Path:
    """Send zfsctl log records to a file as well as the console.

    Calling it again replaces the previous log file.

    Args:
        log_file: Path to log file (defaults to /var/log/zfsctl/zfsctl.log)
        verbose: Also record every command run (DEBUG)

    Returns:
        The path written to; /tmp/zfsctl.log when the requested location
        is not writable
    """
    global _file_handler

    path = Path(log_file) if log_file else LOG_FILE
    try:
        handler = _open_log(path)
    except PermissionError:
        path = FALLBACK_LOG_FILE
        handler = _open_log(path)

    handler.setLevel(_level(verbose))
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger(ROOT_LOGGER)
    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()
    root.addHandler(handler)
    root.setLevel(_level(verbose))
    _file_handler = handler

    root.info(f"Logging to {path}")
    return path


def set_verbose(verbose: bool = True):
    """Switch every zfsctl logger, and the log file, between DEBUG and INFO."""
    level = _level(verbose)
    for name, logger in logging.root.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and (name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + ".")):
            logger.setLevel(level)
    if _file_handler is not None:
        _file_handler.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger that prints through the shared Rich console.

    File output is added separately by setup_file_logging().
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(_level(False))

    return logger
