"""Shared utilities for zfsctl CLI modules."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import typer
from rich.console import Console
from rich.markup import escape

from zfsctl.core.config import get_config
from zfsctl.models import Dataset


def is_mock() -> bool:
    """Return True when the CLI runs in mock mode (--mock or ZFSCTL_MOCK)."""
    return get_config().mock


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False):
    """Set up file logging for CLI commands; returns the file actually used."""
    from zfsctl.core.logger import setup_file_logging as _setup_file_logging
    return _setup_file_logging(log_file=log_file, verbose=verbose)


def confirm_action(message: str, yes_flag: bool = False, mock: bool = False) -> bool:
    """Prompt user for confirmation unless --yes or mock mode.

    Returns:
        True if confirmed, False otherwise
    """
    if yes_flag or mock:
        return True
    return typer.confirm(message)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Print an error with consistent formatting and exit.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    print_error(console, str(e))
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def parse_assignment(text: str) -> Tuple[str, str]:
    """Split a KEY=VALUE argument."""
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise typer.BadParameter(f"expected KEY=VALUE, got '{text}'")
    return key, value


def parse_assignments(items: Optional[List[str]]) -> Dict[str, str]:
    return dict(parse_assignment(item) for item in items or [])


def format_value(value: Any) -> str:
    """Render a parsed property value for display."""
    if value is None:
        return "-"
    if value is True:
        return "on"
    if value is False:
        return "off"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Dataset):
        return value.name
    return str(value)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {escape(message)}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    console.print(f"[red]{prefix}[/red] {escape(message)}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {escape(message)}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    console.print(f"[blue]{prefix}[/blue] {escape(message)}")
