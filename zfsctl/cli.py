#!/usr/bin/env python3
"""zfsctl CLI - ZFS datasets and COMSTAR iSCSI targets from one tool."""
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from zfsctl import __version__
from zfsctl.cli_dataset_commands import register_dataset_commands
from zfsctl.cli_support import handle_cli_error, setup_file_logging
from zfsctl.cli_target_commands import register_target_commands
from zfsctl.core.config import ConfigError, ZfsctlConfig, get_config, set_config
from zfsctl.core.logger import get_logger, set_verbose

app = typer.Typer(
    name="zfsctl",
    help="""zfsctl - ZFS datasets and COMSTAR iSCSI targets

Wraps zfs, zpool, stmfadm and itadm.

Quick start:
  zfsctl pools                          # List pools
  zfsctl create tank/vol1 --volume 10G  # Create a volume
  zfsctl lu create tank/vol1            # Export it as a logical unit
  zfsctl target create                  # Create an iSCSI target
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

register_dataset_commands(app, console)
register_target_commands(app, console)


@app.callback()
def main(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to zfsctl.yml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command that runs"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file"),
    mock: bool = typer.Option(False, "--mock", help="Log changes instead of making them"),
):
    """Load configuration and logging before any command runs."""
    try:
        loaded = ZfsctlConfig.load(config)
    except ConfigError as e:
        handle_cli_error(e, console)

    if mock:
        loaded.mock = True
    set_config(loaded)

    if verbose:
        set_verbose(True)
    if log_file:
        setup_file_logging(log_file=log_file, verbose=verbose)


@app.command("config")
def show_config():
    """Show the effective configuration."""
    table = Table(title="zfsctl configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in get_config().as_dict().items():
        if isinstance(value, list):
            value = " ".join(value)
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def version():
    """Print the zfsctl version."""
    console.print(f"zfsctl {__version__}")


if __name__ == "__main__":
    app()
