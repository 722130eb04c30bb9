"""Dataset CLI commands - list, properties, create/destroy, snapshots, send."""
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from zfsctl.cli_support import (
    confirm_action,
    format_value,
    handle_cli_error,
    is_mock,
    parse_assignment,
    parse_assignments,
    print_success,
    print_warning,
)
from zfsctl.core.errors import ZFSError
from zfsctl.models import Filesystem, Snapshot, dataset, mounts, pools

# Module-level console instance (will be set by register function)
console: Console = Console()

CLI_ERRORS = (ZFSError, ValueError, AttributeError)


def _snapshot_arg(name: str) -> Snapshot:
    ds = dataset(name)
    if not isinstance(ds, Snapshot):
        raise ValueError(f"{name} is not a snapshot (expected filesystem@snapshot)")
    return ds


def _filesystem_arg(name: str) -> Filesystem:
    ds = dataset(name)
    if not isinstance(ds, Filesystem):
        raise ValueError(f"{name} is not a filesystem")
    return ds


def list_pools():
    """List imported pools."""
    try:
        found = pools()
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    if not found:
        print_warning(console, "No pools found")
        return
    for pool in found:
        console.print(pool.name)


def list_mounts():
    """Show which dataset is mounted where."""
    try:
        found = mounts()
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    table = Table(title="Mountpoints")
    table.add_column("Mountpoint", style="cyan")
    table.add_column("Dataset", style="green")
    for path, ds in sorted(found.items()):
        table.add_row(path, ds.name)
    console.print(table)


def list_children(
    name: str = typer.Argument(..., help="Dataset name or mountpoint"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Include all descendants"),
):
    """List child filesystems of a dataset."""
    try:
        children = dataset(name).children(recursive=recursive)
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    for child in children:
        console.print(child.name)


def get(
    name: str = typer.Argument(..., help="Dataset name or mountpoint"),
    prop: str = typer.Argument(..., help="Property name"),
):
    """Print one property value."""
    try:
        ds = dataset(name)
        if prop in ds.property_defs:
            value = format_value(getattr(ds, prop))
        else:
            value = ds[prop]
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    console.print(value)


def props(name: str = typer.Argument(..., help="Dataset name or mountpoint")):
    """Show all known properties of a dataset."""
    try:
        ds = dataset(name)
        values = ds.properties()
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    table = Table(title=f"Properties of {ds.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Kind", style="magenta")
    for key in sorted(values):
        prop = ds.property_defs.get(key)
        table.add_row(key, format_value(values[key]), prop.kind if prop else "user")
    console.print(table)


def set_property(
    name: str = typer.Argument(..., help="Dataset name or mountpoint"),
    assignment: str = typer.Argument(..., help="PROPERTY=VALUE", metavar="PROPERTY=VALUE"),
):
    """Set a property."""
    key, value = parse_assignment(assignment)
    try:
        ds = dataset(name)
        if key in ds.property_defs:
            setattr(ds, key, value)
        else:
            ds[key] = value
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    print_success(console, f"{ds.name}: {key}={value}")


def inherit(
    name: str = typer.Argument(..., help="Dataset name or mountpoint"),
    prop: str = typer.Argument(..., help="Property to inherit from the parent"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Also inherit on descendants"),
):
    """Clear a local property value so it is inherited."""
    try:
        ds = dataset(name)
        ds.inherit(prop, recursive=recursive)
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    print_success(console, f"{ds.name}: {prop} inherited")


def create(
    name: str = typer.Argument(..., help="Dataset to create"),
    parents: bool = typer.Option(False, "--parents", "-p", help="Create missing parents"),
    volume: Optional[str] = typer.Option(None, "--volume", "-V", help="Create a volume of this size"),
    sparse: bool = typer.Option(False, "--sparse", "-s", help="Do not reserve space for the volume"),
    option: Optional[List[str]] = typer.Option(None, "--option", "-o", help="Property (KEY=VALUE)", metavar="KEY=VALUE"),
):
    """Create a filesystem or volume."""
    properties = parse_assignments(option)
    try:
        created = dataset(name).create(parents=parents, volume=volume, sparse=sparse, properties=properties)
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    if created is None:
        print_warning(console, f"{name} already exists")
    else:
        print_success(console, f"Created {created.name}")


def destroy(
    name: str = typer.Argument(..., help="Dataset to destroy"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Destroy children and snapshots"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Destroy a dataset."""
    if not confirm_action(f"Destroy {name}? This cannot be undone.", yes_flag=yes, mock=is_mock()):
        print_warning(console, "Cancelled")
        raise typer.Exit(0)

    try:
        dataset(name).destroy(recursive=recursive)
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    print_success(console, f"Destroyed {name}")


def rename(
    name: str = typer.Argument(..., help="Dataset to rename"),
    newname: str = typer.Argument(..., help="New name (snapshot name only, for snapshots)"),
    parents: bool = typer.Option(False, "--parents", "-p", help="Create missing parents"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Rename snapshot of descendants too"),
):
    """Rename a filesystem or snapshot."""
    try:
        ds = dataset(name)
        if isinstance(ds, Snapshot):
            ds.rename(newname, recursive=recursive)
        else:
            ds.rename(newname, parents=parents)
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    print_success(console, f"Renamed {name} to {ds.name}")


def snapshot(
    name: str = typer.Argument(..., help="Filesystem to snapshot"),
    snapname: str = typer.Argument(..., help="Snapshot name"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Snapshot descendants too"),
):
    """Create a snapshot."""
    try:
        snap = _filesystem_arg(name).snapshot(snapname, recursive=recursive)
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    print_success(console, f"Created snapshot {snap.name}")


def snapshots(name: str = typer.Argument(..., help="Filesystem")):
    """List snapshots of a filesystem."""
    try:
        found = _filesystem_arg(name).snapshots()
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    if not found:
        print_warning(console, f"No snapshots of {name}")
        return
    for snap in found:
        console.print(snap.name)


def clone(
    name: str = typer.Argument(..., help="Snapshot to clone"),
    target: str = typer.Argument(..., help="New filesystem"),
    parents: bool = typer.Option(False, "--parents", "-p", help="Create missing parents"),
):
    """Clone a snapshot into a new filesystem."""
    try:
        cloned = _snapshot_arg(name).clone(target, parents=parents)
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    print_success(console, f"Cloned {name} to {cloned.name}")


def promote(name: str = typer.Argument(..., help="Clone to promote")):
    """Promote a clone."""
    try:
        _filesystem_arg(name).promote()
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    print_success(console, f"Promoted {name}")


def send(
    name: str = typer.Argument(..., help="Snapshot to send"),
    dest: str = typer.Argument(..., help="Receiving filesystem"),
    incremental: Optional[str] = typer.Option(None, "--incremental", "-i", help="Incremental base snapshot"),
    intermediary: Optional[str] = typer.Option(None, "--intermediary", "-I", help="Base snapshot, include intermediates"),
    replication: bool = typer.Option(False, "--replication", "-R", help="Send a replication stream"),
    use_sent_name: bool = typer.Option(False, "--use-sent-name", "-d", help="Receive under the sent name"),
):
    """Send a snapshot into another filesystem."""
    try:
        _snapshot_arg(name).send_to(
            dest,
            incremental=incremental,
            intermediary=intermediary,
            replication=replication,
            use_sent_name=use_sent_name,
        )
    except CLI_ERRORS as e:
        handle_cli_error(e, console)

    print_success(console, f"Sent {name} to {dest}")


def register_dataset_commands(app: typer.Typer, shared_console: Console):
    """Register dataset commands with the main Typer app."""
    global console
    console = shared_console

    app.command("pools")(list_pools)
    app.command("mounts")(list_mounts)
    app.command("list")(list_children)
    app.command()(get)
    app.command()(props)
    app.command("set")(set_property)
    app.command()(inherit)
    app.command()(create)
    app.command()(destroy)
    app.command()(rename)
    app.command()(snapshot)
    app.command()(snapshots)
    app.command()(clone)
    app.command()(promote)
    app.command()(send)
