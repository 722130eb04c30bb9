"""SCSI target CLI commands - iSCSI targets, logical units, groups and views."""
from __future__ import annotations

from typing import Optional, Type

import typer
from rich.console import Console
from rich.table import Table

from zfsctl.cli_support import confirm_action, handle_cli_error, is_mock, print_success, print_warning
from zfsctl.core.errors import ZFSError
from zfsctl.models import HostGroup, IscsiTarget, LogicalUnit, TargetGroup, dataset, logical_units
from zfsctl.models.dataset import Filesystem

TargetTyper = typer.Typer(help="Manage iSCSI targets")
LUTyper = typer.Typer(help="Manage logical units and their views")
TargetGroupTyper = typer.Typer(help="Manage target groups")
HostGroupTyper = typer.Typer(help="Manage host groups")

CLI_ERRORS = (ZFSError, ValueError)


def register_target_commands(root: typer.Typer, console: Console) -> None:
    """Attach target, LU and group commands to the main CLI."""

    @TargetTyper.command("create")
    def target_create(
        name: Optional[str] = typer.Argument(None, help="Target IQN (generated when omitted)"),
    ) -> None:
        """Create an iSCSI target."""
        try:
            target = IscsiTarget(name).create()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Created {target}")

    @TargetTyper.command("delete")
    def target_delete(
        name: str = typer.Argument(..., help="Target IQN"),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    ) -> None:
        """Delete an iSCSI target."""
        if not confirm_action(f"Delete iscsi target {name}?", yes_flag=yes, mock=is_mock()):
            print_warning(console, "Cancelled")
            raise typer.Exit(0)
        try:
            IscsiTarget(name).delete()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Deleted iscsi target {name}")

    @TargetTyper.command("online")
    def target_online(name: str = typer.Argument(..., help="Target IQN")) -> None:
        """Bring an iSCSI target online."""
        try:
            IscsiTarget(name).online()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"{name} is online")

    @TargetTyper.command("offline")
    def target_offline(name: str = typer.Argument(..., help="Target IQN")) -> None:
        """Take an iSCSI target offline."""
        try:
            IscsiTarget(name).offline()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"{name} is offline")

    @TargetTyper.command("exists")
    def target_exists(name: str = typer.Argument(..., help="Target IQN")) -> None:
        """Exit 0 when the target exists, 1 otherwise."""
        try:
            found = IscsiTarget(name).exists()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        console.print("yes" if found else "no")
        if not found:
            raise typer.Exit(1)

    @LUTyper.command("list")
    def lu_list() -> None:
        """List logical units."""
        try:
            units = logical_units()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        if not units:
            print_warning(console, "No logical units found")
            return
        for unit in units:
            console.print(unit.name)

    @LUTyper.command("create")
    def lu_create(name: str = typer.Argument(..., help="Volume to export")) -> None:
        """Create a logical unit backed by a volume."""
        try:
            ds = dataset(name)
            if not isinstance(ds, Filesystem):
                raise ValueError(f"{name} is not a volume")
            unit = ds.create_lu()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Created {unit}")

    @LUTyper.command("delete")
    def lu_delete(
        name: str = typer.Argument(..., help="Logical unit GUID"),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    ) -> None:
        """Delete a logical unit."""
        if not confirm_action(f"Delete logical unit {name}?", yes_flag=yes, mock=is_mock()):
            print_warning(console, "Cancelled")
            raise typer.Exit(0)
        try:
            LogicalUnit(name).delete()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Deleted logical unit {name}")

    @LUTyper.command("add-view")
    def lu_add_view(
        name: str = typer.Argument(..., help="Logical unit GUID"),
        lun: Optional[int] = typer.Option(None, "--lun", "-n", help="LUN number"),
        target_group: Optional[str] = typer.Option(None, "--target-group", "-t", help="Target group"),
        host_group: Optional[str] = typer.Option(None, "--host-group", "-h", help="Host group"),
    ) -> None:
        """Make a logical unit visible to initiators."""
        try:
            view = LogicalUnit(name).add_view(lun=lun, target_group=target_group, host_group=host_group)
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Added {view}")

    @LUTyper.command("views")
    def lu_views(name: str = typer.Argument(..., help="Logical unit GUID")) -> None:
        """List the views of a logical unit."""
        try:
            views = LogicalUnit(name).views()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)

        table = Table(title=f"Views of {name}")
        table.add_column("Entry", style="cyan")
        table.add_column("LUN", style="green")
        table.add_column("Target Group", style="yellow")
        table.add_column("Host Group", style="magenta")
        for view in views:
            table.add_row(
                "-" if view.entry is None else str(view.entry),
                "Auto" if view.lun is None else str(view.lun),
                view.target_group or "All",
                view.host_group or "All",
            )
        console.print(table)

    @LUTyper.command("remove-views")
    def lu_remove_views(name: str = typer.Argument(..., help="Logical unit GUID")) -> None:
        """Remove every view of a logical unit."""
        try:
            LogicalUnit(name).remove_views()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Removed views of {name}")

    _register_group_commands(TargetGroupTyper, TargetGroup, console)
    _register_group_commands(HostGroupTyper, HostGroup, console)

    root.add_typer(TargetTyper, name="target")
    root.add_typer(LUTyper, name="lu")
    root.add_typer(TargetGroupTyper, name="tg")
    root.add_typer(HostGroupTyper, name="hg")


def _register_group_commands(group_app: typer.Typer, group_cls: Type, console: Console) -> None:
    """Attach the same create/delete/membership commands for a group kind."""
    label = group_cls.label.lower()

    @group_app.command("create", help=f"Create a {label}.")
    def group_create(name: str = typer.Argument(..., help=f"{group_cls.label} name")) -> None:
        try:
            group_cls(name).create()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Created {label} {name}")

    @group_app.command("delete", help=f"Delete a {label}.")
    def group_delete(name: str = typer.Argument(..., help=f"{group_cls.label} name")) -> None:
        try:
            group_cls(name).delete()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Deleted {label} {name}")

    @group_app.command("exists", help=f"Exit 0 when the {label} exists, 1 otherwise.")
    def group_exists(name: str = typer.Argument(..., help=f"{group_cls.label} name")) -> None:
        try:
            found = group_cls(name).exists()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        console.print("yes" if found else "no")
        if not found:
            raise typer.Exit(1)

    @group_app.command("members", help=f"List members of a {label}.")
    def group_members(name: str = typer.Argument(..., help=f"{group_cls.label} name")) -> None:
        try:
            members = group_cls(name).members()
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        if not members:
            print_warning(console, f"{group_cls.label} {name} has no members")
            return
        for member in members:
            console.print(member)

    @group_app.command("add-member", help=f"Add a member to a {label}.")
    def group_add_member(
        name: str = typer.Argument(..., help=f"{group_cls.label} name"),
        member: str = typer.Argument(..., help="Member name"),
    ) -> None:
        try:
            group_cls(name).add_member(member)
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Added {member} to {label} {name}")

    @group_app.command("remove-member", help=f"Remove a member from a {label}.")
    def group_remove_member(
        name: str = typer.Argument(..., help=f"{group_cls.label} name"),
        member: str = typer.Argument(..., help="Member name"),
    ) -> None:
        try:
            group_cls(name).remove_member(member)
        except CLI_ERRORS as e:
            handle_cli_error(e, console)
        print_success(console, f"Removed {member} from {label} {name}")
