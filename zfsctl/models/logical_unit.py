"""COMSTAR logical units managed through stmfadm."""
from typing import Dict, List, Optional

from zfsctl.core.command import interpret, run_command
from zfsctl.core.config import get_config
from zfsctl.core.errors import InvalidName, NotFound
from zfsctl.core.logger import get_logger
from zfsctl.models.view import View

logger = get_logger(__name__)


def _stmfadm(*args) -> List[str]:
    return get_config().stmfadm_path + [str(arg) for arg in args]


def logical_units() -> List["LogicalUnit"]:
    """List every logical unit known to the framework."""
    result = run_command(_stmfadm("list-lu"), readonly=True)
    interpret(result, "list logical units", expect=None)

    units = []
    for line in result.lines:
        # "LU Name: 600144F0..."
        parts = line.split()
        if len(parts) >= 3:
            units.append(LogicalUnit(parts[2]))
    return units


def _group_or_all(value: str) -> Optional[str]:
    return None if value == "All" else value


def parse_views(lu: "LogicalUnit", output: str) -> List[View]:
    """Parse the blocks printed by `stmfadm list-view -l <lu>`."""
    views = []
    block: Dict[str, str] = {}

    def flush():
        if not block:
            return
        lun = block.get("lun", "Auto")
        views.append(View(
            lu=lu,
            lun=None if lun == "Auto" else int(lun),
            target_group=_group_or_all(block.get("target group", "All")),
            host_group=_group_or_all(block.get("host group", "All")),
            entry=int(block["view entry"]) if "view entry" in block else None,
        ))

    for line in output.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        if key == "view entry":
            flush()
            block = {}
        block[key] = value.strip()
    flush()

    return views


class LogicalUnit:
    """A SCSI logical unit identified by its GUID."""

    def __init__(self, name: str):
        self.name = name

    def __str__(self):
        return f"LU : {self.name}"

    def __repr__(self):
        return f"LogicalUnit({self.name!r})"

    def __eq__(self, other):
        return isinstance(other, LogicalUnit) and other.name == self.name

    def __hash__(self):
        return hash(("lu", self.name))

    def _require_name(self):
        if not self.name:
            raise InvalidName("no name for logical unit")

    def _require_existing(self):
        if not self.exists():
            raise NotFound(f"no such logical unit: {self.name}")

    def exists(self) -> bool:
        self._require_name()
        return run_command(_stmfadm("list-lu", self.name), readonly=True).ok

    def delete(self) -> "LogicalUnit":
        """Delete the logical unit (the backing volume is left alone)."""
        self._require_existing()
        logger.info(f"Deleting logical unit {self.name}")
        interpret(run_command(_stmfadm("delete-lu", self.name)), f"delete LU {self.name}", expect=None)
        return self

    def add_view(
        self,
        lun: Optional[int] = None,
        target_group: Optional[str] = None,
        host_group: Optional[str] = None,
    ) -> View:
        """Make the logical unit visible.

        Args:
            lun: LUN number (stmfadm picks one when omitted)
            target_group: Restrict to this target group (all when omitted)
            host_group: Restrict to this host group (all when omitted)
        """
        self._require_existing()

        cmd = _stmfadm("add-view")
        if lun is not None:
            cmd += ["-n", str(lun)]
        if target_group is not None:
            cmd += ["-t", target_group]
        if host_group is not None:
            cmd += ["-h", host_group]
        cmd.append(self.name)

        view = View(self, lun, target_group, host_group)
        logger.info(f"Adding {view}")
        interpret(run_command(cmd), f"add view to LU {self.name}", expect=None)
        return view

    def views(self) -> List[View]:
        """List the views of this logical unit."""
        self._require_name()
        result = run_command(_stmfadm("list-view", "-l", self.name), readonly=True)
        if not result.ok and not self.exists():
            raise NotFound(f"no such logical unit: {self.name}")
        interpret(result, f"list views of LU {self.name}", expect=None)
        return parse_views(self, result.stdout)

    def remove_views(self) -> "LogicalUnit":
        """Remove every view of this logical unit."""
        self._require_existing()
        logger.info(f"Removing all views of logical unit {self.name}")
        interpret(
            run_command(_stmfadm("remove-view", "-a", "-l", self.name)),
            f"remove views of LU {self.name}",
            expect=None,
        )
        return self
