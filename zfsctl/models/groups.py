"""COMSTAR target groups and host groups.

Both kinds are named sets managed by stmfadm with parallel subcommands
(create-tg / create-hg, add-tg-member / add-hg-member, ...).
"""
from typing import List

from zfsctl.core.command import interpret, run_command
from zfsctl.core.config import get_config
from zfsctl.core.errors import AlreadyExists, InvalidName, NotFound
from zfsctl.core.logger import get_logger

logger = get_logger(__name__)


class _StmfGroup:
    """Shared behaviour of target and host groups."""

    # stmfadm subcommand suffix ("tg" / "hg") and the label it prints
    suffix = ""
    label = ""

    def __init__(self, name: str):
        if not name:
            raise InvalidName(f"no name for {self.label.lower()}")
        self.name = name

    def __str__(self):
        return f"{self.label.lower()} : {self.name}"

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r})"

    def __eq__(self, other):
        return other.__class__ is self.__class__ and other.name == self.name

    def __hash__(self):
        return hash((self.__class__, self.name))

    def _stmfadm(self, subcommand: str, *args) -> List[str]:
        """argv for a subcommand template such as "add-{}-member"."""
        return get_config().stmfadm_path + [subcommand.format(self.suffix), *map(str, args)]

    def _matches_listing(self, output: str) -> bool:
        # stmfadm prints "Target Group: <name>"; older builds print the bare name
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        if len(lines) != 1:
            return False
        line = lines[0]
        prefix = f"{self.label}:"
        if line.lower().startswith(prefix.lower()):
            line = line[len(prefix):].strip()
        return line == self.name

    def exists(self) -> bool:
        result = run_command(self._stmfadm("list-{}", self.name), readonly=True)
        return result.ok and self._matches_listing(result.output)

    def _require_existing(self):
        if not self.exists():
            raise NotFound(f"no such {self.label.lower()}: {self.name}")

    def create(self):
        if self.exists():
            raise AlreadyExists(f"{self.label.lower()} {self.name} already exists")
        logger.info(f"Creating {self.label.lower()} {self.name}")
        interpret(run_command(self._stmfadm("create-{}", self.name)), f"create {self.label.lower()} {self.name}")
        return self

    def delete(self):
        self._require_existing()
        logger.info(f"Deleting {self.label.lower()} {self.name}")
        interpret(run_command(self._stmfadm("delete-{}", self.name)), f"delete {self.label.lower()} {self.name}")
        return self

    def members(self) -> List[str]:
        """Names of the group members, in the order stmfadm lists them."""
        result = run_command(self._stmfadm("list-{}", "-v", self.name), readonly=True)
        if not result.ok:
            if not self.exists():
                raise NotFound(f"no such {self.label.lower()}: {self.name}")
            interpret(result, f"list members of {self.label.lower()} {self.name}", expect=None)

        members = []
        for line in result.lines:
            key, sep, value = line.partition(":")
            if sep and key.strip() == "Member":
                members.append(value.strip())
        return members

    def add_member(self, member: str):
        self._require_existing()
        logger.info(f"Adding {member} to {self.label.lower()} {self.name}")
        interpret(
            run_command(self._stmfadm("add-{}-member", "-g", self.name, member)),
            f"add {member} to {self.label.lower()} {self.name}",
        )
        return self

    def remove_member(self, member: str):
        self._require_existing()
        logger.info(f"Removing {member} from {self.label.lower()} {self.name}")
        interpret(
            run_command(self._stmfadm("remove-{}-member", "-g", self.name, member)),
            f"remove {member} from {self.label.lower()} {self.name}",
        )
        return self


class TargetGroup(_StmfGroup):
    """A named set of targets a view can be restricted to."""

    suffix = "tg"
    label = "Target Group"


class HostGroup(_StmfGroup):
    """A named set of initiators a view can be restricted to."""

    suffix = "hg"
    label = "Host Group"
