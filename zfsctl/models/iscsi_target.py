"""iSCSI targets managed through itadm, brought on/offline through stmfadm."""
from typing import List, Optional

from zfsctl.core.command import interpret, run_command
from zfsctl.core.config import get_config
from zfsctl.core.errors import AlreadyExists, InvalidName, NotFound
from zfsctl.core.logger import get_logger

logger = get_logger(__name__)


def _itadm(*args) -> List[str]:
    return get_config().itadm_path + [str(arg) for arg in args]


def _stmfadm(*args) -> List[str]:
    return get_config().stmfadm_path + [str(arg) for arg in args]


class IscsiTarget:
    """An iSCSI target.

    The name may be None before creation, in which case itadm generates an
    IQN and the object picks it up from the command output.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name

    def __str__(self):
        return f"iscsi target : {self.name}"

    def __repr__(self):
        return f"IscsiTarget({self.name!r})"

    def __eq__(self, other):
        return isinstance(other, IscsiTarget) and other.name == self.name

    def __hash__(self):
        return hash(("iscsi-target", self.name))

    def _require_existing(self):
        if self.name is None:
            raise InvalidName("no name for iscsi target")
        if not self.exists():
            raise NotFound(f"no such iscsi target: {self.name}")

    def exists(self) -> bool:
        if self.name is None:
            raise InvalidName("no name given to check iscsi target existence")
        return run_command(_itadm("list-target", self.name), readonly=True).ok

    def create(self) -> "IscsiTarget":
        """Create the target, letting itadm choose an IQN when unnamed."""
        if self.name is not None and self.exists():
            raise AlreadyExists(f"iscsi target {self.name} already exists")

        cmd = _itadm("create-target")
        if self.name is not None:
            cmd.append(self.name)

        result = run_command(cmd)
        if result.mock:
            return self

        interpret(result, "create iscsi target", expect=lambda r: len(r.output.split()) >= 2)

        # "Target iqn.1986-03.com.sun:02:... successfully created"
        self.name = result.output.split()[1]
        logger.info(f"Created iscsi target {self.name}")
        return self

    def delete(self) -> "IscsiTarget":
        self._require_existing()
        logger.info(f"Deleting iscsi target {self.name}")
        interpret(run_command(_itadm("delete-target", self.name)), f"delete iscsi target {self.name}", expect=None)
        return self

    def offline(self) -> "IscsiTarget":
        """Take the target offline; initiators are disconnected."""
        self._require_existing()
        logger.info(f"Taking iscsi target {self.name} offline")
        interpret(
            run_command(_stmfadm("offline-target", self.name)),
            f"take iscsi target {self.name} offline",
            expect=None,
        )
        return self

    def online(self) -> "IscsiTarget":
        self._require_existing()
        logger.info(f"Bringing iscsi target {self.name} online")
        interpret(
            run_command(_stmfadm("online-target", self.name)),
            f"bring iscsi target {self.name} online",
            expect=None,
        )
        return self
