"""ZFS datasets: filesystems, volumes and snapshots.

Objects are thin handles around a dataset name. Nothing is cached: every
query and every property read invokes zfs again.
"""
from __future__ import annotations

import posixpath
from typing import Any, Dict, List, Optional, Union

from zfsctl.core.command import interpret, pipe_commands, run_command
from zfsctl.core.config import get_config
from zfsctl.core.errors import AlreadyExists, InvalidName, NotFound
from zfsctl.core.logger import get_logger
from zfsctl.core.properties import Property

logger = get_logger(__name__)

# zfs create prints this when it loses a race with another creator
DATASET_EXISTS_PATTERN = r"dataset already exists\s*$"

CHECKSUMS = ("fletcher2", "fletcher4", "sha256", "sha512", "skein", "edonr", "blake3", "noparity")
COMPRESSIONS = (
    "lzjb", "lz4", "zle", "zstd", "zstd-fast",
    "gzip", "gzip-1", "gzip-2", "gzip-3", "gzip-4", "gzip-5",
    "gzip-6", "gzip-7", "gzip-8", "gzip-9",
)
BLOCK_SIZES = (512, 1024, 2048, 4096, 8192, 16384, 32768, 65536, 131072, 262144, 524288, 1048576)


def _zfs(*args) -> List[str]:
    return get_config().zfs_path + [str(arg) for arg in args]


def _normalize(path: str) -> str:
    normalized = posixpath.normpath(path)
    # normpath keeps a leading '//' and turns '' into '.'
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def dataset(path: Union[str, "Dataset"]) -> "Dataset":
    """Get the dataset object for a name or a mountpoint.

    Args:
        path: Dataset name ('tank/data', 'tank/data@snap') or an absolute
            mountpoint ('/tank/data'); Dataset instances are returned as is

    Raises:
        NotFound: If an absolute path is not the mountpoint of any dataset
        InvalidName: If the name is empty
    """
    if isinstance(path, Dataset):
        return path

    path = str(path).strip()
    if not path or path == ".":
        raise InvalidName("empty dataset name")

    path = _normalize(path)

    if path.startswith("/"):
        found = mounts().get(path)
        if found is None:
            raise NotFound(f"no dataset is mounted at {path}")
        return found
    if "@" in path:
        return Snapshot(path)
    return Filesystem(path)


def pools() -> List["Filesystem"]:
    """Get the root filesystem of every imported pool."""
    cmd = get_config().zpool_path + ["list", "-H", "-o", "name"]
    result = run_command(cmd, merge_stderr=False, readonly=True)
    interpret(result, "list pools", expect=lambda r: not r.stderr.strip())
    return [dataset(line.strip()) for line in result.lines]


def mounts() -> Dict[str, "Dataset"]:
    """Get every mountpoint mapped to the dataset mounted there."""
    result = run_command(
        _zfs("get", "-r", "-H", "-p", "-o", "name,value", "mountpoint"),
        merge_stderr=False,
        readonly=True,
    )
    interpret(result, "list mountpoints", expect=lambda r: not r.stderr.strip())

    found = {}
    for line in result.lines:
        name, _, path = line.partition("\t")
        found[path] = dataset(name)
    return found


class Dataset:
    """Pathname-style handle on a ZFS dataset.

    Attributes:
        name: Full dataset name
        pool: Pool part of the name
        path: Remainder after the pool (None for a pool root)
    """

    # Statistics
    available = Property("size")
    compressratio = Property("float")
    creation = Property("date")
    defer_destroy = Property("boolean")
    mounted = Property("boolean")
    origin = Property("snapshot")
    refcompressratio = Property("float")
    referenced = Property("size")
    type = Property("enum", values=("filesystem", "snapshot", "volume", "bookmark"))
    used = Property("size")
    usedbychildren = Property("size")
    usedbydataset = Property("size")
    usedbyrefreservation = Property("size")
    usedbysnapshots = Property("size")
    userrefs = Property("integer")

    # Editable
    aclinherit = Property("enum", edit=True, inherit=True,
                          values=("discard", "noallow", "restricted", "passthrough", "passthrough-x"))
    atime = Property("boolean", edit=True, inherit=True)
    canmount = Property("boolean", edit=True, values=("noauto",))
    checksum = Property("boolean", edit=True, inherit=True, values=CHECKSUMS)
    compression = Property("boolean", edit=True, inherit=True, values=COMPRESSIONS)
    copies = Property("integer", edit=True, inherit=True, values=(1, 2, 3))
    dedup = Property("boolean", edit=True, inherit=True, values=("verify", "sha256", "sha256,verify"))
    devices = Property("boolean", edit=True, inherit=True)
    exec = Property("boolean", edit=True, inherit=True)
    logbias = Property("enum", edit=True, inherit=True, values=("latency", "throughput"))
    mlslabel = Property("string", edit=True, inherit=True)
    mountpoint = Property("pathname", edit=True, inherit=True, values=("none", "legacy"))
    nbmand = Property("boolean", edit=True, inherit=True)
    primarycache = Property("enum", edit=True, inherit=True, values=("all", "none", "metadata"))
    quota = Property("size", edit=True, values=("none",))
    readonly = Property("boolean", edit=True, inherit=True)
    recordsize = Property("integer", edit=True, inherit=True, values=BLOCK_SIZES)
    refquota = Property("size", edit=True, values=("none",))
    refreservation = Property("size", edit=True, values=("none", "auto"))
    reservation = Property("size", edit=True, values=("none",))
    secondarycache = Property("enum", edit=True, inherit=True, values=("all", "none", "metadata"))
    setuid = Property("boolean", edit=True, inherit=True)
    sharenfs = Property("boolean", edit=True, inherit=True)
    sharesmb = Property("boolean", edit=True, inherit=True)
    snapdir = Property("enum", edit=True, inherit=True, values=("hidden", "visible"))
    sync = Property("enum", edit=True, inherit=True, values=("standard", "always", "disabled"))
    version = Property("integer", edit=True, values=(1, 2, 3, 4, 5, "current"))
    vscan = Property("boolean", edit=True, inherit=True)
    xattr = Property("boolean", edit=True, inherit=True, values=("sa", "dir"))
    zoned = Property("boolean", edit=True, inherit=True)
    jailed = Property("boolean", edit=True, inherit=True)
    volsize = Property("size", edit=True)

    # Only settable at creation time
    casesensitivity = Property("enum", create_only=True, values=("sensitive", "insensitive", "mixed"))
    normalization = Property("enum", create_only=True, values=("none", "formC", "formD", "formKC", "formKD"))
    utf8only = Property("boolean", create_only=True)
    volblocksize = Property("integer", create_only=True, values=BLOCK_SIZES)

    def __init__(self, name: str):
        self._set_name(name)

    def _set_name(self, name: str):
        self.name = name
        pool, _, path = name.partition("/")
        self.pool = pool
        self.path = path or None

    def __str__(self):
        return f"#<ZFS:{self.name}>"

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r})"

    def __eq__(self, other):
        return other.__class__ is self.__class__ and other.name == self.name

    def __hash__(self):
        return hash((self.__class__, self.name))

    @property
    def parent(self) -> Optional["Dataset"]:
        """Parent filesystem, or None for a pool root."""
        parent = posixpath.dirname(self.name)
        if not parent:
            return None
        return dataset(parent)

    def exists(self) -> bool:
        """Check if the dataset exists."""
        result = run_command(_zfs("list", "-H", "-o", "name", self.name), readonly=True)
        return result.ok and result.output == f"{self.name}\n"

    def children(self, recursive: bool = False) -> List["Dataset"]:
        """List child filesystems.

        Args:
            recursive: Include every descendant, not only direct children
        """
        if not self.exists():
            raise NotFound(f"no such dataset: {self.name}")

        cmd = _zfs("list", "-H", "-r", "-o", "name", "-t", "filesystem")
        if not recursive:
            cmd += ["-d", "1"]
        cmd.append(self.name)

        result = run_command(cmd, merge_stderr=False, readonly=True)
        interpret(result, f"list children of {self.name}", expect=lambda r: not r.stderr.strip())
        # first line is the dataset itself
        return [dataset(line.strip()) for line in result.lines[1:]]

    def create(
        self,
        parents: bool = False,
        volume: Union[int, str, None] = None,
        sparse: bool = False,
        properties: Optional[Dict[str, Any]] = None,
    ) -> Optional["Dataset"]:
        """Create the dataset.

        Args:
            parents: Create missing parent filesystems
            volume: Create a volume of this size instead of a filesystem
            sparse: Do not reserve space for the volume
            properties: Properties to set at creation time

        Returns:
            self when created, None when it already existed
        """
        if self.exists():
            logger.info(f"Dataset {self.name} already exists")
            return None

        cmd = _zfs("create")
        if parents:
            cmd.append("-p")
        if volume is not None and sparse:
            cmd.append("-s")
        for key, value in (properties or {}).items():
            cmd += ["-o", f"{key}={self._format_property(key, value)}"]
        if volume is not None:
            cmd += ["-V", str(volume)]
        cmd.append(self.name)

        logger.info(f"Creating dataset: {self.name}")
        result = run_command(cmd)
        if interpret(result, f"create {self.name}", benign=DATASET_EXISTS_PATTERN):
            return self
        return None

    def destroy(self, recursive: bool = False) -> bool:
        """Destroy the dataset.

        Args:
            recursive: Also destroy children and snapshots
        """
        if not self.exists():
            raise NotFound(f"no such dataset: {self.name}")

        cmd = _zfs("destroy")
        if recursive:
            cmd.append("-r")
        cmd.append(self.name)

        logger.info(f"Destroying dataset: {self.name}")
        interpret(run_command(cmd), f"destroy {self.name}")
        return True

    def __getitem__(self, key: str) -> str:
        """Raw property value as printed by `zfs get -p`."""
        result = run_command(
            _zfs("get", "-o", "value", "-H", "-p", key, self.name),
            merge_stderr=False,
            readonly=True,
        )
        interpret(
            result,
            f"get {key} of {self.name}",
            expect=lambda r: not r.stderr.strip() and len(r.stdout.splitlines()) == 1,
        )
        return result.stdout.rstrip("\n")

    def __setitem__(self, key: str, value: Any):
        logger.info(f"Setting {self.name} property {key}={value}")
        interpret(run_command(_zfs("set", f"{key}={value}", self.name)), f"set {key} on {self.name}")

    def inherit(self, key: str, recursive: bool = False):
        """Clear a local property value so it is inherited from the parent.

        Raises:
            ValueError: If the property is declared as not inheritable
        """
        prop = self.property_defs.get(key)
        if prop is not None and not prop.inherit:
            raise ValueError(f"{key} cannot be inherited")

        cmd = _zfs("inherit")
        if recursive:
            cmd.append("-r")
        cmd += [key, self.name]

        logger.info(f"Inheriting {key} on {self.name}")
        interpret(run_command(cmd), f"inherit {key} on {self.name}")

    def properties(self) -> Dict[str, Any]:
        """Get every declared and user property, parsed, in one zfs call."""
        result = run_command(
            _zfs("get", "-H", "-p", "-o", "property,value", "all", self.name),
            merge_stderr=False,
            readonly=True,
        )
        interpret(result, f"get properties of {self.name}", expect=lambda r: not r.stderr.strip())

        values = {}
        for line in result.lines:
            key, _, raw = line.partition("\t")
            prop = self.property_defs.get(key)
            if prop is not None:
                values[key] = prop.parse(raw)
            elif ":" in key:
                values[key] = raw
        return values

    def _format_property(self, key: str, value: Any) -> str:
        prop = self.property_defs.get(key)
        if prop is not None and prop.writable:
            return prop.format(value)
        return str(value)


class Filesystem(Dataset):
    """A filesystem or volume."""

    def __add__(self, path: str) -> Dataset:
        """Child dataset ('fs + "child"') or snapshot ('fs + "@snap"')."""
        if path.startswith("@"):
            return dataset(f"{self.name}{path}")
        return dataset(posixpath.join(self.name, path))

    __truediv__ = __add__

    def rename(self, newname: str, parents: bool = False) -> "Filesystem":
        """Rename the filesystem; the object takes the new name."""
        newname = str(newname)
        if dataset(newname).exists():
            raise AlreadyExists(f"{newname} already exists")

        cmd = _zfs("rename")
        if parents:
            cmd.append("-p")
        cmd += [self.name, newname]

        logger.info(f"Renaming {self.name} to {newname}")
        interpret(run_command(cmd), f"rename {self.name}")
        self._set_name(newname)
        return self

    def snapshot(self, snapname: str, recursive: bool = False) -> "Snapshot":
        """Create a snapshot of this filesystem.

        Args:
            snapname: Snapshot name (without '@')
            recursive: Snapshot descendants too
        """
        if not self.exists():
            raise NotFound(f"no such filesystem: {self.name}")
        full_name = f"{self.name}@{snapname}"
        if dataset(full_name).exists():
            raise AlreadyExists(f"{full_name} exists")

        cmd = _zfs("snapshot")
        if recursive:
            cmd.append("-r")
        cmd.append(full_name)

        logger.info(f"Creating snapshot: {full_name}")
        interpret(run_command(cmd), f"snapshot {self.name}")
        return dataset(full_name)

    def snapshots(self) -> List["Snapshot"]:
        """List the snapshots of this filesystem."""
        if not self.exists():
            raise NotFound(f"no such filesystem: {self.name}")

        result = run_command(
            _zfs("list", "-H", "-d", "1", "-r", "-o", "name", "-t", "snapshot", self.name),
            merge_stderr=False,
            readonly=True,
        )
        interpret(result, f"list snapshots of {self.name}", expect=lambda r: not r.stderr.strip())
        return [dataset(line.strip()) for line in result.lines]

    def promote(self) -> "Filesystem":
        """Promote this clone so it no longer depends on its origin snapshot."""
        if self.origin is None:
            raise NotFound(f"{self.name} is not a clone")

        logger.info(f"Promoting {self.name}")
        interpret(run_command(_zfs("promote", self.name)), f"promote {self.name}")
        return self

    def create_lu(self):
        """Export this volume as a COMSTAR logical unit.

        Returns:
            LogicalUnit named by the GUID stmfadm assigned
        """
        from zfsctl.models.logical_unit import LogicalUnit

        if not self.exists():
            raise NotFound(f"no such filesystem: {self.name}")

        device = f"{get_config().zvol_dir}/{self.name}"
        result = run_command(get_config().stmfadm_path + ["create-lu", device])
        if result.mock:
            return LogicalUnit(f"mock-lu-{self.name}")

        interpret(
            result,
            f"create logical unit for {self.name}",
            expect=lambda r: len(r.output.split()) >= 4,
        )
        # "Logical unit created: 600144F0..."
        guid = result.output.split()[3]
        logger.info(f"Created logical unit {guid} for {device}")
        return LogicalUnit(guid)


class Snapshot(Dataset):
    """A read-only point-in-time copy of a filesystem."""

    @property
    def parent(self) -> Filesystem:
        """The filesystem this snapshot belongs to."""
        return dataset(self.name.split("@", 1)[0])

    @property
    def snapname(self) -> str:
        return self.name.split("@", 1)[1]

    def __add__(self, path: str) -> "Snapshot":
        """The same-named snapshot of a child filesystem."""
        if "@" in path:
            raise InvalidName(f"{path} must not contain '@'")
        return self.parent + path + f"@{self.snapname}"

    __truediv__ = __add__

    def rename(self, newname: str, recursive: bool = False) -> "Snapshot":
        """Rename the snapshot within its filesystem.

        Args:
            newname: New snapshot name (without '@')
            recursive: Rename the same snapshot of every descendant
        """
        target = self.parent + f"@{newname}"
        if target.exists():
            raise AlreadyExists(f"{target.name} already exists")

        cmd = _zfs("rename")
        if recursive:
            cmd.append("-r")
        cmd += [self.name, target.name]

        logger.info(f"Renaming {self.name} to {target.name}")
        interpret(run_command(cmd), f"rename {self.name}")
        self._set_name(target.name)
        return self

    def clone(self, target: Union[str, Dataset], parents: bool = False) -> Dataset:
        """Create a writable filesystem from this snapshot."""
        target = dataset(target)
        if target.exists():
            raise AlreadyExists(f"{target.name} already exists")

        cmd = _zfs("clone")
        if parents:
            cmd.append("-p")
        cmd += [self.name, target.name]

        logger.info(f"Cloning {self.name} to {target.name}")
        interpret(run_command(cmd), f"clone {self.name}")
        return target

    def send_to(
        self,
        dest: Union[str, Dataset],
        incremental: Union[str, "Snapshot", None] = None,
        intermediary: Union[str, "Snapshot", None] = None,
        replication: bool = False,
        use_sent_name: bool = False,
    ):
        """Replicate this snapshot into another filesystem with send | receive.

        Args:
            dest: Receiving filesystem
            incremental: Base snapshot for an incremental stream (-i); '@name'
                refers to a snapshot of the same filesystem
            intermediary: Like incremental but includes intermediate snapshots (-I)
            replication: Send a replication stream of all descendants (-R)
            use_sent_name: Receive with -d, keeping the sent dataset name

        Raises:
            ValueError: If both incremental and intermediary are given, or the
                base is not a snapshot of the same filesystem
            NotFound: If the destination or a base snapshot is missing
            AlreadyExists: If a full stream would overwrite the destination
        """
        if incremental is not None and intermediary is not None:
            raise ValueError("can't specify both incremental and intermediary")

        dest = dataset(dest)
        base = incremental if incremental is not None else intermediary

        if base is not None:
            if isinstance(base, str) and base.startswith("@"):
                base = self.parent + base
            else:
                base = dataset(base)
                if not isinstance(base, Snapshot):
                    raise ValueError(f"{base.name} is not a snapshot")
                if base.parent != self.parent:
                    raise ValueError(f"incremental snapshot must be in the same filesystem as {self}")

            base_name = f"@{base.snapname}"

            if not dest.exists():
                raise NotFound("destination must already exist when receiving incremental stream")
            if base not in self.parent.snapshots():
                raise NotFound(f"snapshot {base_name} must exist at {self.parent}")
            if (dest + base_name) not in dest.snapshots():
                raise NotFound(f"snapshot {base_name} must exist at {dest}")
        elif use_sent_name:
            if not dest.exists():
                raise NotFound("destination must already exist when using sent name")
        elif dest.exists():
            raise AlreadyExists("destination must not exist when receiving full stream")

        send = _zfs("send")
        if incremental is not None:
            send += ["-i", base.name]
        if intermediary is not None:
            send += ["-I", base.name]
        if replication:
            send.append("-R")
        send.append(self.name)

        receive = _zfs("receive")
        if use_sent_name:
            receive.append("-d")
        receive.append(dest.name)

        logger.info(f"Sending {self.name} to {dest.name}")
        pipe_commands(send, receive, f"send {self.name} to {dest.name}")

