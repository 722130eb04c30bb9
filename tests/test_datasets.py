"""Tests for dataset objects and the zfs commands they build."""
from pathlib import Path

import pytest

from zfsctl.core.errors import CommandError, InvalidName, NotFound
from zfsctl.models import Dataset, Filesystem, Snapshot, dataset, mounts, pools


class TestIdentity:
    """Names, factory and equality."""

    def test_factory_filesystem(self):
        fs = dataset("tank/data/")
        assert isinstance(fs, Filesystem)
        assert fs.name == "tank/data"
        assert fs.pool == "tank"
        assert fs.path == "data"

    def test_factory_snapshot(self):
        snap = dataset("tank/data@daily")
        assert isinstance(snap, Snapshot)
        assert snap.snapname == "daily"

    def test_factory_passthrough(self):
        fs = Filesystem("tank")
        assert dataset(fs) is fs

    def test_factory_normalizes(self):
        assert dataset("tank//a/./b").name == "tank/a/b"

    def test_factory_rejects_empty(self):
        with pytest.raises(InvalidName):
            dataset("")

    def test_pool_root(self):
        pool = dataset("tank")
        assert pool.path is None
        assert pool.parent is None

    def test_parent(self):
        assert dataset("tank/a/b").parent == Filesystem("tank/a")

    def test_equality_by_type_and_name(self):
        assert Filesystem("tank/a") == Filesystem("tank/a")
        assert Filesystem("tank/a") != Dataset("tank/a")
        assert Filesystem("tank/a") != "tank/a"
        assert len({Filesystem("tank/a"), dataset("tank/a")}) == 1

    def test_str(self):
        assert str(dataset("tank/a")) == "#<ZFS:tank/a>"

    def test_child_paths(self):
        fs = dataset("tank/a")
        assert fs + "b" == Filesystem("tank/a/b")
        assert fs / "b/c" == Filesystem("tank/a/b/c")
        assert fs + "@now" == Snapshot("tank/a@now")

    def test_factory_mountpoint(self, tools):
        tools.on("zfs", "get", "-r", "-H", "-p", "-o", "name,value", "mountpoint",
                 stdout="tank\t/tank\ntank/home\t/export/home\ntank/vol\t-\n")

        assert dataset("/export/home/") == Filesystem("tank/home")

    def test_factory_unmounted_path(self, tools):
        tools.on("zfs", "get", "-r", "-H", "-p", "-o", "name,value", "mountpoint", stdout="tank\t/tank\n")

        with pytest.raises(NotFound, match="no dataset is mounted at /srv"):
            dataset("/srv")


class TestQueries:
    """exists, children, pools and mounts."""

    def test_exists(self, tools):
        tools.dataset("tank/a")

        assert dataset("tank/a").exists()
        assert not dataset("tank/b").exists()

    def test_exists_requires_exact_name(self, tools):
        tools.on("zfs", "list", "-H", "-o", "name", "tank/a", stdout="tank/a\ntank/a/b\n")

        assert not dataset("tank/a").exists()

    def test_children(self, tools):
        tools.dataset("tank")
        tools.on("zfs", "list", "-H", "-r", "-o", "name", "-t", "filesystem", "-d", "1", "tank",
                 stdout="tank\ntank/a\ntank/b\n")

        assert dataset("tank").children() == [Filesystem("tank/a"), Filesystem("tank/b")]

    def test_children_recursive(self, tools):
        tools.dataset("tank")
        tools.on("zfs", "list", "-H", "-r", "-o", "name", "-t", "filesystem", "tank",
                 stdout="tank\ntank/a\ntank/a/x\n")

        assert [c.name for c in dataset("tank").children(recursive=True)] == ["tank/a", "tank/a/x"]

    def test_children_missing(self, tools):
        with pytest.raises(NotFound):
            dataset("tank").children()

    def test_children_stderr_is_failure(self, tools):
        tools.dataset("tank")
        tools.on("zfs", "list", "-H", "-r", "-o", "name", "-t", "filesystem", "-d", "1", "tank",
                 stdout="tank\n", stderr="warning\n")

        with pytest.raises(CommandError):
            dataset("tank").children()

    def test_pools(self, tools):
        tools.on("zpool", "list", "-H", "-o", "name", stdout="rpool\ntank\n")

        assert pools() == [Filesystem("rpool"), Filesystem("tank")]

    def test_pools_failure(self, tools):
        tools.on("zpool", "list", "-H", "-o", "name", returncode=1, stderr="no pools available\n")

        with pytest.raises(CommandError, match="no pools available"):
            pools()

    def test_mounts(self, tools):
        tools.on("zfs", "get", "-r", "-H", "-p", "-o", "name,value", "mountpoint",
                 stdout="tank\t/tank\ntank/home\t/export/home\n")

        assert mounts() == {"/tank": Filesystem("tank"), "/export/home": Filesystem("tank/home")}

    def test_custom_tool_path(self, tools, default_config):
        default_config.zfs_path = ["sudo", "zfs"]
        tools.on("sudo", "zfs", "list", "-H", "-o", "name", "tank", stdout="tank\n")

        assert dataset("tank").exists()


class TestCreateDestroy:
    """create and destroy."""

    def test_create(self, tools):
        tools.on("zfs", "create", "tank/a")

        assert dataset("tank/a").create() == Filesystem("tank/a")
        assert tools.ran("zfs", "create", "tank/a")

    def test_create_existing_returns_none(self, tools):
        tools.dataset("tank/a")

        assert dataset("tank/a").create() is None
        assert not tools.ran("zfs", "create", "tank/a")

    def test_create_volume_with_options(self, tools):
        tools.on("zfs", "create", "-p", "-s", "-o", "compression=on", "-o", "volblocksize=8192",
                 "-V", "10G", "tank/vols/v1")

        created = dataset("tank/vols/v1").create(
            parents=True,
            volume="10G",
            sparse=True,
            properties={"compression": True, "volblocksize": 8192},
        )

        assert created == Filesystem("tank/vols/v1")

    def test_sparse_ignored_without_volume(self, tools):
        tools.on("zfs", "create", "tank/a")

        assert dataset("tank/a").create(sparse=True) is not None

    def test_create_race_is_benign(self, tools):
        tools.on("zfs", "create", "tank/a", returncode=1,
                 stderr="cannot create 'tank/a': dataset already exists\n")

        assert dataset("tank/a").create() is None

    def test_create_failure(self, tools):
        tools.on("zfs", "create", "tank/a", returncode=1, stderr="cannot create 'tank/a': out of space\n")

        with pytest.raises(CommandError, match="out of space"):
            dataset("tank/a").create()

    def test_destroy(self, tools):
        tools.dataset("tank/a")
        tools.on("zfs", "destroy", "-r", "tank/a")

        assert dataset("tank/a").destroy(recursive=True) is True

    def test_destroy_missing(self, tools):
        with pytest.raises(NotFound):
            dataset("tank/a").destroy()
        assert not tools.ran("zfs", "destroy", "tank/a")

    def test_destroy_failure(self, tools):
        tools.dataset("tank/a")
        tools.on("zfs", "destroy", "tank/a", returncode=1, stderr="dataset is busy\n")

        with pytest.raises(CommandError, match="dataset is busy"):
            dataset("tank/a").destroy()


class TestProperties:
    """Raw and typed property access."""

    def test_getitem(self, tools):
        tools.prop("tank/a", "used", "4096")

        assert dataset("tank/a")["used"] == "4096"

    def test_getitem_rejects_multiline(self, tools):
        tools.on("zfs", "get", "-o", "value", "-H", "-p", "used", "tank/a", stdout="1\n2\n")

        with pytest.raises(CommandError):
            dataset("tank/a")["used"]

    def test_typed_read(self, tools):
        tools.prop("tank/a", "used", "4096")
        tools.prop("tank/a", "atime", "off")
        tools.prop("tank/a", "mountpoint", "/tank/a")
        tools.prop("tank/a", "type", "filesystem")

        fs = dataset("tank/a")
        assert fs.used == 4096
        assert fs.atime is False
        assert fs.mountpoint == Path("/tank/a")
        assert fs.type == "filesystem"

    def test_typed_write(self, tools):
        tools.on("zfs", "set", "atime=off", "tank/a")
        tools.on("zfs", "set", "quota=1073741824", "tank/a")

        fs = dataset("tank/a")
        fs.atime = False
        fs.quota = 1024 ** 3

        assert tools.ran("zfs", "set", "atime=off", "tank/a")
        assert tools.ran("zfs", "set", "quota=1073741824", "tank/a")

    def test_write_failure(self, tools):
        tools.on("zfs", "set", "sync=always", "tank/a", returncode=1, stderr="permission denied\n")

        with pytest.raises(CommandError, match="permission denied"):
            dataset("tank/a").sync = "always"

    def test_read_only(self, tools):
        with pytest.raises(AttributeError):
            dataset("tank/a").used = 1
        assert tools.calls == []

    def test_user_property(self, tools):
        tools.on("zfs", "set", "com.example:owner=ops", "tank/a")

        dataset("tank/a")["com.example:owner"] = "ops"

        assert tools.ran("zfs", "set", "com.example:owner=ops", "tank/a")

    def test_origin(self, tools):
        tools.prop("tank/clone", "origin", "tank/base@v1")

        assert dataset("tank/clone").origin == Snapshot("tank/base@v1")

    def test_inherit(self, tools):
        tools.on("zfs", "inherit", "-r", "compression", "tank/a")

        dataset("tank/a").inherit("compression", recursive=True)

        assert tools.ran("zfs", "inherit", "-r", "compression", "tank/a")

    def test_inherit_not_inheritable(self, tools):
        with pytest.raises(ValueError, match="quota cannot be inherited"):
            dataset("tank/a").inherit("quota")
        assert tools.calls == []

    def test_properties(self, tools):
        tools.on("zfs", "get", "-H", "-p", "-o", "property,value", "all", "tank/a",
                 stdout="type\tfilesystem\nused\t4096\ncompression\tlz4\nguid\t1234\ncom.example:owner\tops\n")

        assert dataset("tank/a").properties() == {
            "type": "filesystem",
            "used": 4096,
            "compression": "lz4",
            "com.example:owner": "ops",
        }

    def test_properties_not_applicable_to_volume(self, tools):
        tools.prop("tank/vol", "snapdir", "-")
        tools.on("zfs", "get", "-H", "-p", "-o", "property,value", "all", "tank/vol",
                 stdout="type\tvolume\nsnapdir\t-\ncasesensitivity\t-\nvolsize\t1073741824\n")

        vol = dataset("tank/vol")

        assert vol.snapdir is None
        assert vol.properties() == {
            "type": "volume",
            "snapdir": None,
            "casesensitivity": None,
            "volsize": 1073741824,
        }
