"""Tests for the zfsctl command line."""
from typer.testing import CliRunner

from zfsctl.cli import app

runner = CliRunner()

GUID = "600144F0C5D1E20000005A1B2C3D0001"


class TestHelp:
    """Help output lists the command groups."""

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        output = result.stdout
        assert "zfsctl - ZFS datasets and COMSTAR iSCSI targets" in output
        for command in ("pools", "create", "destroy", "snapshot", "send", "target", "lu", "tg", "hg"):
            assert command in output

    def test_lu_help(self):
        result = runner.invoke(app, ["lu", "--help"])

        assert result.exit_code == 0
        for command in ("list", "create", "delete", "add-view", "views", "remove-views"):
            assert command in result.stdout

    def test_group_help(self):
        result = runner.invoke(app, ["hg", "--help"])

        assert result.exit_code == 0
        assert "add-member" in result.stdout
        assert "host group" in result.stdout


class TestDatasetCommands:

    def test_pools(self, tools):
        tools.on("zpool", "list", "-H", "-o", "name", stdout="rpool\ntank\n")

        result = runner.invoke(app, ["pools"])

        assert result.exit_code == 0
        assert "rpool" in result.stdout
        assert "tank" in result.stdout

    def test_get_typed(self, tools):
        tools.prop("tank/a", "atime", "off")

        result = runner.invoke(app, ["get", "tank/a", "atime"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "off"

    def test_set(self, tools):
        tools.on("zfs", "set", "compression=lz4", "tank/a")

        result = runner.invoke(app, ["set", "tank/a", "compression=lz4"])

        assert result.exit_code == 0
        assert tools.ran("zfs", "set", "compression=lz4", "tank/a")

    def test_set_read_only(self, tools):
        result = runner.invoke(app, ["set", "tank/a", "used=5"])

        assert result.exit_code == 1
        assert "read-only" in result.stdout

    def test_set_bad_assignment(self, tools):
        result = runner.invoke(app, ["set", "tank/a", "compression"])

        assert result.exit_code == 2

    def test_create_with_options(self, tools):
        tools.on("zfs", "create", "-o", "compression=lz4", "-V", "1G", "tank/vol")

        result = runner.invoke(app, ["create", "tank/vol", "--volume", "1G", "-o", "compression=lz4"])

        assert result.exit_code == 0
        assert "Created tank/vol" in result.stdout

    def test_create_existing(self, tools):
        tools.dataset("tank/a")

        result = runner.invoke(app, ["create", "tank/a"])

        assert result.exit_code == 0
        assert "already exists" in result.stdout

    def test_destroy_missing(self, tools):
        result = runner.invoke(app, ["destroy", "tank/a", "--yes"])

        assert result.exit_code == 1
        assert "no such dataset" in result.stdout

    def test_destroy_cancelled(self, tools):
        result = runner.invoke(app, ["destroy", "tank/a"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.stdout
        assert tools.calls == []

    def test_clone_requires_snapshot(self, tools):
        result = runner.invoke(app, ["clone", "tank/a", "tank/b"])

        assert result.exit_code == 1
        assert "not a snapshot" in result.stdout

    def test_mock_flag(self, tools):
        tools.dataset("tank/a")

        result = runner.invoke(app, ["--mock", "destroy", "tank/a"])

        assert result.exit_code == 0
        assert not tools.ran("zfs", "destroy", "tank/a")


class TestTargetCommands:

    def test_target_create(self, tools):
        tools.on("itadm", "create-target", stdout="Target iqn.1986-03.com.sun:02:abc successfully created\n")

        result = runner.invoke(app, ["target", "create"])

        assert result.exit_code == 0
        assert "iqn.1986-03.com.sun:02:abc" in result.stdout

    def test_target_exists_exit_code(self, tools):
        result = runner.invoke(app, ["target", "exists", "iqn.2000-01.org.example:none"])

        assert result.exit_code == 1
        assert "no" in result.stdout

    def test_lu_add_view(self, tools):
        tools.on("stmfadm", "list-lu", GUID, stdout=f"LU Name: {GUID}\n")
        tools.on("stmfadm", "add-view", "-n", "3", "-t", "tg1", GUID)

        result = runner.invoke(app, ["lu", "add-view", GUID, "--lun", "3", "--target-group", "tg1"])

        assert result.exit_code == 0
        assert "Added" in result.stdout
        assert tools.ran("stmfadm", "add-view", "-n", "3", "-t", "tg1", GUID)

    def test_tg_members(self, tools):
        tools.on("stmfadm", "list-tg", "-v", "tg1",
                 stdout="Target Group: tg1\n        Member: iqn.1986-03.com.sun:02:abc\n")

        result = runner.invoke(app, ["tg", "members", "tg1"])

        assert result.exit_code == 0
        assert "iqn.1986-03.com.sun:02:abc" in result.stdout

    def test_command_failure_shows_tool_output(self, tools):
        tools.on("stmfadm", "list-lu", GUID, stdout=f"LU Name: {GUID}\n")
        tools.on("stmfadm", "delete-lu", GUID, returncode=1, stderr="stmfadm: LU busy\n")

        result = runner.invoke(app, ["lu", "delete", GUID, "--yes"])

        assert result.exit_code == 1
        assert "busy" in result.stdout


class TestConfigErrors:

    def test_bad_timeout_exits_cleanly(self, monkeypatch):
        monkeypatch.setenv("ZFSCTL_COMMAND_TIMEOUT", "ten")

        result = runner.invoke(app, ["version"])

        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)
        assert "ZFSCTL_COMMAND_TIMEOUT" in result.stdout
