"""Shared test fixtures for zfsctl tests."""
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from zfsctl.core.config import ZfsctlConfig, set_config

ENV_VARS = (
    "ZFSCTL_CONFIG",
    "ZFSCTL_ZFS",
    "ZFSCTL_ZPOOL",
    "ZFSCTL_STMFADM",
    "ZFSCTL_ITADM",
    "ZFSCTL_ZVOL_DIR",
    "ZFSCTL_COMMAND_TIMEOUT",
    "ZFSCTL_MOCK",
)


class FakeTools:
    """Scripted stand-in for zfs, zpool, stmfadm and itadm.

    Commands that were not scripted fail the way zfs does for a missing dataset.
    """

    def __init__(self):
        self.responses = {}
        self.calls = []

    def on(self, *argv, returncode=0, stdout="", stderr=""):
        self.responses[tuple(argv)] = (returncode, stdout, stderr)

    def dataset(self, name):
        """Make `zfs list` report the dataset as existing."""
        self.on("zfs", "list", "-H", "-o", "name", name, stdout=f"{name}\n")

    def prop(self, name, key, value):
        self.on("zfs", "get", "-o", "value", "-H", "-p", key, name, stdout=f"{value}\n")

    def ran(self, *argv):
        return list(argv) in self.calls

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        returncode, stdout, stderr = self.responses.get(
            tuple(cmd),
            (1, "", f"cannot open '{cmd[-1]}': dataset does not exist\n"),
        )
        if kwargs.get("stderr") == subprocess.STDOUT:
            stdout, stderr = stdout + stderr, None
        return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Start every test from default settings, ignoring the caller's environment."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    config = ZfsctlConfig()
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def tools():
    """Patch subprocess.run with a FakeTools instance."""
    fake = FakeTools()
    with patch("zfsctl.core.command.subprocess.run", side_effect=fake):
        yield fake
