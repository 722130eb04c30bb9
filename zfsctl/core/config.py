"""zfsctl runtime configuration and settings."""
import os
import shlex
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Union

import yaml

from zfsctl.core.errors import ZFSError

# Default config search paths (ordered by proximity to current run)
CONFIG_PATHS = [
    "./zfsctl.yml",
    str(Path.home() / ".config" / "zfsctl" / "zfsctl.yml"),
    "/etc/zfsctl/zfsctl.yml",
]

TOOL_KEYS = ("zfs", "zpool", "stmfadm", "itadm")

_TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigError(ZFSError):
    """Raised when a configuration file cannot be used."""
    pass


def _argv(value: Union[str, List[str]]) -> List[str]:
    """Normalize a tool setting into an argv prefix ('sudo zfs' -> ['sudo', 'zfs'])."""
    if isinstance(value, str):
        return shlex.split(value)
    return [str(part) for part in value]


def _timeout(value, source: str) -> int:
    try:
        timeout = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{source} must be a whole number of seconds, got {value!r}")
    if timeout < 0:
        raise ConfigError(f"{source} must not be negative, got {timeout}")
    return timeout


@dataclass
class ZfsctlConfig:
    """Runtime configuration for zfsctl operations.

    Attributes:
        zfs_path: argv prefix used to invoke zfs (default: ["zfs"])
        zpool_path: argv prefix used to invoke zpool (default: ["zpool"])
        stmfadm_path: argv prefix used to invoke stmfadm (default: ["stmfadm"])
        itadm_path: argv prefix used to invoke itadm (default: ["itadm"])
        zvol_dir: Directory holding zvol block devices (default: /dev/zvol/dsk)
        command_timeout: Timeout in seconds for a single command, 0 disables (default: 300)
        mock: Log commands instead of running them
    """

    zfs_path: List[str] = field(default_factory=lambda: ["zfs"])
    zpool_path: List[str] = field(default_factory=lambda: ["zpool"])
    stmfadm_path: List[str] = field(default_factory=lambda: ["stmfadm"])
    itadm_path: List[str] = field(default_factory=lambda: ["itadm"])

    zvol_dir: str = "/dev/zvol/dsk"

    command_timeout: int = 300  # 5 minutes; send/receive pipes are not bounded

    mock: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "ZfsctlConfig":
        """Create config from a parsed YAML mapping.

        Recognized layout:

            tools:
              zfs: sudo zfs
              stmfadm: [pfexec, stmfadm]
            zvol_dir: /dev/zvol
            command_timeout: 60
            mock: false
        """
        config = cls()
        config.update(data)
        return config

    def update(self, data: dict):
        """Apply values from a parsed YAML mapping onto this config."""
        if not isinstance(data, dict):
            raise ConfigError(f"Config must be a mapping, got {type(data).__name__}")

        tools = data.get("tools") or {}
        if not isinstance(tools, dict):
            raise ConfigError("'tools' must be a mapping of tool name to command")
        for key, value in tools.items():
            if key not in TOOL_KEYS:
                raise ConfigError(f"Unknown tool '{key}' (expected one of {', '.join(TOOL_KEYS)})")
            setattr(self, f"{key}_path", _argv(value))

        if "zvol_dir" in data:
            self.zvol_dir = str(data["zvol_dir"]).rstrip("/")
        if "command_timeout" in data:
            self.command_timeout = _timeout(data["command_timeout"], "command_timeout")
        if "mock" in data:
            self.mock = bool(data["mock"])

    def update_from_env(self):
        """Apply environment overrides.

        Environment variables:
            ZFSCTL_ZFS, ZFSCTL_ZPOOL, ZFSCTL_STMFADM, ZFSCTL_ITADM: tool commands
            ZFSCTL_ZVOL_DIR: zvol device directory
            ZFSCTL_COMMAND_TIMEOUT: command timeout in seconds
            ZFSCTL_MOCK: log commands instead of running them
        """
        for key in TOOL_KEYS:
            value = os.getenv(f"ZFSCTL_{key.upper()}")
            if value:
                setattr(self, f"{key}_path", _argv(value))

        if zvol_dir := os.getenv("ZFSCTL_ZVOL_DIR"):
            self.zvol_dir = zvol_dir.rstrip("/")
        if timeout := os.getenv("ZFSCTL_COMMAND_TIMEOUT"):
            self.command_timeout = _timeout(timeout, "ZFSCTL_COMMAND_TIMEOUT")
        if mock := os.getenv("ZFSCTL_MOCK"):
            self.mock = mock.lower() in _TRUE_VALUES

    @classmethod
    def from_env(cls) -> "ZfsctlConfig":
        """Create config from defaults and environment variables."""
        config = cls()
        config.update_from_env()
        return config

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "ZfsctlConfig":
        """Load config from the first YAML file found, then apply environment overrides.

        Args:
            config_path: Explicit config file; must exist when given

        Returns:
            ZfsctlConfig instance
        """
        config = cls()
        path = find_config(config_path)

        if path is not None:
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except FileNotFoundError:
                raise ConfigError(f"Config file not found: {path}")
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}")
            config.update(data)

        config.update_from_env()
        return config

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def find_config(config_path: Optional[str] = None) -> Optional[str]:
    """Locate the active zfsctl configuration file, or None when there is none."""
    if config_path:
        return config_path

    if env_config := os.environ.get("ZFSCTL_CONFIG"):
        return env_config

    for path in CONFIG_PATHS:
        if Path(path).exists():
            return path

    return None


# Global config instance (can be overridden)
_config: Optional[ZfsctlConfig] = None


def get_config() -> ZfsctlConfig:
    """Get the global zfsctl configuration.

    Returns:
        ZfsctlConfig instance (creates from environment if not set)
    """
    global _config
    if _config is None:
        _config = ZfsctlConfig.from_env()
    return _config


def set_config(config: Optional[ZfsctlConfig]):
    """Set the global zfsctl configuration (None resets to environment defaults)."""
    global _config
    _config = config
