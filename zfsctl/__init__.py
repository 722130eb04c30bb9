"""zfsctl - command-line automation over ZFS and COMSTAR iSCSI targets."""

__version__ = "0.3.0"
