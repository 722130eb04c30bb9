"""Object models for datasets and SCSI target infrastructure."""
from zfsctl.models.dataset import Dataset, Filesystem, Snapshot, dataset, mounts, pools
from zfsctl.models.groups import HostGroup, TargetGroup
from zfsctl.models.iscsi_target import IscsiTarget
from zfsctl.models.logical_unit import LogicalUnit, logical_units
from zfsctl.models.view import View

__all__ = [
    "Dataset",
    "Filesystem",
    "HostGroup",
    "IscsiTarget",
    "LogicalUnit",
    "Snapshot",
    "TargetGroup",
    "View",
    "dataset",
    "logical_units",
    "mounts",
    "pools",
]
