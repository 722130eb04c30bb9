"""Views binding a logical unit to a LUN, target group and host group."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from zfsctl.models.logical_unit import LogicalUnit


@dataclass(frozen=True)
class View:
    """A logical unit made visible to initiators.

    None for lun means stmfadm picked one; None for a group means all groups.
    """

    lu: "LogicalUnit"
    lun: Optional[int] = None
    target_group: Optional[str] = None
    host_group: Optional[str] = None
    entry: Optional[int] = field(default=None, compare=False)

    def __str__(self):
        return (
            f"View: [ lu = {self.lu}"
            f", lun = {'Auto' if self.lun is None else self.lun}"
            f", target_group = {self.target_group or 'All'}"
            f", host_group = {self.host_group or 'All'} ]"
        )
