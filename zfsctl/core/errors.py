"""Errors raised by zfsctl operations."""
from typing import List, Optional


class ZFSError(Exception):
    """Base class for every zfsctl error."""
    pass


class NotFound(ZFSError):
    """Raised when a dataset, target, group or logical unit does not exist."""
    pass


class AlreadyExists(ZFSError):
    """Raised when creating or renaming onto something that already exists."""
    pass


class InvalidName(ZFSError):
    """Raised when a name is missing or malformed for the requested operation."""
    pass


class PropertyValueError(ZFSError):
    """Raised when a tool reports a property value outside its declared domain."""
    pass


class CommandError(ZFSError):
    """Raised when an external tool fails or prints something unexpected.

    Attributes:
        cmd: argv that was run
        returncode: Exit status of the tool
        output: Raw tool output (stdout followed by stderr)
    """

    def __init__(
        self,
        message: str,
        cmd: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        output: str = "",
    ):
        self.cmd = list(cmd or [])
        self.returncode = returncode
        self.output = output

        detail = output.strip()
        if detail:
            message = f"{message}: {detail}"
        elif returncode:
            message = f"{message} (exit status {returncode})"
        super().__init__(message)
