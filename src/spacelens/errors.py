"""Exceptions raised by spacelens."""

import errno
from pathlib import Path


class SpacelensError(Exception):
    """Base class for all spacelens errors."""


class RootUnreadableError(SpacelensError):
    """The path the caller asked to scan could not be listed."""

    def __init__(self, path: str | Path, cause: OSError):
        self.path = str(path)
        self.cause = cause
        reason = "permission denied" if self.permission_denied else (cause.strerror or str(cause))
        super().__init__(f"Cannot read {self.path}: {reason}")

    @property
    def permission_denied(self) -> bool:
        """True when the failure was an access error rather than other I/O."""
        return isinstance(self.cause, PermissionError) or self.cause.errno in (
            errno.EACCES,
            errno.EPERM,
        )


class ScanCancelledError(SpacelensError):
    """A scan was abandoned before it completed."""


class CacheWriteError(SpacelensError):
    """A cache record could not be persisted."""


class UnsafePathError(SpacelensError):
    """A path was refused for deletion."""


class TrashError(SpacelensError):
    """Moving a path to the trash failed."""

    def __init__(self, path: str | Path, message: str):
        self.path = str(path)
        super().__init__(f"{self.path}: {message}")


class TrashCancelledError(TrashError):
    """The trash operation was aborted before anything was moved."""
