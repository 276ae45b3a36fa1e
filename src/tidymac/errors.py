"""Error taxonomy for tidymac.

Batch operations never let these escape: the scheduler captures them per item
and the services fold them into their result structures.
"""

from pathlib import Path
from typing import Optional

from tidymac.models import FailureReason


class TidyError(Exception):
    """Base class for all tidymac errors."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        self.message = message
        super().__init__(f"{message}: {path}")


class EnumerationFailure(TidyError):
    """A category root exists but could not be listed."""


class HashReadFailure(TidyError):
    """A duplicate candidate could not be read; it is dropped from its bucket."""


class DeletionError(TidyError):
    """A single deletion failed. ``reason`` classifies the failure."""

    reason: FailureReason = FailureReason.DELETION_FAILED


class PathRejected(DeletionError):
    """The validator refused the path."""

    reason = FailureReason.PATH_REJECTED

    def __init__(self, path: Path | str, message: str, resolved: Optional[Path] = None):
        super().__init__(path, message)
        self.resolved = resolved


class PermissionDenied(DeletionError):
    reason = FailureReason.PERMISSION_DENIED


class ResourceBusy(DeletionError):
    reason = FailureReason.RESOURCE_BUSY


class DeletionFailed(DeletionError):
    reason = FailureReason.DELETION_FAILED


class SizingCancelled(TidyError):
    """A size walk was cancelled part way; its partial sum is not a size."""
