"""Cleanup execution with safety checks for tidymac."""

import errno
import logging
import os
from pathlib import Path
from typing import Optional

from tidymac.config import Settings, get_settings
from tidymac.errors import DeletionError, DeletionFailed, PermissionDenied, ResourceBusy
from tidymac.models import (
    CleanCategory,
    CleaningResult,
    DeletedItem,
    FailedItem,
    FailureReason,
    ScannedItem,
)
from tidymac.safety import PathValidator
from tidymac.scheduler import BoundedExecutor, CancellationToken, Completed, ProgressCallback
from tidymac.trash import TrashBin, remove_permanently

log = logging.getLogger(__name__)


def _deletion_error(path: Path, e: OSError) -> DeletionError:
    """Classify an OSError raised while removing ``path``."""
    detail = e.strerror or str(e)
    if e.errno in (errno.EACCES, errno.EPERM):
        return PermissionDenied(path, f"Permission denied ({detail})")
    if e.errno == errno.EBUSY:
        return ResourceBusy(path, f"Resource busy ({detail})")
    return DeletionFailed(path, f"Deletion failed ({detail})")


class CleaningService:
    """
    Deletes scanned items after re-validating each one.

    Items of the trash category are removed permanently; everything else is
    moved into the recoverable trash directory.
    """

    def __init__(
        self,
        validator: PathValidator,
        trash: Optional[TrashBin] = None,
        settings: Optional[Settings] = None,
    ):
        self.validator = validator
        self.settings = settings or get_settings()
        self.trash = trash or TrashBin(validator.trash_dir)

    def delete_items(
        self,
        items: list[ScannedItem],
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
        dry_run: bool = False,
    ) -> CleaningResult:
        """
        Delete the selected items.

        Args:
            items: Scanned items; only those with is_selected=True are processed
            on_progress: Optional callback(fraction, message) per processed item
            cancel: Optional token; items not yet started are reported as failed
            dry_run: Validate and report without touching the filesystem

        Returns:
            CleaningResult in which every selected item is either deleted or failed
        """
        batch = [item for item in items if item.is_selected]
        executor = BoundedExecutor(self.settings.file_workers, name="tidymac-clean")

        outcomes = executor.run(
            batch,
            lambda item: self._delete_one(item, dry_run),
            on_progress=on_progress,
            describe=lambda outcome, done, total: f"Cleaned {outcome.item.name} ({done}/{total})",
            cancel=cancel,
        )

        result = CleaningResult(dry_run=dry_run)
        processed: set[int] = set()
        for outcome in outcomes:
            processed.add(id(outcome.item))
            if isinstance(outcome, Completed):
                result.deleted.append(outcome.value)
                continue
            error = outcome.error
            if isinstance(error, DeletionError):
                reason, message = error.reason, error.message
            else:
                reason, message = FailureReason.DELETION_FAILED, str(error)
            log.warning("Could not clean %s: %s", outcome.item.path, message)
            result.failed.append(FailedItem(item=outcome.item, reason=reason, message=message))

        for item in batch:
            if id(item) not in processed:
                result.failed.append(
                    FailedItem(item=item, reason=FailureReason.DELETION_FAILED, message="Cancelled")
                )
        return result

    def _delete_one(self, item: ScannedItem, dry_run: bool) -> DeletedItem:
        """
        Validate and remove one item.

        Raises:
            DeletionError: Classified failure; converted to a FailedItem by the caller
        """
        # Re-validate at delete time; the path may have changed since the scan
        real = self.validator.require_safe(item.path)
        if os.path.islink(item.path):
            # A link is removed as a link; its target stays where it is
            real = self.validator.require_safe(item.path, follow_symlinks=False)

        if not os.path.lexists(real):
            return DeletedItem(item=item, bytes_freed=0, already_absent=True)

        if not os.access(real.parent, os.W_OK | os.X_OK):
            raise PermissionDenied(real, "No write permission on parent directory")

        if dry_run:
            return DeletedItem(item=item, bytes_freed=item.size_bytes)

        try:
            if item.category == CleanCategory.TRASH:
                remove_permanently(real)
            else:
                self.trash.move(real)
        except OSError as e:
            if e.errno == errno.ENOENT:
                return DeletedItem(item=item, bytes_freed=0, already_absent=True)
            raise _deletion_error(real, e) from e

        log.info("Cleaned %s (%s)", real, item.size_human)
        return DeletedItem(item=item, bytes_freed=item.size_bytes)

    def empty_trash(
        self,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> tuple[int, int]:
        """
        Permanently remove every entry of the trash directory.

        Symlinks inside the trash are unlinked, never followed.

        Returns:
            Tuple of (removed_count, failed_count)
        """
        entries = self.trash.entries()
        executor = BoundedExecutor(self.settings.file_workers, name="tidymac-trash")

        def remove(path: Path) -> None:
            try:
                remove_permanently(path)
            except FileNotFoundError:
                pass

        outcomes = executor.run(entries, remove, on_progress=on_progress, cancel=cancel)
        removed = sum(1 for o in outcomes if o.ok)
        failed = len(outcomes) - removed
        for outcome in outcomes:
            if not outcome.ok:
                log.warning("Could not remove %s from trash: %s", outcome.item, outcome.error)
        return removed, failed
