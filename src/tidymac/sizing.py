"""On-disk size calculation for tidymac."""

import logging
import os
import stat
from pathlib import Path
from typing import Iterable, Optional

from tidymac.errors import SizingCancelled
from tidymac.scheduler import BoundedExecutor, CancellationToken, Completed, is_cancelled

log = logging.getLogger(__name__)

BLOCK_SIZE = 512  # st_blocks is always counted in 512-byte units


def allocated_size(st: os.stat_result) -> int:
    """Bytes actually allocated on disk for a stat result.

    Falls back to the logical size on platforms without ``st_blocks``.
    """
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return st.st_size
    return blocks * BLOCK_SIZE


def _entry_allocated_size(entry: os.DirEntry) -> int:
    return allocated_size(entry.stat(follow_symlinks=False))


def directory_size(
    path: Path,
    skip_hidden: bool = True,
    cancel: Optional[CancellationToken] = None,
) -> int:
    """
    Sum the allocated size of every regular file below ``path``.

    Streams with os.scandir over an explicit stack of directories, so memory
    stays bounded by tree depth rather than entry count. Symlinks are never
    followed. Entries that fail to stat, and directories that fail to open,
    contribute zero.

    Args:
        path: Directory to measure
        skip_hidden: Skip entries whose name starts with "." (root excluded)
        cancel: Optional token checked before each directory

    Returns:
        Total allocated bytes

    Raises:
        SizingCancelled: The token was set before the walk finished
    """
    total = 0
    stack = [os.fspath(path)]

    while stack:
        if is_cancelled(cancel):
            raise SizingCancelled(path, "Sizing cancelled")
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    if skip_hidden and entry.name.startswith("."):
                        continue
                    try:
                        if entry.is_file(follow_symlinks=False):
                            total += _entry_allocated_size(entry)
                        elif entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                    except OSError as e:
                        log.debug("Skipping %s: %s", entry.path, e)
        except OSError as e:
            log.debug("Cannot list %s: %s", current, e)

    return total


def item_size(path: Path, skip_hidden: bool = True, cancel: Optional[CancellationToken] = None) -> int:
    """
    Allocated size of a file or directory.

    Args:
        path: File or directory (symlinks are measured as links, not targets)
        skip_hidden: Passed through to directory_size for directories
        cancel: Optional cancellation token

    Returns:
        Allocated bytes, or 0 if the path cannot be inspected

    Raises:
        SizingCancelled: A directory walk was cancelled before it finished
    """
    try:
        st = os.lstat(path)
    except OSError as e:
        log.debug("Cannot stat %s: %s", path, e)
        return 0

    if stat.S_ISDIR(st.st_mode):
        return directory_size(path, skip_hidden=skip_hidden, cancel=cancel)
    if stat.S_ISREG(st.st_mode):
        return allocated_size(st)
    return 0


def calculate_sizes(
    paths: Iterable[Path],
    skip_hidden: bool = True,
    max_workers: int = 4,
    cancel: Optional[CancellationToken] = None,
) -> dict[Path, int]:
    """
    Size several roots in parallel with a concurrency cap.

    Args:
        paths: Roots to measure
        skip_hidden: Passed through to item_size
        max_workers: Maximum number of roots measured at once
        cancel: Optional token; undispatched and cancelled roots are left out of the result

    Returns:
        Mapping of each measured root to its allocated size
    """
    executor = BoundedExecutor(max_workers, name="tidymac-size")
    outcomes = executor.run(
        list(paths),
        lambda p: item_size(p, skip_hidden=skip_hidden, cancel=cancel),
        cancel=cancel,
    )
    return {o.item: o.value for o in outcomes if isinstance(o, Completed)}
