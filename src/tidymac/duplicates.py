"""Duplicate file detection for tidymac.

Three stages: bucket candidate files by size, fingerprint every file in a
multi-member bucket, then group files sharing a (size, digest) fingerprint.
"""

import hashlib
import logging
import os
import stat
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from tidymac.config import Settings, get_settings
from tidymac.errors import HashReadFailure
from tidymac.models import DuplicateFile, DuplicateGroup
from tidymac.scanner import PACKAGE_SUFFIXES
from tidymac.scheduler import BoundedExecutor, CancellationToken, Completed, ProgressCallback, is_cancelled

log = logging.getLogger(__name__)

# Folders searched when the caller asks for the whole home directory
HOME_SEARCH_FOLDERS = ("Downloads", "Documents", "Desktop", "Pictures")

_READ_SIZE = 64 * 1024


def full_digest(path: Path) -> str:
    """SHA-256 of the whole file, read in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(_READ_SIZE):
            h.update(chunk)
    return h.hexdigest()


def partial_digest(path: Path, size: int, chunk_size: int) -> str:
    """
    SHA-256 of the first chunk, plus the last chunk when the file spans more than two.

    Files that differ only in the middle collide; callers needing exact
    answers use full_digest.
    """
    h = hashlib.sha256()
    with open(path, "rb") as f:
        h.update(f.read(chunk_size))
        if size > 2 * chunk_size:
            f.seek(-chunk_size, os.SEEK_END)
            h.update(f.read(chunk_size))
    return h.hexdigest()


class DuplicateFinder:
    """Finds groups of files with identical content."""

    def __init__(self, settings: Optional[Settings] = None, home: Optional[Path] = None):
        self.settings = settings or get_settings()
        self.home = Path(home) if home is not None else self.settings.home

    def find_duplicates(
        self,
        directories: Iterable[Path],
        min_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
        full_hash: bool = False,
    ) -> list[DuplicateGroup]:
        """
        Find duplicate files below the given directories.

        Args:
            directories: Roots to search; the home directory itself expands to
                its Downloads, Documents, Desktop and Pictures folders
            min_size: Ignore files smaller than this many bytes
                (default: settings.duplicate_min_bytes)
            on_progress: Optional callback(fraction, message)
            cancel: Optional token; a cancelled search returns groups among the
                files hashed so far
            full_hash: Hash whole files regardless of size

        Returns:
            Groups sorted by wasted space (largest first), capped at
            settings.max_duplicate_groups
        """
        if min_size is None:
            min_size = self.settings.duplicate_min_bytes

        if on_progress:
            on_progress(0.0, "Indexing files...")

        buckets: dict[int, list[Path]] = defaultdict(list)
        for path, st in self._index(self._expand_roots(directories), min_size, cancel):
            buckets[st.st_size].append(path)

        candidates = [
            (path, size) for size, paths in buckets.items() if len(paths) > 1 for path in paths
        ]
        log.debug("%d candidate files in %d size buckets", len(candidates), len(buckets))

        executor = BoundedExecutor(self.settings.file_workers, name="tidymac-hash")
        outcomes = executor.run(
            candidates,
            lambda candidate: self._fingerprint(candidate[0], candidate[1], full_hash),
            on_progress=on_progress,
            describe=lambda outcome, done, total: f"Hashed {done}/{total} files",
            cancel=cancel,
        )

        by_fingerprint: dict[tuple[int, str], list[Path]] = defaultdict(list)
        for outcome in outcomes:
            if isinstance(outcome, Completed):
                path, size = outcome.item
                by_fingerprint[(size, outcome.value)].append(path)
            else:
                log.debug("Dropping unreadable file: %s", outcome.error)

        groups = [
            self._build_group(size, digest, paths)
            for (size, digest), paths in by_fingerprint.items()
            if len(paths) > 1
        ]
        groups.sort(key=lambda g: (-g.wasted_space, g.digest))
        groups = groups[: self.settings.max_duplicate_groups]

        if on_progress:
            on_progress(1.0, f"Found {len(groups)} duplicate groups")
        return groups

    # =============================================================================
    # Stages
    # =============================================================================

    def _expand_roots(self, directories: Iterable[Path]) -> list[Path]:
        home = self.home.resolve()
        roots: list[Path] = []
        for directory in directories:
            directory = Path(directory).expanduser()
            if directory.resolve() == home:
                roots.extend(home / name for name in HOME_SEARCH_FOLDERS if (home / name).is_dir())
            elif directory.is_dir():
                roots.append(directory)
        return roots

    def _index(
        self,
        roots: list[Path],
        min_size: int,
        cancel: Optional[CancellationToken],
    ) -> Iterable[tuple[Path, os.stat_result]]:
        """Yield regular files of at least ``min_size`` bytes, each inode once."""
        seen: set[tuple[int, int]] = set()
        stack = [os.fspath(root) for root in roots]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                log.debug("Cannot list %s: %s", current, e)
                continue

            for entry in entries:
                if is_cancelled(cancel):
                    return
                if entry.name.startswith("."):
                    continue
                try:
                    if entry.is_dir(follow_symlinks=False):
                        if not entry.name.endswith(PACKAGE_SUFFIXES):
                            stack.append(entry.path)
                        continue
                    st = entry.stat(follow_symlinks=False)
                except OSError as e:
                    log.debug("Skipping %s: %s", entry.path, e)
                    continue
                if not stat.S_ISREG(st.st_mode) or st.st_size < min_size:
                    continue
                key = (st.st_dev, st.st_ino)
                if key in seen:
                    continue
                seen.add(key)
                yield Path(entry.path), st

    def _fingerprint(self, path: Path, size: int, full_hash: bool) -> str:
        try:
            if full_hash or size <= self.settings.full_hash_limit_bytes:
                return full_digest(path)
            return partial_digest(path, size, self.settings.hash_chunk_bytes)
        except OSError as e:
            raise HashReadFailure(path, f"Cannot read file ({e.strerror or e})") from e

    @staticmethod
    def _build_group(size: int, digest: str, paths: list[Path]) -> DuplicateGroup:
        files = []
        for path in paths:
            try:
                modified: Optional[datetime] = datetime.fromtimestamp(os.stat(path).st_mtime)
            except OSError:
                modified = None
            files.append(DuplicateFile(path=path, modified=modified))

        # Earliest modification wins; unknown times sort last, path breaks ties
        files.sort(key=lambda f: (f.modified is None, f.modified or datetime.min, str(f.path)))
        files[0].is_original = True
        return DuplicateGroup(digest=digest, size_bytes=size, files=files)
