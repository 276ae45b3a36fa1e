"""Disk scanning functionality for tidymac."""

import logging
import os
import stat
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from tidymac.categories import (
    CategoryInfo,
    ScanStrategy,
    WalkFilter,
    expand_path,
    get_category,
)
from tidymac.config import Settings, get_settings
from tidymac.errors import EnumerationFailure, SizingCancelled
from tidymac.events import EventChannel, FoundCallback
from tidymac.models import CleanCategory, ScannedItem, ScanResult
from tidymac.safety import is_system_name
from tidymac.scheduler import (
    BoundedExecutor,
    CancellationToken,
    Completed,
    Failed,
    ProgressCallback,
    is_cancelled,
)
from tidymac.sizing import allocated_size, calculate_sizes, item_size
from tidymac.whitelist import Whitelist

log = logging.getLogger(__name__)

# Directory suffixes treated as opaque documents by the recursive walk
PACKAGE_SUFFIXES = (".app", ".bundle", ".photoslibrary", ".framework")

SECONDS_PER_DAY = 86400


def _mtime(path: Path) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(os.lstat(path).st_mtime)
    except OSError:
        return None


def _list_children(root: Path) -> list[os.DirEntry]:
    try:
        with os.scandir(root) as entries:
            return list(entries)
    except OSError as e:
        raise EnumerationFailure(root, f"Cannot list directory ({e.strerror or e})") from e


class DiskScanner:
    """
    Discovers reclaimable items per cleanup category.

    Each category declares a ScanStrategy; ``scan`` routes through a lookup
    table so new categories only need a table entry in tidymac.categories.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        home: Optional[Path] = None,
        whitelist: Optional[Whitelist] = None,
    ):
        self.settings = settings or get_settings()
        self.home = Path(home) if home is not None else self.settings.home
        self.whitelist = whitelist or Whitelist()
        self._strategies: dict[
            ScanStrategy,
            Callable[[CategoryInfo, EventChannel, Optional[CancellationToken]], list[ScannedItem]],
        ] = {
            ScanStrategy.CHILDREN: self._scan_children,
            ScanStrategy.CANDIDATES: self._scan_candidates,
            ScanStrategy.FILE_WALK: self._scan_file_walk,
        }

    # =============================================================================
    # Public API
    # =============================================================================

    def scan(
        self,
        categories: Optional[list[CleanCategory]] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_found: Optional[FoundCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ScanResult:
        """
        Scan categories in parallel.

        Args:
            categories: Categories to scan, or None for all of them
            on_progress: Optional callback(fraction, message) per finished category
            on_found: Optional callback(path, size, category) per qualifying item,
                always invoked on the calling thread
            cancel: Optional token; a cancelled scan returns what it found so far

        Returns:
            ScanResult with items grouped in the order categories were requested
        """
        started = time.monotonic()
        if categories is None:
            categories = list(CleanCategory)
        categories = list(dict.fromkeys(categories))

        channel = EventChannel(on_found)
        executor = BoundedExecutor(self.settings.directory_workers, name="tidymac-scan")

        def describe(outcome, completed: int, total: int) -> str:
            return f"Scanned {get_category(outcome.item).name}"

        outcomes = executor.run(
            categories,
            lambda category: self._scan_category(category, channel, cancel),
            on_progress=on_progress,
            describe=describe,
            cancel=cancel,
            on_tick=channel.drain,
        )

        found: dict[CleanCategory, list[ScannedItem]] = {}
        errors: dict[CleanCategory, str] = {}
        for outcome in outcomes:
            if isinstance(outcome, Completed):
                found[outcome.item] = outcome.value
            elif isinstance(outcome, Failed):
                name = get_category(outcome.item).name
                log.warning("%s scan failed: %s", name, outcome.error)
                errors[outcome.item] = f"{name}: {outcome.error}"

        items: list[ScannedItem] = []
        for category in categories:
            items.extend(found.get(category, []))

        if on_progress:
            on_progress(1.0, "Scan complete")

        return ScanResult(
            items=items,
            duration_seconds=time.monotonic() - started,
            errors=[errors[c] for c in categories if c in errors],
        )

    def scan_single_category(
        self,
        category: CleanCategory,
        on_progress: Optional[ProgressCallback] = None,
        on_found: Optional[FoundCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ScanResult:
        """Scan one category. Same contract as scan()."""
        return self.scan([category], on_progress=on_progress, on_found=on_found, cancel=cancel)

    # =============================================================================
    # Strategies
    # =============================================================================

    def _scan_category(
        self,
        category: CleanCategory,
        channel: EventChannel,
        cancel: Optional[CancellationToken],
    ) -> list[ScannedItem]:
        info = get_category(category)
        if is_cancelled(cancel):
            return []
        items = self._strategies[info.strategy](info, channel, cancel)
        items.sort(key=lambda item: (-item.size_bytes, str(item.path)))
        return items

    def _roots(self, info: CategoryInfo) -> list[Path]:
        return [expand_path(p, self.home) for p in info.paths]

    def _floor(self, info: CategoryInfo) -> int:
        if info.min_size_bytes is not None:
            return info.min_size_bytes
        return self.settings.min_item_bytes

    def _scan_children(
        self,
        info: CategoryInfo,
        channel: EventChannel,
        cancel: Optional[CancellationToken],
    ) -> list[ScannedItem]:
        """Size every eligible immediate child of each root as one item."""
        candidates: list[Path] = []
        for root in self._roots(info):
            if not root.is_dir():
                continue
            for entry in _list_children(root):
                name = entry.name
                if name.startswith(".") or is_system_name(name):
                    continue
                if any(name.startswith(prefix) for prefix in info.skip_prefixes):
                    continue
                path = Path(entry.path)
                if self.whitelist.is_excluded(path):
                    log.debug("Whitelisted, not sizing: %s", path)
                    continue
                candidates.append(path)

        sizes = calculate_sizes(
            candidates,
            max_workers=info.workers or self.settings.directory_workers,
            cancel=cancel,
        )
        return self._collect(info, candidates, sizes, channel)

    def _scan_candidates(
        self,
        info: CategoryInfo,
        channel: EventChannel,
        cancel: Optional[CancellationToken],
    ) -> list[ScannedItem]:
        """Size each existing fixed location sequentially."""
        sizes: dict[Path, int] = {}
        candidates = []
        for path in self._roots(info):
            if is_cancelled(cancel):
                break
            if not os.path.lexists(path) or self.whitelist.is_excluded(path):
                continue
            try:
                sizes[path] = item_size(path, cancel=cancel)
            except SizingCancelled:
                break
            candidates.append(path)
        return self._collect(info, candidates, sizes, channel)

    def _collect(
        self,
        info: CategoryInfo,
        candidates: list[Path],
        sizes: dict[Path, int],
        channel: EventChannel,
    ) -> list[ScannedItem]:
        floor = self._floor(info)
        items = []
        for path in candidates:
            size = sizes.get(path)
            if size is None or (size <= floor and not info.keep_empty):
                continue
            items.append(
                ScannedItem(path=path, size_bytes=size, category=info.category, modified=_mtime(path))
            )
            channel.found(path, size, info.category)
        return items

    def _file_matcher(self, info: CategoryInfo) -> Callable[[os.stat_result], bool]:
        if info.walk_filter == WalkFilter.OLDER_THAN:
            cutoff = time.time() - self.settings.old_download_days * SECONDS_PER_DAY
            floor = self._floor(info)
            return lambda st: st.st_mtime < cutoff and allocated_size(st) > floor
        if info.walk_filter == WalkFilter.LARGER_THAN:
            threshold = self.settings.large_file_bytes
            return lambda st: allocated_size(st) > threshold
        raise ValueError(f"{info.name} has no walk filter")

    def _scan_file_walk(
        self,
        info: CategoryInfo,
        channel: EventChannel,
        cancel: Optional[CancellationToken],
    ) -> list[ScannedItem]:
        """
        Single recursive pass keeping files that satisfy the category filter.

        Hidden entries and package directories are skipped, symlinks are not
        followed. Matches are reported as they are found.
        """
        matches = self._file_matcher(info)
        items: list[ScannedItem] = []

        for root in self._roots(info):
            if not root.is_dir():
                continue
            stack = [str(root)]
            while stack:
                current = stack.pop()
                try:
                    with os.scandir(current) as it:
                        entries = list(it)
                except OSError as e:
                    # Unlistable roots are a category error; unlistable subfolders are skipped
                    if current == str(root):
                        raise EnumerationFailure(root, f"Cannot list directory ({e.strerror or e})") from e
                    log.debug("Cannot list %s: %s", current, e)
                    continue

                for entry in entries:
                    if is_cancelled(cancel):
                        return items
                    if entry.name.startswith("."):
                        continue
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            if not entry.name.endswith(PACKAGE_SUFFIXES) and not self.whitelist.protects(
                                entry.path
                            ):
                                stack.append(entry.path)
                            continue
                        if not entry.is_file(follow_symlinks=False):
                            continue
                        st = entry.stat(follow_symlinks=False)
                    except OSError as e:
                        log.debug("Skipping %s: %s", entry.path, e)
                        continue
                    if not stat.S_ISREG(st.st_mode) or not matches(st):
                        continue
                    path = Path(entry.path)
                    if self.whitelist.protects(path):
                        continue
                    size = allocated_size(st)
                    items.append(
                        ScannedItem(
                            path=path,
                            size_bytes=size,
                            category=info.category,
                            modified=datetime.fromtimestamp(st.st_mtime),
                        )
                    )
                    channel.found(path, size, info.category)
        return items
