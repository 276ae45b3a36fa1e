"""Recoverable trash directory."""

import logging
import os
import shutil
import threading
from pathlib import Path

log = logging.getLogger(__name__)


def remove_permanently(path: Path) -> None:
    """
    Delete a file, symlink or directory tree for good.

    Symlinks are unlinked, never followed; directory trees are removed with
    shutil.rmtree, which does not descend into linked directories either.

    Raises:
        OSError: If removal fails
    """
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


class TrashBin:
    """A directory receiving items that should stay recoverable."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._reserved: set[str] = set()

    def contains(self, path: Path) -> bool:
        """Whether ``path`` lies strictly inside the trash directory."""
        return self.path.resolve() in Path(path).resolve(strict=False).parents

    def entries(self) -> list[Path]:
        """Top-level entries of the trash. Empty if the directory is missing."""
        try:
            with os.scandir(self.path) as it:
                return sorted(Path(entry.path) for entry in it)
        except FileNotFoundError:
            return []

    def _unique_target(self, name: str) -> Path:
        # Reserved names guard against two workers picking the same free name
        with self._lock:
            stem, suffix = os.path.splitext(name)
            candidate = name
            counter = 2
            while candidate in self._reserved or os.path.lexists(self.path / candidate):
                candidate = f"{stem} {counter}{suffix}"
                counter += 1
            self._reserved.add(candidate)
            return self.path / candidate

    def move(self, path: Path) -> Path:
        """
        Move an item into the trash under a unique name.

        Args:
            path: File or directory to move

        Returns:
            Location of the item inside the trash

        Raises:
            OSError: If the move fails
        """
        self.path.mkdir(parents=True, exist_ok=True)
        target = self._unique_target(path.name)
        try:
            shutil.move(os.fspath(path), os.fspath(target))
        finally:
            with self._lock:
                self._reserved.discard(target.name)
        log.debug("Moved %s to %s", path, target)
        return target
