"""User-maintained exclusion list.

Whitelisted paths are never sized by the scanner and never deleted by the
cleaning service. The list lives in a small JSON file owned by the user.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

log = logging.getLogger(__name__)


class WhitelistEntry(BaseModel):
    """A path the user never wants cleaned."""

    path: Path
    name: str = ""
    reason: Optional[str] = None
    date_added: datetime = Field(default_factory=datetime.now)


_ENTRIES = TypeAdapter(list[WhitelistEntry])


class WhitelistError(ValueError):
    """The whitelist file exists but cannot be parsed."""


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


class Whitelist:
    """In-memory view of the exclusion list."""

    def __init__(self, entries: Iterable[WhitelistEntry] = ()):
        self.entries: list[WhitelistEntry] = list(entries)

    @classmethod
    def from_paths(cls, paths: Iterable[Path | str]) -> "Whitelist":
        return cls(WhitelistEntry(path=Path(p), name=Path(p).name) for p in paths)

    @classmethod
    def load(cls, path: Path) -> "Whitelist":
        """
        Read a whitelist file.

        Args:
            path: JSON file written by save()

        Returns:
            Whitelist, empty if the file does not exist

        Raises:
            WhitelistError: If the file exists but is not a valid whitelist
        """
        if not path.exists():
            return cls()
        try:
            entries = _ENTRIES.validate_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            raise WhitelistError(f"Cannot read whitelist {path}: {e}") from e
        log.debug("Loaded %d whitelist entries from %s", len(entries), path)
        return cls(entries)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = _ENTRIES.dump_python(self.entries, mode="json")
        path.write_text(json.dumps(data, indent=2))

    def add(self, path: Path | str, reason: Optional[str] = None) -> WhitelistEntry:
        """Add a path (expanded and made absolute). Re-adding returns the existing entry."""
        target = Path(path).expanduser().absolute()
        for entry in self.entries:
            if entry.path == target:
                return entry
        entry = WhitelistEntry(path=target, name=target.name, reason=reason)
        self.entries.append(entry)
        return entry

    def remove(self, path: Path | str) -> bool:
        target = Path(path).expanduser().absolute()
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.path != target]
        return len(self.entries) != before

    def is_excluded(self, path: Path | str) -> bool:
        """
        Whether cleaning ``path`` would touch a whitelisted location.

        True when the path is a whitelisted entry, lies inside one, or contains
        one (deleting a parent would take the protected child with it).
        Symlinks are resolved on both sides.
        """
        if not self.entries:
            return False
        candidate = Path(path).resolve(strict=False)
        for entry in self.entries:
            protected = entry.path.resolve(strict=False)
            if _is_within(candidate, protected) or _is_within(protected, candidate):
                return True
        return False

    def protects(self, path: Path | str) -> bool:
        """Whether ``path`` is a whitelisted entry or lies inside one."""
        if not self.entries:
            return False
        candidate = Path(path).resolve(strict=False)
        return any(_is_within(candidate, e.path.resolve(strict=False)) for e in self.entries)

    def __len__(self) -> int:
        return len(self.entries)
