"""Path safety checks guarding every deletion.

The validator works on the real target of a path, so a symlink planted
inside an allowed directory cannot redirect a delete into the system. It only
reads filesystem metadata, and must be re-run right before each delete since
a path can be swapped between scan time and delete time.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel

from tidymac.errors import PathRejected
from tidymac.whitelist import Whitelist

log = logging.getLogger(__name__)

# Absolute roots that are never deleted, nor anything below them
DENIED_ROOTS: tuple[str, ...] = (
    "/System",
    "/usr",
    "/bin",
    "/sbin",
    "/private/var",
    "/private/etc",
    "/Library/Apple",
    "/Library/Preferences/SystemConfiguration",
    "/Applications",
    "/Users/Shared",
)

# Substrings naming OS-managed subsystems, matched anywhere in the real path
DENIED_PATTERNS: tuple[str, ...] = (
    ".Spotlight",
    ".fseventsd",
    ".DocumentRevisions",
    "com.apple.LaunchServices",
    "com.apple.FontRegistry",
    "Keychains",
    "Safari/LocalStorage",
    "Safari/Databases",
    "CoreServices",
    "SystemConfiguration",
    "FontCollections",
    "NetworkInterfaces",
    ".vol/",
    "/.Trashes",
    "/.MobileBackups",
)

# Package-manager prefixes outside home that may hold cleanable data.
# /usr/local entries stay unreachable while /usr is a denied root.
PACKAGE_MANAGER_ROOTS: tuple[str, ...] = (
    "/opt/homebrew",
    "/usr/local/Caches",
    "/usr/local/var",
)

# Child names the scanner never offers, even before validation
SYSTEM_NAME_PATTERNS: tuple[str, ...] = (
    ".Spotlight",
    ".fseventsd",
    ".DocumentRevisions",
    ".MobileBackups",
    ".vol",
    "com.apple.",
    "CloudKit",
    "Keychains",
    "CoreServices",
    "SystemConfiguration",
    "LaunchServices",
    "loginwindow",
    "SystemAppearance",
    "FontCollections",
    "NetworkInterfaces",
    "Bluetooth",
    "WiFi",
    "cups",
    "sshd",
)


def is_system_name(name: str) -> bool:
    """Whether a directory entry name belongs to an OS-managed subsystem."""
    return any(pattern in name for pattern in SYSTEM_NAME_PATTERNS)


def is_within(path: Path, root: Path) -> bool:
    """Component-wise containment: ``path`` equals ``root`` or lies below it."""
    return path == root or root in path.parents


def is_strictly_within(path: Path, root: Path) -> bool:
    return root in path.parents


class PathVerdict(BaseModel):
    """Result of validating one path."""

    path: Path
    resolved: Path
    allowed: bool
    reason: str = ""


class PathValidator:
    """Decides whether a path may be deleted."""

    def __init__(
        self,
        home: Optional[Path] = None,
        trash_dir: Optional[Path] = None,
        denied_roots: Iterable[str | Path] = DENIED_ROOTS,
        denied_patterns: Iterable[str] = DENIED_PATTERNS,
        allowed_roots: Optional[Iterable[str | Path]] = None,
        whitelist: Optional[Whitelist] = None,
    ):
        self.home = (home or Path.home()).resolve()
        self.trash_dir = (trash_dir or self.home / ".Trash").resolve()
        self.denied_roots = self._roots(denied_roots)
        self.denied_patterns = tuple(denied_patterns)
        if allowed_roots is None:
            allowed_roots = (self.home, *PACKAGE_MANAGER_ROOTS)
        self.allowed_roots = self._roots(allowed_roots)
        self.whitelist = whitelist or Whitelist()

    @staticmethod
    def _roots(roots: Iterable[str | Path]) -> tuple[Path, ...]:
        # Keep both spellings so /bin -> /usr/bin style links match either way
        expanded: list[Path] = []
        for root in roots:
            raw = Path(root)
            expanded.append(raw)
            real = raw.resolve()
            if real != raw:
                expanded.append(real)
        return tuple(expanded)

    def resolve(self, path: Path | str, follow_symlinks: bool = True) -> Path:
        """
        Real, canonical form of a path: symlinks, ".", ".." and trailing separators removed.

        With follow_symlinks=False a final symlink component is kept as the link
        itself; everything above it is still resolved.
        """
        path = Path(path)
        if follow_symlinks or path.name in ("", ".", ".."):
            return path.resolve(strict=False)
        return path.parent.resolve(strict=False) / path.name

    def validate(self, path: Path | str, follow_symlinks: bool = True) -> PathVerdict:
        """
        Check a path against the safety rules.

        Args:
            path: Path as discovered (may be a symlink or contain "..")
            follow_symlinks: Judge the target of a final symlink rather than the link

        Returns:
            PathVerdict with allowed=False and a reason on rejection
        """
        if not str(path).strip():
            return PathVerdict(path=Path(), resolved=Path(), allowed=False, reason="Empty path")

        original = Path(path)
        real = self.resolve(original, follow_symlinks=follow_symlinks)

        def reject(reason: str) -> PathVerdict:
            log.debug("Rejected %s (real path %s): %s", original, real, reason)
            return PathVerdict(path=original, resolved=real, allowed=False, reason=reason)

        if real == Path(real.anchor):
            return reject("Filesystem root")

        for root in self.denied_roots:
            if is_within(real, root):
                return reject(f"Protected system path under {root}")

        real_str = str(real)
        for pattern in self.denied_patterns:
            if pattern in real_str:
                return reject(f"Protected system component '{pattern}'")

        if self.whitelist.is_excluded(real):
            return reject("Path is whitelisted")

        if is_strictly_within(real, self.trash_dir):
            return PathVerdict(path=original, resolved=real, allowed=True, reason="In trash")

        if not any(is_strictly_within(real, root) for root in self.allowed_roots):
            return reject("Outside user-owned locations")

        return PathVerdict(path=original, resolved=real, allowed=True)

    def require_safe(self, path: Path | str, follow_symlinks: bool = True) -> Path:
        """
        Validate a path and return its real form.

        Raises:
            PathRejected: If the path fails validation
        """
        verdict = self.validate(path, follow_symlinks=follow_symlinks)
        if not verdict.allowed:
            raise PathRejected(path, verdict.reason, resolved=verdict.resolved)
        return verdict.resolved
