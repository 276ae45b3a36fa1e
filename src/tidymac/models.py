"""Data models for tidymac."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class CleanCategory(str, Enum):
    """Cleanup categories the scanner knows about."""

    SYSTEM_CACHES = "system_caches"
    XCODE_DERIVED_DATA = "xcode_derived_data"
    IOS_BACKUPS = "ios_backups"
    HOMEBREW_CACHE = "homebrew_cache"
    NPM_CACHE = "npm_cache"
    DOCKER = "docker"
    OLD_DOWNLOADS = "old_downloads"
    TRASH = "trash"
    LARGE_FILES = "large_files"
    LOG_FILES = "log_files"

    @property
    def is_destructive(self) -> bool:
        """Whether items in this category may be irreplaceable user data."""
        return self in _DESTRUCTIVE


_DESTRUCTIVE = frozenset(
    {CleanCategory.IOS_BACKUPS, CleanCategory.LARGE_FILES, CleanCategory.OLD_DOWNLOADS}
)


class FailureReason(str, Enum):
    """Why a single deletion did not happen."""

    PATH_REJECTED = "path_rejected"
    PERMISSION_DENIED = "permission_denied"
    RESOURCE_BUSY = "resource_busy"
    DELETION_FAILED = "deletion_failed"


def format_size(size_bytes: int) -> str:
    """Format bytes as human-readable string (decimal units like macOS)."""
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


class ScannedItem(BaseModel):
    """A reclaimable file or directory found by a scan."""

    path: Path = Field(..., description="Location of the item as discovered")
    size_bytes: int = Field(..., ge=0, description="Allocated size on disk")
    category: CleanCategory = Field(..., description="Category that produced the item")
    modified: Optional[datetime] = Field(None, description="Last modification time, if known")
    is_selected: bool = Field(True, description="Whether the user wants it cleaned")

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size_human(self) -> str:
        return format_size(self.size_bytes)


class ScanResult(BaseModel):
    """Outcome of one scan invocation across one or more categories."""

    items: list[ScannedItem] = Field(default_factory=list)
    duration_seconds: float = Field(0.0, description="Wall-clock scan duration")
    errors: list[str] = Field(default_factory=list, description="Per-category error messages")

    @property
    def total_size(self) -> int:
        return sum(item.size_bytes for item in self.items)

    @property
    def selected_items(self) -> list[ScannedItem]:
        return [item for item in self.items if item.is_selected]

    @property
    def selected_size(self) -> int:
        return sum(item.size_bytes for item in self.selected_items)

    def items_by_category(self) -> dict[CleanCategory, list[ScannedItem]]:
        """Group items by their category."""
        grouped: dict[CleanCategory, list[ScannedItem]] = {}
        for item in self.items:
            grouped.setdefault(item.category, []).append(item)
        return grouped

    def size_by_category(self) -> dict[CleanCategory, int]:
        """Total allocated bytes per category."""
        return {
            category: sum(item.size_bytes for item in items)
            for category, items in self.items_by_category().items()
        }

    def select_all(self) -> None:
        for item in self.items:
            item.is_selected = True

    def deselect_all(self) -> None:
        for item in self.items:
            item.is_selected = False

    def toggle_category(self, category: CleanCategory) -> None:
        """Select every item of a category, or deselect them all if all are selected."""
        members = [item for item in self.items if item.category == category]
        all_selected = all(item.is_selected for item in members)
        for item in members:
            item.is_selected = not all_selected

    def replace_category(self, category: CleanCategory, other: "ScanResult") -> None:
        """
        Replace one category's items and errors with those from a fresh scan.

        Items and errors of every other category are left untouched.

        Args:
            category: Category being rescanned
            other: Result of scanning only that category
        """
        from tidymac.categories import get_category

        prefix = f"{get_category(category).name}: "
        self.items = [item for item in self.items if item.category != category]
        self.items.extend(item for item in other.items if item.category == category)
        self.errors = [e for e in self.errors if not e.startswith(prefix)]
        self.errors.extend(e for e in other.errors if e.startswith(prefix))


class DuplicateFile(BaseModel):
    """One member of a duplicate group."""

    path: Path
    modified: Optional[datetime] = None
    is_original: bool = False

    @property
    def name(self) -> str:
        return self.path.name


class DuplicateGroup(BaseModel):
    """Files sharing the same (size, digest) fingerprint."""

    digest: str = Field(..., description="Hex content digest")
    size_bytes: int = Field(..., ge=0, description="Size of each member")
    files: list[DuplicateFile] = Field(default_factory=list)

    @property
    def wasted_space(self) -> int:
        """Bytes reclaimable by keeping only one copy."""
        return self.size_bytes * max(0, len(self.files) - 1)

    @property
    def original(self) -> Optional[DuplicateFile]:
        return next((f for f in self.files if f.is_original), None)

    @property
    def copies(self) -> list[DuplicateFile]:
        return [f for f in self.files if not f.is_original]


class DeletedItem(BaseModel):
    """An item that is gone after a cleaning batch."""

    item: ScannedItem
    bytes_freed: int = 0
    already_absent: bool = Field(False, description="Path was already gone before deletion")


class FailedItem(BaseModel):
    """An item the cleaning batch could not remove."""

    item: ScannedItem
    reason: FailureReason
    message: str


class CleaningResult(BaseModel):
    """Outcome of one deletion batch. Every input item is in exactly one list."""

    deleted: list[DeletedItem] = Field(default_factory=list)
    failed: list[FailedItem] = Field(default_factory=list)
    dry_run: bool = False

    @property
    def total_freed(self) -> int:
        return sum(d.bytes_freed for d in self.deleted)

    @property
    def success_count(self) -> int:
        return len(self.deleted)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)


class DiskUsage(BaseModel):
    """Overall disk usage information."""

    total_bytes: int = Field(..., description="Total disk size in bytes")
    used_bytes: int = Field(..., description="Used space in bytes")
    free_bytes: int = Field(..., description="Free space in bytes")
    mount_point: str = Field("/", description="Mount point")

    @property
    def total_gb(self) -> float:
        """Total size in GB (decimal, like macOS)."""
        return self.total_bytes / (1000**3)

    @property
    def used_gb(self) -> float:
        """Used space in GB (decimal, like macOS)."""
        return self.used_bytes / (1000**3)

    @property
    def free_gb(self) -> float:
        """Free space in GB (decimal, like macOS)."""
        return self.free_bytes / (1000**3)

    @property
    def used_percent(self) -> float:
        """Percentage of disk used."""
        return (self.used_bytes / self.total_bytes) * 100 if self.total_bytes > 0 else 0
