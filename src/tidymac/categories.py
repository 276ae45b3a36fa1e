"""Cleanup category definitions for tidymac."""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from tidymac.models import CleanCategory


class ScanStrategy(str, Enum):
    """How the scanner discovers items for a category."""

    CHILDREN = "children"  # immediate children of each root, sized as a whole
    CANDIDATES = "candidates"  # each existing fixed path is one item
    FILE_WALK = "file_walk"  # single recursive pass keeping matching files


class WalkFilter(str, Enum):
    """File predicate used by FILE_WALK categories."""

    OLDER_THAN = "older_than"  # modified more than old_download_days ago
    LARGER_THAN = "larger_than"  # bigger than large_file_bytes


class CategoryInfo(BaseModel):
    """Definition of a cleanup category."""

    category: CleanCategory = Field(..., description="Category identifier")
    name: str = Field(..., description="Human-readable name")
    description: str = Field(..., description="What this category contains")
    consequences: str = Field(..., description="What happens if deleted")
    strategy: ScanStrategy = Field(..., description="Discovery strategy")
    paths: list[str] = Field(default_factory=list, description="Roots to scan (supports ~ expansion)")
    min_size_bytes: Optional[int] = Field(
        None,
        description="Keep items strictly larger than this; None means the configured floor",
    )
    skip_prefixes: list[str] = Field(
        default_factory=list,
        description="Child name prefixes never offered for cleaning",
    )
    workers: Optional[int] = Field(
        None,
        description="Sizing concurrency for CHILDREN roots; None means directory_workers",
    )
    walk_filter: Optional[WalkFilter] = Field(None, description="Predicate for FILE_WALK categories")
    keep_empty: bool = Field(False, description="Also offer zero-byte items such as empty files and links")

    @property
    def is_destructive(self) -> bool:
        return self.category.is_destructive


# All cleanup categories with their discovery rules
CATEGORIES: dict[CleanCategory, CategoryInfo] = {
    # =============================================================================
    # CHILDREN - immediate children of a root, each sized as one item
    # =============================================================================
    CleanCategory.SYSTEM_CACHES: CategoryInfo(
        category=CleanCategory.SYSTEM_CACHES,
        name="System Caches",
        description="Temporary files from apps and system",
        consequences="Apps rebuild their caches on next launch (slower first start)",
        strategy=ScanStrategy.CHILDREN,
        paths=["~/Library/Caches"],
    ),
    CleanCategory.LOG_FILES: CategoryInfo(
        category=CleanCategory.LOG_FILES,
        name="Log Files",
        description="System and application logs",
        consequences="Old diagnostic history is lost; apps start new logs",
        strategy=ScanStrategy.CHILDREN,
        paths=["~/Library/Logs"],
    ),
    CleanCategory.XCODE_DERIVED_DATA: CategoryInfo(
        category=CleanCategory.XCODE_DERIVED_DATA,
        name="Xcode Derived Data",
        description="Build artifacts from Xcode projects",
        consequences="Next build of each project is a full rebuild",
        strategy=ScanStrategy.CHILDREN,
        paths=[
            "~/Library/Developer/Xcode/DerivedData",
            "~/Library/Developer/Xcode/Archives",
            "~/Library/Developer/Xcode/iOS DeviceSupport",
        ],
        skip_prefixes=["ModuleCache"],
    ),
    CleanCategory.IOS_BACKUPS: CategoryInfo(
        category=CleanCategory.IOS_BACKUPS,
        name="iOS Backups",
        description="Old iPhone/iPad backups",
        consequences="Devices can no longer be restored from these backups",
        strategy=ScanStrategy.CHILDREN,
        paths=["~/Library/Application Support/MobileSync/Backup"],
        # Backups are huge; size them one at a time
        workers=1,
    ),
    CleanCategory.TRASH: CategoryInfo(
        category=CleanCategory.TRASH,
        name="Trash",
        description="Files in your Trash",
        consequences="Items are removed permanently",
        strategy=ScanStrategy.CHILDREN,
        paths=["~/.Trash"],
        min_size_bytes=0,
        keep_empty=True,
    ),
    # =============================================================================
    # CANDIDATES - fixed locations, each sized as one item
    # =============================================================================
    CleanCategory.HOMEBREW_CACHE: CategoryInfo(
        category=CleanCategory.HOMEBREW_CACHE,
        name="Homebrew Cache",
        description="Downloaded packages from Homebrew",
        consequences="Bottles re-download on next install or upgrade",
        strategy=ScanStrategy.CANDIDATES,
        paths=["~/Library/Caches/Homebrew", "/opt/homebrew/Caches"],
    ),
    CleanCategory.NPM_CACHE: CategoryInfo(
        category=CleanCategory.NPM_CACHE,
        name="npm Cache",
        description="Cached npm packages",
        consequences="Packages re-download on next install",
        strategy=ScanStrategy.CANDIDATES,
        paths=[
            "~/.npm/_cacache",
            "~/.npm/_logs",
            "~/.yarn/cache",
            "~/.pnpm-store",
            "~/.bun/install/cache",
        ],
    ),
    CleanCategory.DOCKER: CategoryInfo(
        category=CleanCategory.DOCKER,
        name="Docker",
        description="Docker images, volumes, and build cache",
        consequences="Images, containers and volumes must be pulled or rebuilt",
        strategy=ScanStrategy.CANDIDATES,
        paths=["~/Library/Containers/com.docker.docker/Data"],
    ),
    # =============================================================================
    # FILE_WALK - recursive pass over user folders
    # =============================================================================
    CleanCategory.OLD_DOWNLOADS: CategoryInfo(
        category=CleanCategory.OLD_DOWNLOADS,
        name="Old Downloads",
        description="Downloads older than 30 days",
        consequences="Downloaded files are moved to the Trash; re-download if needed",
        strategy=ScanStrategy.FILE_WALK,
        paths=["~/Downloads"],
        walk_filter=WalkFilter.OLDER_THAN,
    ),
    CleanCategory.LARGE_FILES: CategoryInfo(
        category=CleanCategory.LARGE_FILES,
        name="Large Files",
        description="Files larger than 500MB",
        consequences="Your own documents and media are moved to the Trash",
        strategy=ScanStrategy.FILE_WALK,
        paths=["~/Documents", "~/Desktop", "~/Movies", "~/Music"],
        walk_filter=WalkFilter.LARGER_THAN,
    ),
}


def expand_path(path: str, home: Optional[Path] = None) -> Path:
    """Expand ~ (against ``home`` when given) and environment variables in path."""
    path = os.path.expandvars(path)
    if home is not None and (path == "~" or path.startswith("~/")):
        return Path(home) / path[2:]
    return Path(os.path.expanduser(path))


def get_category(category: CleanCategory | str) -> CategoryInfo:
    """Get a category definition by identifier."""
    return CATEGORIES[CleanCategory(category)]


def get_all_categories() -> list[CategoryInfo]:
    """Get all categories."""
    return list(CATEGORIES.values())


def get_destructive_categories() -> list[CategoryInfo]:
    """Get categories whose items may be irreplaceable user data."""
    return [c for c in CATEGORIES.values() if c.is_destructive]
