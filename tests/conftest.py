"""Shared fixtures for tidymac tests."""

import os
from pathlib import Path

import pytest

from tidymac.config import Settings, get_settings
from tidymac.safety import DENIED_ROOTS, PathValidator


def write_file(path: Path, size: int) -> Path:
    """Create a file of ``size`` random bytes, making parents as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(os.urandom(size))
    return path


def allocated(path: Path) -> int:
    return os.lstat(path).st_blocks * 512


def usable_denied_roots(tmp_path: Path) -> list[str]:
    """Denied roots minus any that contain the test temp directory (macOS keeps it under /private/var)."""
    real_tmp = tmp_path.resolve()
    return [
        root
        for root in DENIED_ROOTS
        if Path(root) not in real_tmp.parents and Path(root).resolve() not in real_tmp.parents
    ]


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, home):
    return Settings(home=home, whitelist_file=tmp_path / "whitelist.json")


@pytest.fixture
def validator(tmp_path, settings):
    return PathValidator(
        home=settings.home,
        trash_dir=settings.trash_dir,
        denied_roots=usable_denied_roots(tmp_path),
    )


@pytest.fixture
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
