"""Tests for data models."""

from datetime import datetime
from pathlib import Path

import pytest

from tidymac.models import (
    CleanCategory,
    CleaningResult,
    DeletedItem,
    DiskUsage,
    DuplicateFile,
    DuplicateGroup,
    FailedItem,
    FailureReason,
    ScannedItem,
    ScanResult,
    format_size,
)


def _item(name: str, size: int, category: CleanCategory = CleanCategory.SYSTEM_CACHES, **kwargs) -> ScannedItem:
    return ScannedItem(path=Path("/tmp") / name, size_bytes=size, category=category, **kwargs)


class TestCleanCategory:
    def test_destructive(self):
        assert CleanCategory.IOS_BACKUPS.is_destructive
        assert CleanCategory.LARGE_FILES.is_destructive
        assert CleanCategory.OLD_DOWNLOADS.is_destructive

    def test_not_destructive(self):
        assert not CleanCategory.SYSTEM_CACHES.is_destructive
        assert not CleanCategory.TRASH.is_destructive

    def test_string_value(self):
        assert CleanCategory("npm_cache") is CleanCategory.NPM_CACHE


class TestFormatSize:
    @pytest.mark.parametrize(
        "size,expected",
        [(0, "0 B"), (999, "999 B"), (1500, "1.5 KB"), (2_500_000, "2.5 MB"), (3_000_000_000, "3.0 GB")],
    )
    def test_decimal_units(self, size, expected):
        assert format_size(size) == expected


class TestScannedItem:
    def test_defaults(self):
        item = _item("a", 10)
        assert item.is_selected
        assert item.modified is None
        assert item.name == "a"

    def test_rejects_negative_size(self):
        with pytest.raises(ValueError):
            _item("a", -1)


class TestScanResult:
    def test_totals(self):
        result = ScanResult(items=[_item("a", 100), _item("b", 50, is_selected=False)])
        assert result.total_size == 150
        assert result.selected_size == 100
        assert [i.name for i in result.selected_items] == ["a"]

    def test_grouping(self):
        result = ScanResult(
            items=[
                _item("a", 100),
                _item("b", 50, CleanCategory.TRASH),
                _item("c", 25),
            ]
        )
        assert len(result.items_by_category()[CleanCategory.SYSTEM_CACHES]) == 2
        assert result.size_by_category() == {
            CleanCategory.SYSTEM_CACHES: 125,
            CleanCategory.TRASH: 50,
        }

    def test_select_and_deselect_all(self):
        result = ScanResult(items=[_item("a", 1), _item("b", 2)])
        result.deselect_all()
        assert result.selected_items == []
        result.select_all()
        assert len(result.selected_items) == 2

    def test_toggle_category(self):
        result = ScanResult(items=[_item("a", 1), _item("b", 2, CleanCategory.TRASH)])

        result.toggle_category(CleanCategory.SYSTEM_CACHES)
        assert [i.name for i in result.selected_items] == ["b"]

        result.toggle_category(CleanCategory.SYSTEM_CACHES)
        assert len(result.selected_items) == 2

    def test_toggle_partially_selected_selects_all(self):
        result = ScanResult(items=[_item("a", 1), _item("b", 2, is_selected=False)])
        result.toggle_category(CleanCategory.SYSTEM_CACHES)
        assert len(result.selected_items) == 2

    def test_replace_category(self):
        result = ScanResult(
            items=[_item("old", 1), _item("t", 2, CleanCategory.TRASH)],
            errors=["System Caches: stale", "Trash: kept"],
        )
        fresh = ScanResult(items=[_item("new", 3)], errors=["System Caches: fresh"])

        result.replace_category(CleanCategory.SYSTEM_CACHES, fresh)

        assert sorted(i.name for i in result.items) == ["new", "t"]
        assert result.errors == ["Trash: kept", "System Caches: fresh"]


class TestDuplicateGroup:
    def _group(self, count: int) -> DuplicateGroup:
        files = [DuplicateFile(path=Path(f"/d/{i}"), modified=datetime(2024, 1, i + 1)) for i in range(count)]
        files[0].is_original = True
        return DuplicateGroup(digest="ab", size_bytes=2048, files=files)

    def test_wasted_space(self):
        assert self._group(5).wasted_space == 4 * 2048

    def test_original_and_copies(self):
        group = self._group(3)
        assert group.original.path == Path("/d/0")
        assert [f.path for f in group.copies] == [Path("/d/1"), Path("/d/2")]


class TestCleaningResult:
    def test_totals(self):
        result = CleaningResult(
            deleted=[
                DeletedItem(item=_item("a", 100), bytes_freed=100),
                DeletedItem(item=_item("b", 50), bytes_freed=0, already_absent=True),
            ],
            failed=[FailedItem(item=_item("c", 10), reason=FailureReason.RESOURCE_BUSY, message="busy")],
        )
        assert result.total_freed == 100
        assert result.success_count == 2
        assert result.failure_count == 1
        assert result.has_failures

    def test_empty(self):
        result = CleaningResult()
        assert result.total_freed == 0
        assert not result.has_failures


class TestDiskUsage:
    def test_gb_helpers(self):
        usage = DiskUsage(total_bytes=500_000_000_000, used_bytes=400_000_000_000, free_bytes=100_000_000_000)
        assert usage.total_gb == 500
        assert usage.free_gb == 100
        assert usage.used_percent == 80

    def test_zero_total(self):
        assert DiskUsage(total_bytes=0, used_bytes=0, free_bytes=0).used_percent == 0
