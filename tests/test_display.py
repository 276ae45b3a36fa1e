"""Tests for display module."""

from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from tidymac.categories import get_all_categories
from tidymac.display import (
    category_icon,
    confirm_action,
    show_categories,
    show_cleaning_result,
    show_cleanup_preview,
    show_disk_summary,
    show_duplicates,
    show_progress,
    show_scan_result,
    show_status,
    show_whitelist,
)
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
)
from tidymac.whitelist import Whitelist


def _usage(used_percent: int) -> DiskUsage:
    total = 100_000_000_000
    used = total * used_percent // 100
    return DiskUsage(total_bytes=total, used_bytes=used, free_bytes=total - used)


def _scan_result() -> ScanResult:
    return ScanResult(
        items=[
            ScannedItem(path=Path("/h/Library/Caches/a"), size_bytes=5_000_000, category=CleanCategory.SYSTEM_CACHES),
            ScannedItem(path=Path("/h/Downloads/b.dmg"), size_bytes=9_000_000, category=CleanCategory.OLD_DOWNLOADS),
        ],
        duration_seconds=1.5,
        errors=["Log Files: Cannot list directory: /h/Library/Logs"],
    )


class TestCategoryIcon:
    def test_destructive(self):
        assert "red" in category_icon(CleanCategory.LARGE_FILES)

    def test_safe(self):
        icon = category_icon(CleanCategory.SYSTEM_CACHES)
        assert "✓" in icon
        assert "green" in icon


class TestDiskDisplay:
    @patch("tidymac.display.console")
    def test_disk_summary(self, mock_console):
        show_disk_summary(_usage(95))
        mock_console.print.assert_called()

    @patch("tidymac.display.console")
    def test_ok_status(self, mock_console):
        show_status(_usage(50))
        printed = " ".join(str(c.args[0]) for c in mock_console.print.call_args_list)
        assert "OK" in printed

    @patch("tidymac.display.console")
    def test_critical_status(self, mock_console):
        show_status(_usage(95))
        printed = " ".join(str(c.args[0]) for c in mock_console.print.call_args_list)
        assert "CRITICAL" in printed


class TestScanDisplay:
    @patch("tidymac.display.console")
    def test_scan_result_shows_errors(self, mock_console):
        show_scan_result(_scan_result())
        printed = " ".join(str(c.args[0]) for c in mock_console.print.call_args_list if c.args)
        assert "Log Files: Cannot list directory" in printed

    @patch("tidymac.display.console")
    def test_preview_dry_run(self, mock_console):
        show_cleanup_preview(_scan_result(), dry_run=True, limit=1)
        printed = " ".join(str(c.args[0]) for c in mock_console.print.call_args_list if c.args)
        assert "DRY RUN" in printed
        assert "14.0 MB" in printed


class TestCleaningDisplay:
    @patch("tidymac.display.console")
    def test_failures_listed(self, mock_console):
        item = _scan_result().items[0]
        result = CleaningResult(
            deleted=[DeletedItem(item=item, bytes_freed=5_000_000)],
            failed=[FailedItem(item=item, reason=FailureReason.RESOURCE_BUSY, message="Resource busy")],
        )

        show_cleaning_result(result, _usage(50), _usage(40))

        printed = " ".join(str(c.args[0]) for c in mock_console.print.call_args_list if c.args)
        assert "Resource busy" in printed
        assert "resource_busy" in printed


class TestDuplicatesDisplay:
    @patch("tidymac.display.console")
    def test_empty(self, mock_console):
        show_duplicates([])
        mock_console.print.assert_called_once()

    @patch("tidymac.display.console")
    def test_groups(self, mock_console):
        group = DuplicateGroup(
            digest="ab",
            size_bytes=2048,
            files=[
                DuplicateFile(path=Path("/a"), modified=datetime(2024, 1, 1), is_original=True),
                DuplicateFile(path=Path("/b")),
            ],
        )
        show_duplicates([group, group], top=1)
        printed = " ".join(str(c.args[0]) for c in mock_console.print.call_args_list if c.args)
        assert "2 duplicate groups" in printed
        assert "--top" in printed


class TestListDisplays:
    @patch("tidymac.display.console")
    def test_categories(self, mock_console):
        show_categories(get_all_categories(), {CleanCategory.TRASH})
        mock_console.print.assert_called()

    @patch("tidymac.display.console")
    def test_empty_whitelist(self, mock_console):
        show_whitelist(Whitelist())
        assert "empty" in mock_console.print.call_args.args[0]


class TestProgress:
    def test_progress_bar(self):
        progress = show_progress()
        assert progress is not None


class TestConfirm:
    @patch("rich.prompt.Confirm.ask", return_value=True)
    def test_confirm(self, mock_ask):
        assert confirm_action("Proceed?") is True
        mock_ask.assert_called_once_with("Proceed?")
