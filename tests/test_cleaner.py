"""Tests for cleanup functionality."""

import errno
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import usable_denied_roots, write_file

from tidymac.cleaner import CleaningService
from tidymac.models import CleanCategory, FailureReason, ScannedItem
from tidymac.safety import PathValidator
from tidymac.scheduler import CancellationToken
from tidymac.trash import TrashBin
from tidymac.whitelist import Whitelist


@pytest.fixture
def service(validator, settings):
    return CleaningService(validator, TrashBin(settings.trash_dir), settings)


def _item(path: Path, category: CleanCategory = CleanCategory.SYSTEM_CACHES, size: int = 100, **kwargs):
    return ScannedItem(path=path, size_bytes=size, category=category, **kwargs)


class TestDeleteItems:
    def test_moves_to_trash(self, service, home, settings):
        cache = write_file(home / "Library" / "Caches" / "app" / "blob", 100).parent

        result = service.delete_items([_item(cache, size=4096)])

        assert not cache.exists()
        assert (settings.trash_dir / "app" / "blob").exists()
        assert result.success_count == 1
        assert result.total_freed == 4096
        assert not result.deleted[0].already_absent

    def test_trash_category_removed_permanently(self, service, home, settings):
        trashed = write_file(settings.trash_dir / "old.txt", 100)

        result = service.delete_items([_item(trashed, CleanCategory.TRASH)])

        assert not trashed.exists()
        assert list(settings.trash_dir.iterdir()) == []
        assert result.success_count == 1

    def test_second_run_reports_already_absent(self, service, home):
        paths = [write_file(home / "Library" / "Caches" / f"c{i}" / "f", 10).parent for i in range(3)]
        items = [_item(p) for p in paths]

        first = service.delete_items(items)
        second = service.delete_items(items)

        assert first.success_count == 3
        assert second.success_count == 3
        assert second.failure_count == 0
        assert all(d.already_absent and d.bytes_freed == 0 for d in second.deleted)

    def test_symlink_to_denied_root_rejected(self, service, home):
        link = home / "Library" / "Caches" / "sneaky"
        link.parent.mkdir(parents=True)
        link.symlink_to("/usr", target_is_directory=True)

        result = service.delete_items([_item(link)])

        assert result.failure_count == 1
        assert result.failed[0].reason == FailureReason.PATH_REJECTED
        assert link.is_symlink()
        assert Path("/usr").is_dir()

    def test_dot_dot_through_symlink_deletes_link_target(self, service, home, settings):
        sub = home / "Documents" / "sub"
        sub.mkdir(parents=True)
        target = write_file(home / "Documents" / "victim.txt", 10)
        bystander = write_file(home / "Library" / "Caches" / "victim.txt", 10)
        (home / "Library" / "Caches" / "link").symlink_to(sub, target_is_directory=True)

        result = service.delete_items([_item(home / "Library" / "Caches" / "link" / ".." / "victim.txt")])

        assert result.success_count == 1
        assert not target.exists()
        assert bystander.exists()
        assert (settings.trash_dir / "victim.txt").exists()

    def test_trashed_link_removed_without_its_target(self, service, home, settings):
        target = write_file(home / "Documents" / "report.pdf", 100)
        settings.trash_dir.mkdir()
        link = settings.trash_dir / "report alias"
        link.symlink_to(target)

        result = service.delete_items([_item(link, CleanCategory.TRASH, size=0)])

        assert result.success_count == 1
        assert not result.deleted[0].already_absent
        assert not os.path.lexists(link)
        assert target.exists()

    def test_dangling_trashed_link_removed(self, service, home, settings):
        settings.trash_dir.mkdir()
        link = settings.trash_dir / "gone"
        link.symlink_to(home / "Documents" / "missing.txt")

        result = service.delete_items([_item(link, CleanCategory.TRASH, size=0)])

        assert result.success_count == 1
        assert not os.path.lexists(link)

    def test_whitelisted_item_rejected(self, tmp_path, home, settings):
        keep = write_file(home / "Library" / "Caches" / "keep" / "f", 10).parent
        validator = PathValidator(
            home=home,
            trash_dir=settings.trash_dir,
            denied_roots=usable_denied_roots(tmp_path),
            whitelist=Whitelist.from_paths([keep]),
        )

        result = CleaningService(validator, settings=settings).delete_items([_item(keep)])

        assert result.failed[0].reason == FailureReason.PATH_REJECTED
        assert keep.exists()

    def test_unselected_items_not_in_batch(self, service, home):
        kept = write_file(home / "Library" / "Caches" / "kept" / "f", 10).parent
        gone = write_file(home / "Library" / "Caches" / "gone" / "f", 10).parent

        result = service.delete_items([_item(kept, is_selected=False), _item(gone)])

        assert kept.exists()
        assert result.success_count == 1
        assert result.failure_count == 0

    def test_every_item_lands_in_one_list(self, service, home, tmp_path):
        good = write_file(home / "Library" / "Caches" / "good" / "f", 10).parent
        missing = home / "Library" / "Caches" / "missing"
        outside = write_file(tmp_path / "outside" / "f", 10)
        items = [_item(good), _item(missing), _item(outside)]

        result = service.delete_items(items)

        assert result.success_count + result.failure_count == len(items)
        reported = [d.item.path for d in result.deleted] + [f.item.path for f in result.failed]
        assert sorted(reported) == sorted(i.path for i in items)
        assert outside.exists()

    def test_dry_run_touches_nothing(self, service, home):
        cache = write_file(home / "Library" / "Caches" / "app" / "f", 10).parent

        result = service.delete_items([_item(cache, size=5000)], dry_run=True)

        assert cache.exists()
        assert result.dry_run
        assert result.total_freed == 5000

    def test_parent_not_writable(self, service, home):
        cache = write_file(home / "Library" / "Caches" / "app" / "f", 10).parent

        with patch("tidymac.cleaner.os.access", return_value=False):
            result = service.delete_items([_item(cache)])

        assert result.failed[0].reason == FailureReason.PERMISSION_DENIED
        assert cache.exists()

    @pytest.mark.parametrize(
        "code,reason",
        [
            (errno.EACCES, FailureReason.PERMISSION_DENIED),
            (errno.EPERM, FailureReason.PERMISSION_DENIED),
            (errno.EBUSY, FailureReason.RESOURCE_BUSY),
            (errno.EIO, FailureReason.DELETION_FAILED),
        ],
    )
    def test_os_errors_classified(self, service, home, code, reason):
        cache = write_file(home / "Library" / "Caches" / "app" / "f", 10).parent

        with patch.object(TrashBin, "move", side_effect=OSError(code, os.strerror(code))):
            result = service.delete_items([_item(cache)])

        assert result.failure_count == 1
        assert result.failed[0].reason == reason
        assert result.failed[0].message

    def test_vanished_during_removal_is_success(self, service, home):
        cache = write_file(home / "Library" / "Caches" / "app" / "f", 10).parent

        with patch.object(TrashBin, "move", side_effect=FileNotFoundError(errno.ENOENT, "gone")):
            result = service.delete_items([_item(cache)])

        assert result.success_count == 1
        assert result.deleted[0].already_absent

    def test_cancelled_batch_reports_every_item(self, service, home):
        paths = [write_file(home / "Library" / "Caches" / f"c{i}" / "f", 10).parent for i in range(4)]
        token = CancellationToken()
        token.cancel()

        result = service.delete_items([_item(p) for p in paths], cancel=token)

        assert result.success_count == 0
        assert result.failure_count == 4
        assert all(p.exists() for p in paths)

    def test_progress(self, service, home):
        paths = [write_file(home / "Library" / "Caches" / f"c{i}" / "f", 10).parent for i in range(3)]
        calls = []

        service.delete_items([_item(p) for p in paths], on_progress=lambda f, m: calls.append(f))

        assert calls == sorted(calls)
        assert calls[-1] == 1.0


class TestEmptyTrash:
    def test_removes_everything(self, service, settings):
        write_file(settings.trash_dir / "a.txt", 10)
        write_file(settings.trash_dir / "folder" / "b.txt", 10)

        assert service.empty_trash() == (2, 0)
        assert list(settings.trash_dir.iterdir()) == []

    def test_does_not_follow_symlinks(self, service, settings, tmp_path):
        precious = write_file(tmp_path / "precious" / "data.txt", 10)
        settings.trash_dir.mkdir(parents=True)
        (settings.trash_dir / "link").symlink_to(precious.parent, target_is_directory=True)

        assert service.empty_trash() == (1, 0)
        assert precious.exists()

    def test_missing_trash(self, service):
        assert service.empty_trash() == (0, 0)

    def test_counts_failures(self, service, settings):
        write_file(settings.trash_dir / "a.txt", 10)
        write_file(settings.trash_dir / "b.txt", 10)

        def flaky(path):
            if path.name == "b.txt":
                raise PermissionError(errno.EACCES, "Permission denied")
            path.unlink()

        with patch("tidymac.cleaner.remove_permanently", side_effect=flaky):
            assert service.empty_trash() == (1, 1)
