"""Volume usage for tidymac."""

import logging
import shutil
import subprocess

from tidymac.models import DiskUsage

log = logging.getLogger(__name__)


def _parse_bytes(line: str) -> int | None:
    # "Container Total Space:     245.1 GB (245107195904 Bytes)"
    parts = line.split("(")
    if len(parts) < 2:
        return None
    try:
        return int(parts[1].split()[0])
    except (ValueError, IndexError):
        return None


def _apfs_container_usage(mount_point: str) -> DiskUsage | None:
    """Container-level usage from diskutil, matching macOS System Settings."""
    try:
        result = subprocess.run(
            ["diskutil", "info", mount_point],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as e:
        log.debug("diskutil unavailable: %s", e)
        return None
    if result.returncode != 0:
        return None

    total_bytes = None
    free_bytes = None
    for line in result.stdout.splitlines():
        if "Container Total Space:" in line:
            total_bytes = _parse_bytes(line)
        elif "Container Free Space:" in line:
            free_bytes = _parse_bytes(line)

    if not total_bytes or free_bytes is None:
        return None
    return DiskUsage(
        total_bytes=total_bytes,
        used_bytes=total_bytes - free_bytes,
        free_bytes=free_bytes,
        mount_point=mount_point,
    )


def get_disk_usage(mount_point: str = "/") -> DiskUsage:
    """
    Get overall disk usage for a mount point.

    Uses the APFS container size when diskutil is available, else shutil.

    Args:
        mount_point: Mount point to check (default: /)

    Returns:
        DiskUsage with total, used, and free bytes
    """
    usage = _apfs_container_usage(mount_point)
    if usage is not None:
        return usage

    # Non-APFS volumes and non-macOS systems
    fallback = shutil.disk_usage(mount_point)
    return DiskUsage(
        total_bytes=fallback.total,
        used_bytes=fallback.used,
        free_bytes=fallback.free,
        mount_point=mount_point,
    )
