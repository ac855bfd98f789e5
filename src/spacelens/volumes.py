"""Disk usage and mounted volume discovery."""

import os
import shutil
import subprocess
import sys
from pathlib import Path

from spacelens.models import DiskUsage


def get_disk_usage(mount_point: str = "/") -> DiskUsage:
    """
    Get overall disk usage for a mount point.

    Uses APFS container size on macOS to match System Settings.

    Args:
        mount_point: Mount point to check (default: /)

    Returns:
        DiskUsage with total, used, and free bytes
    """
    if sys.platform == "darwin":
        try:
            result = subprocess.run(
                ["diskutil", "info", mount_point],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired):
            result = None

        if result is not None and result.returncode == 0:
            total_bytes = None
            free_bytes = None

            for line in result.stdout.split("\n"):
                # "Container Total Space:     245.1 GB (245107195904 Bytes)"
                if "Container Total Space:" in line or "Container Free Space:" in line:
                    parts = line.split("(")
                    if len(parts) < 2:
                        continue
                    try:
                        value = int(parts[1].split()[0])
                    except (ValueError, IndexError):
                        continue
                    if "Total" in line:
                        total_bytes = value
                    else:
                        free_bytes = value

            if total_bytes and free_bytes:
                return DiskUsage(
                    total_bytes=total_bytes,
                    used_bytes=total_bytes - free_bytes,
                    free_bytes=free_bytes,
                    mount_point=mount_point,
                )

    usage = shutil.disk_usage(mount_point)
    return DiskUsage(
        total_bytes=usage.total,
        used_bytes=usage.used,
        free_bytes=usage.free,
        mount_point=mount_point,
    )


def default_volumes_root() -> Path:
    """Where removable and external volumes get mounted on this platform."""
    if sys.platform == "darwin":
        return Path("/Volumes")
    user_media = Path("/media") / os.environ.get("USER", "")
    if user_media.is_dir():
        return user_media
    return Path("/media")


def list_volume_mounts(root: Path) -> list[Path]:
    """Non-hidden real directories directly under a volumes root."""
    try:
        with os.scandir(root) as entries:
            mounts = [
                Path(entry.path)
                for entry in entries
                if not entry.name.startswith(".") and entry.is_dir(follow_symlinks=False)
            ]
    except OSError:
        return []
    return sorted(mounts)


def has_useful_volume_mounts(root: Path) -> bool:
    """Whether a volumes root holds anything worth offering to explore."""
    return bool(list_volume_mounts(root))
