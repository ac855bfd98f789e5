"""Data models for spacelens."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

# Appended to the display name of symbolic link entries
SYMLINK_MARKER = " →"


def format_size(size_bytes: int) -> str:
    """Human-readable size string (decimal units like macOS)."""
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


class DirEntry(BaseModel):
    """One immediate child of a scanned directory."""

    name: str = Field(..., description="Display name (symlinks carry the link marker)")
    path: str = Field(..., description="Absolute path of the child")
    size: int = Field(0, description="Bytes; directories hold their aggregated subtree size")
    is_dir: bool = Field(False, description="Whether the child is a real directory")
    is_symlink: bool = Field(False, description="Whether the child is a symbolic link")

    @property
    def size_human(self) -> str:
        return format_size(self.size)


class FileEntry(BaseModel):
    """A file in the largest-files shortlist."""

    name: str = Field(..., description="File name")
    path: str = Field(..., description="Absolute path of the file")
    size: int = Field(0, description="Size in bytes")

    @property
    def size_human(self) -> str:
        return format_size(self.size)


class ScanResult(BaseModel):
    """Output of one scan of a directory subtree."""

    entries: list[DirEntry] = Field(default_factory=list, description="Immediate children")
    large_files: list[FileEntry] = Field(
        default_factory=list,
        description="Largest individual files anywhere under the root, descending",
    )
    total_size: int = Field(0, description="Sum of all entry sizes")

    @property
    def size_human(self) -> str:
        return format_size(self.total_size)


class CacheEntry(BaseModel):
    """A persisted scan result for one directory."""

    path: str = Field(..., description="Absolute path the scan was taken of")
    scan_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the scan finished (UTC)",
    )
    result: ScanResult


class OverviewSnapshot(BaseModel):
    """On-disk form of the overview size index."""

    sizes: dict[str, int] = Field(default_factory=dict, description="path -> total bytes")


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
