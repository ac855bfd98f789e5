"""Persistent per-directory cache of scan results."""

import hashlib
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from spacelens.config import DEFAULT_FRESHNESS_DAYS, DEFAULT_MTIME_GRACE_MINUTES, resolve_user_path
from spacelens.errors import CacheWriteError
from spacelens.models import CacheEntry, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS = timedelta(days=DEFAULT_FRESHNESS_DAYS)
DEFAULT_MTIME_GRACE = timedelta(minutes=DEFAULT_MTIME_GRACE_MINUTES)


def atomic_write_text(path: Path, text: str) -> None:
    """
    Replace a file's contents without ever exposing a partial write.

    The data goes to a temporary file in the same directory and is renamed
    over the target, so readers see either the old or the new file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def normalize_path(path: str | Path) -> str:
    """Absolute form of a path used as the cache identity."""
    return resolve_user_path(path)


def cache_key(path: str | Path) -> str:
    """Stable key for a directory, the same across process restarts."""
    return hashlib.sha256(normalize_path(path).encode("utf-8")).hexdigest()[:32]


def lineage(path: str | Path) -> list[str]:
    """The path itself followed by every ancestor up to the root."""
    current = normalize_path(path)
    paths = [current]
    while True:
        parent = os.path.dirname(current)
        if parent == current:
            return paths
        paths.append(parent)
        current = parent


class ResultCache:
    """
    Scan results stored one JSON record per directory.

    A record is only served while it is younger than ``freshness`` and the
    directory has not been modified after ``scan_time + mtime_grace``.
    Anything else, including unreadable records, is a miss and the record
    is removed.
    """

    def __init__(
        self,
        cache_dir: Path,
        freshness: timedelta = DEFAULT_FRESHNESS,
        mtime_grace: timedelta = DEFAULT_MTIME_GRACE,
    ):
        self.cache_dir = Path(cache_dir)
        self.freshness = freshness
        self.mtime_grace = mtime_grace

    def cache_path(self, path: str | Path) -> Path:
        return self.cache_dir / f"{cache_key(path)}.json"

    def _discard(self, cache_file: Path) -> None:
        try:
            cache_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug("Could not remove cache record %s: %s", cache_file, e)

    def load(self, path: str | Path, now: datetime | None = None) -> ScanResult | None:
        """
        Return the cached result for a directory if it is still valid.

        Args:
            path: Directory that was scanned
            now: Current time (UTC), for tests

        Returns:
            The cached ScanResult, or None on a miss
        """
        target = normalize_path(path)
        cache_file = self.cache_path(target)

        try:
            raw = cache_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug("Unreadable cache record %s: %s", cache_file, e)
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.debug("Corrupt cache record %s: %s", cache_file, e)
            self._discard(cache_file)
            return None

        if entry.path != target:
            return None

        now = now or datetime.now(timezone.utc)
        scan_time = entry.scan_time
        if scan_time.tzinfo is None:
            scan_time = scan_time.replace(tzinfo=timezone.utc)

        if now - scan_time > self.freshness:
            logger.debug("Cache for %s expired (scanned %s)", target, scan_time)
            self._discard(cache_file)
            return None

        try:
            mtime = datetime.fromtimestamp(os.stat(target).st_mtime, tz=timezone.utc)
        except OSError:
            self._discard(cache_file)
            return None

        if mtime > scan_time + self.mtime_grace:
            logger.debug("Cache for %s invalidated, modified at %s", target, mtime)
            self._discard(cache_file)
            return None

        return entry.result

    def save(
        self, path: str | Path, result: ScanResult, scan_time: datetime | None = None
    ) -> Path:
        """
        Persist a complete scan result.

        Args:
            path: Directory that was scanned
            result: Result of the finished scan
            scan_time: When the scan finished (default: now)

        Returns:
            Path of the written cache record

        Raises:
            CacheWriteError: the record could not be written
        """
        target = normalize_path(path)
        entry = CacheEntry(
            path=target,
            scan_time=scan_time or datetime.now(timezone.utc),
            result=result,
        )
        cache_file = self.cache_path(target)
        try:
            atomic_write_text(cache_file, entry.model_dump_json())
        except OSError as e:
            raise CacheWriteError(f"Cannot write cache for {target}: {e}") from e
        return cache_file

    def invalidate(self, path: str | Path) -> bool:
        """Remove the record for one directory. Returns True if one existed."""
        cache_file = self.cache_path(path)
        existed = cache_file.exists()
        self._discard(cache_file)
        return existed

    def invalidate_lineage(self, path: str | Path) -> int:
        """Remove the records for a path and all of its ancestors."""
        return sum(1 for p in lineage(path) if self.invalidate(p))

    def clear(self) -> int:
        """Remove every scan record. Returns the number removed."""
        if not self.cache_dir.is_dir():
            return 0
        removed = 0
        for cache_file in self.cache_dir.glob("*.json"):
            if len(cache_file.stem) != 32:
                continue
            self._discard(cache_file)
            removed += 1
        return removed
