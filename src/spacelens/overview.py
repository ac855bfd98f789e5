"""Process-wide index of quick total sizes.

The explorer paints these totals immediately while the detailed scan runs.
The index is read from disk at most once per process and written back in
full on every update.
"""

import logging
import threading
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from spacelens.cache import atomic_write_text, lineage, normalize_path
from spacelens.config import load_settings
from spacelens.models import OverviewSnapshot
from spacelens.scanner import measure_disk_usage

logger = logging.getLogger(__name__)


class OverviewStore:
    """path -> total size index backed by one JSON file."""

    def __init__(self, snapshot_file: Path):
        self.snapshot_file = Path(snapshot_file)
        self._lock = threading.Lock()
        self._sizes: dict[str, int] = {}
        self._loaded = False

    def _ensure_loaded(self) -> None:
        # Caller holds self._lock
        if self._loaded:
            return
        self._loaded = True
        try:
            raw = self.snapshot_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except OSError as e:
            logger.debug("Cannot read overview index %s: %s", self.snapshot_file, e)
            return

        try:
            self._sizes = dict(OverviewSnapshot.model_validate_json(raw).sizes)
        except ValidationError as e:
            logger.debug("Ignoring corrupt overview index %s: %s", self.snapshot_file, e)

    def _flush(self) -> None:
        snapshot = OverviewSnapshot(sizes=self._sizes)
        atomic_write_text(self.snapshot_file, snapshot.model_dump_json())

    def load_stored(self, path: str | Path) -> int | None:
        """Last stored total for a path, without measuring."""
        key = normalize_path(path)
        with self._lock:
            self._ensure_loaded()
            return self._sizes.get(key)

    def store(self, path: str | Path, size: int) -> None:
        """
        Record a total and write the whole index to disk.

        Raises:
            OSError: the index file could not be written; the value is
                still kept in memory
        """
        key = normalize_path(path)
        with self._lock:
            self._ensure_loaded()
            self._sizes[key] = size
            self._flush()

    def measure(self, path: str | Path) -> int:
        """
        Measure a path live and remember the result.

        Args:
            path: File or directory to measure

        Returns:
            Allocated bytes under the path
        """
        size = measure_disk_usage(path)
        try:
            self.store(path, size)
        except OSError as e:
            logger.warning("Could not save overview size for %s: %s", path, e)
        return size

    def discard(self, paths: Iterable[str | Path]) -> int:
        """Forget stored totals. Returns how many were removed."""
        keys = [normalize_path(p) for p in paths]
        with self._lock:
            self._ensure_loaded()
            removed = [k for k in keys if self._sizes.pop(k, None) is not None]
            if removed:
                try:
                    self._flush()
                except OSError as e:
                    logger.warning("Could not save overview index: %s", e)
        return len(removed)

    def discard_lineage(self, path: str | Path) -> int:
        """Forget a path and all of its ancestors."""
        return self.discard(lineage(path))

    def clear(self) -> None:
        """Forget every stored total, on disk as well."""
        with self._lock:
            self._loaded = True
            self._sizes = {}
            try:
                self.snapshot_file.unlink()
            except FileNotFoundError:
                pass

    def reset(self) -> None:
        """Drop the in-memory index so the next access reloads from disk."""
        with self._lock:
            self._sizes = {}
            self._loaded = False


_store: OverviewStore | None = None
_store_lock = threading.Lock()


def get_overview_store() -> OverviewStore:
    """The process-wide store, created on first use from the settings."""
    global _store
    with _store_lock:
        if _store is None:
            _store = OverviewStore(load_settings().overview_file)
        return _store


def reset_overview_store() -> None:
    """Forget the process-wide store; the next call builds a new one."""
    global _store
    with _store_lock:
        _store = None
