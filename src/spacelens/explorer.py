"""Explorer facade used by the navigation and rendering layer.

The renderer asks for an overview total first, starts the detailed scan
in the background, reuses cached scans on revisits, and trashes one
user-chosen path at a time. Keystrokes and confirmation belong to the
renderer; this module only exposes data and accepts commands.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from spacelens.cache import ResultCache, normalize_path
from spacelens.classifier import is_cleanable_dir, is_handled_by_cleaner
from spacelens.config import Settings, load_settings
from spacelens.errors import CacheWriteError
from spacelens.models import ScanResult
from spacelens.overview import OverviewStore, get_overview_store
from spacelens.progress import AtomicCounter, ScanProgress
from spacelens.scanner import scan_path
from spacelens.trash import trash_path

logger = logging.getLogger(__name__)

__all__ = ["BackgroundJob", "Explorer", "is_cleanable_dir", "is_handled_by_cleaner"]


@dataclass
class BackgroundJob:
    """Handle to work running off the caller's thread."""

    path: str
    future: Future
    cancel_event: threading.Event = field(default_factory=threading.Event)
    progress: Any = None

    def cancel(self) -> None:
        """Ask the work to stop at its next check."""
        self.cancel_event.set()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: float | None = None):
        return self.future.result(timeout=timeout)


class Explorer:
    """Entry point tying together scanner, caches and trash."""

    def __init__(
        self,
        settings: Settings | None = None,
        cache: ResultCache | None = None,
        overview_store: OverviewStore | None = None,
    ):
        self.settings = settings or load_settings()
        self.cache = cache or ResultCache(
            self.settings.cache_dir,
            freshness=self.settings.freshness,
            mtime_grace=self.settings.mtime_grace,
        )
        self.overview_store = overview_store or get_overview_store()
        self._jobs = ThreadPoolExecutor(max_workers=2, thread_name_prefix="spacelens-job")

    def close(self) -> None:
        self._jobs.shutdown(wait=True)

    def __enter__(self) -> "Explorer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def scan(
        self,
        path: str | Path,
        progress: ScanProgress | None = None,
        cancel: threading.Event | None = None,
    ) -> ScanResult:
        """
        Scan a directory fresh and cache the result.

        Cancelled scans raise ScanCancelledError and are never cached.
        A failed cache write is logged; the result is still returned.
        """
        result = scan_path(
            path,
            progress=progress,
            cancel=cancel,
            max_workers=self.settings.max_workers,
            large_file_limit=self.settings.large_file_limit,
        )
        try:
            self.cache.save(path, result)
        except CacheWriteError as e:
            logger.warning("%s", e)
        return result

    def cached_scan(self, path: str | Path) -> tuple[ScanResult | None, bool]:
        """Cached result for a directory and whether it was a hit."""
        result = self.cache.load(path)
        return result, result is not None

    def scan_or_load(
        self,
        path: str | Path,
        progress: ScanProgress | None = None,
        cancel: threading.Event | None = None,
    ) -> tuple[ScanResult, bool]:
        """
        Reuse a valid cached scan, otherwise scan and cache.

        Returns:
            Tuple of (result, cache_hit)
        """
        cached, hit = self.cached_scan(path)
        if hit:
            logger.debug("Cache hit for %s", path)
            return cached, True
        return self.scan(path, progress=progress, cancel=cancel), False

    def overview(self, path: str | Path) -> int:
        """Live total size of a path; always measured, never cached."""
        return self.overview_store.measure(path)

    def stored_overview(self, path: str | Path) -> int | None:
        """Last measured total for a path, if any."""
        return self.overview_store.load_stored(path)

    def start_scan(self, path: str | Path, use_cache: bool = True) -> BackgroundJob:
        """
        Run scan_or_load on a background thread.

        Cancel the returned job when the user navigates away; its future
        then raises ScanCancelledError and nothing is cached.
        """
        progress = ScanProgress()
        cancel = threading.Event()
        if use_cache:
            future = self._jobs.submit(self.scan_or_load, path, progress, cancel)
        else:
            future = self._jobs.submit(
                lambda: (self.scan(path, progress=progress, cancel=cancel), False)
            )
        return BackgroundJob(
            path=normalize_path(path), future=future, cancel_event=cancel, progress=progress
        )

    def trash(
        self,
        path: str | Path,
        counter: AtomicCounter | None = None,
        cancel: threading.Event | None = None,
    ) -> int:
        """
        Move a path to the trash and drop every cache that counted it.

        On failure the caches are left as they were and the error is raised.

        Returns:
            Number of files moved
        """
        count = trash_path(path, counter=counter, cancel=cancel)
        invalidated = self.cache.invalidate_lineage(path)
        self.overview_store.discard_lineage(path)
        logger.debug("Trashed %s; invalidated %d cached scans", path, invalidated)
        return count

    def start_trash(self, path: str | Path) -> BackgroundJob:
        """Run trash on a background thread so the renderer stays responsive."""
        counter = AtomicCounter()
        cancel = threading.Event()
        future = self._jobs.submit(self.trash, path, counter, cancel)
        return BackgroundJob(
            path=normalize_path(path), future=future, cancel_event=cancel, progress=counter
        )

    @staticmethod
    def is_handled_by_cleaner(path: str) -> bool:
        return is_handled_by_cleaner(path)

    @staticmethod
    def is_cleanable_dir(path: str) -> bool:
        return is_cleanable_dir(path)
