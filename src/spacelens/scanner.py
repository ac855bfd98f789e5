"""Concurrent directory scanning for spacelens."""

import heapq
import logging
import os
import stat
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from spacelens.config import DEFAULT_LARGE_FILE_LIMIT, default_max_workers, resolve_user_path
from spacelens.errors import RootUnreadableError, ScanCancelledError
from spacelens.models import SYMLINK_MARKER, DirEntry, FileEntry, ScanResult
from spacelens.progress import ScanProgress

logger = logging.getLogger(__name__)

# (size, path, name) min-heap of the largest files seen in a subtree
TopFiles = list[tuple[int, str, str]]


def actual_file_size(st: os.stat_result) -> int:
    """
    Bytes a file really occupies.

    Sparse and compressed files allocate fewer blocks than their logical
    length; count the allocation in that case, otherwise the logical size.
    """
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return st.st_size
    allocated = blocks * 512
    if 0 < allocated < st.st_size:
        return allocated
    return st.st_size


def _push_top(heap: TopFiles, item: tuple[int, str, str], limit: int) -> None:
    if limit <= 0:
        return
    if len(heap) < limit:
        heapq.heappush(heap, item)
    elif item[0] > heap[0][0]:
        heapq.heapreplace(heap, item)


def _normalize_root(path: str | Path) -> str:
    return resolve_user_path(path)


class ConcurrentScanner:
    """
    Walks one directory tree with bounded fan-out.

    A subdirectory is handed to the pool only if a slot is free at that
    moment; otherwise the current thread scans it inline. Slots equal pool
    threads, so every submitted subtree has a thread and waiting on child
    futures can not deadlock.
    """

    def __init__(
        self,
        progress: ScanProgress | None = None,
        cancel: threading.Event | None = None,
        max_workers: int | None = None,
        large_file_limit: int = DEFAULT_LARGE_FILE_LIMIT,
    ):
        self.progress = progress or ScanProgress()
        self.cancel = cancel or threading.Event()
        self.max_workers = max_workers or default_max_workers()
        self.large_file_limit = large_file_limit
        self._slots = threading.BoundedSemaphore(self.max_workers)
        self._executor: ThreadPoolExecutor | None = None

    def _check_cancelled(self) -> None:
        if self.cancel.is_set():
            raise ScanCancelledError("scan cancelled")

    def scan(self, path: str | Path) -> ScanResult:
        """
        Scan a directory and aggregate the size of every child.

        Args:
            path: Directory to scan (may contain ~)

        Returns:
            ScanResult with one entry per immediate child

        Raises:
            RootUnreadableError: the directory itself could not be listed
            ScanCancelledError: the cancel event was set mid-scan
        """
        root = _normalize_root(path)
        self.progress.current_path = root

        try:
            with os.scandir(root) as it:
                children = list(it)
        except OSError as e:
            raise RootUnreadableError(root, e) from e

        entries: list[DirEntry] = []
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="spacelens-scan"
        ) as executor:
            self._executor = executor
            try:
                _, top = self._scan_children(children, entries)
            except ScanCancelledError:
                self.cancel.set()
                raise
            finally:
                self._executor = None

        entries.sort(key=lambda e: e.size, reverse=True)
        large_files = [
            FileEntry(name=name, path=file_path, size=size)
            for size, file_path, name in sorted(top, reverse=True)
        ]
        result = ScanResult(
            entries=entries,
            large_files=large_files,
            total_size=sum(e.size for e in entries),
        )
        logger.debug(
            "Scanned %s: %d bytes, %d files, %d dirs",
            root,
            result.total_size,
            self.progress.files.value,
            self.progress.dirs.value,
        )
        return result

    def _scan_children(
        self, children: list[os.DirEntry], entries: list[DirEntry] | None = None
    ) -> tuple[int, TopFiles]:
        """Size every child; append a DirEntry per child when entries is given."""
        total = 0
        top: TopFiles = []
        pending: list[tuple[os.DirEntry, Future | None, int, TopFiles]] = []

        for child in children:
            self._check_cancelled()
            try:
                if child.is_symlink():
                    size = actual_file_size(child.stat(follow_symlinks=False))
                    self.progress.bytes.increment(size)
                    total += size
                    if entries is not None:
                        entries.append(
                            DirEntry(
                                name=child.name + SYMLINK_MARKER,
                                path=child.path,
                                size=size,
                                is_symlink=True,
                            )
                        )
                elif child.is_dir(follow_symlinks=False):
                    self.progress.dirs.increment()
                    pending.append(self._schedule(child))
                else:
                    st = child.stat(follow_symlinks=False)
                    size = actual_file_size(st)
                    self.progress.files.increment()
                    self.progress.bytes.increment(size)
                    total += size
                    if stat.S_ISREG(st.st_mode):
                        _push_top(top, (size, child.path, child.name), self.large_file_limit)
                    if entries is not None:
                        entries.append(DirEntry(name=child.name, path=child.path, size=size))
            except OSError as e:
                logger.debug("Skipping %s: %s", child.path, e)
                continue

        # Subtree totals fold into their parent as the recursive calls return
        for child, future, size, child_top in pending:
            if future is not None:
                size, child_top = future.result()
            total += size
            if entries is not None:
                entries.append(
                    DirEntry(name=child.name, path=child.path, size=size, is_dir=True)
                )
            for item in child_top:
                _push_top(top, item, self.large_file_limit)

        return total, top

    def _schedule(self, child: os.DirEntry) -> tuple[os.DirEntry, Future | None, int, TopFiles]:
        if self._executor is not None and self._slots.acquire(blocking=False):
            try:
                future = self._executor.submit(self._scan_subtree_in_slot, child.path)
            except RuntimeError:
                # Pool already shutting down after a cancel
                self._slots.release()
            else:
                return child, future, 0, []
        size, top = self._scan_subtree(child.path)
        return child, None, size, top

    def _scan_subtree_in_slot(self, path: str) -> tuple[int, TopFiles]:
        try:
            return self._scan_subtree(path)
        finally:
            self._slots.release()

    def _scan_subtree(self, path: str) -> tuple[int, TopFiles]:
        self._check_cancelled()
        self.progress.current_path = path
        try:
            with os.scandir(path) as it:
                children = list(it)
        except OSError as e:
            logger.debug("Cannot list %s: %s", path, e)
            return 0, []

        return self._scan_children(children)


def scan_path(
    path: str | Path,
    progress: ScanProgress | None = None,
    cancel: threading.Event | None = None,
    max_workers: int | None = None,
    large_file_limit: int = DEFAULT_LARGE_FILE_LIMIT,
) -> ScanResult:
    """
    Scan a directory tree concurrently.

    Args:
        path: Directory to scan (may contain ~)
        progress: Counters updated as entries are visited
        cancel: Event that aborts the scan when set
        max_workers: Maximum subtrees scanned at once
        large_file_limit: Size of the largest-files shortlist

    Returns:
        ScanResult for the directory
    """
    scanner = ConcurrentScanner(
        progress=progress,
        cancel=cancel,
        max_workers=max_workers,
        large_file_limit=large_file_limit,
    )
    return scanner.scan(path)


def measure_disk_usage(path: str | Path, cancel: threading.Event | None = None) -> int:
    """
    Measure the allocated size of a tree, like ``du``.

    Every file, directory and link contributes its allocated blocks; hard
    links are counted once. Nothing is cached. A symlinked root is followed,
    as scan_path does, so both report on the same tree; links below the
    root are not.

    Args:
        path: File or directory to measure
        cancel: Event that aborts the measurement when set

    Returns:
        Total allocated bytes

    Raises:
        RootUnreadableError: the path itself could not be read
    """
    root = _normalize_root(path)
    try:
        root_stat = os.stat(root)
    except OSError as e:
        raise RootUnreadableError(root, e) from e

    seen: set[tuple[int, int]] = set()

    def _allocated(st: os.stat_result) -> int:
        if st.st_nlink > 1 and not stat.S_ISDIR(st.st_mode):
            key = (st.st_dev, st.st_ino)
            if key in seen:
                return 0
            seen.add(key)
        blocks = getattr(st, "st_blocks", None)
        return blocks * 512 if blocks is not None else st.st_size

    total = _allocated(root_stat)
    if not stat.S_ISDIR(root_stat.st_mode):
        return total

    try:
        with os.scandir(root) as it:
            stack = [list(it)]
    except OSError as e:
        raise RootUnreadableError(root, e) from e

    while stack:
        for entry in stack.pop():
            if cancel is not None and cancel.is_set():
                raise ScanCancelledError("measurement cancelled")
            try:
                total += _allocated(entry.stat(follow_symlinks=False))
                if entry.is_dir(follow_symlinks=False):
                    with os.scandir(entry.path) as it:
                        stack.append(list(it))
            except OSError:
                continue

    return total
