"""Moving user-selected paths to the trash."""

import logging
import os
import threading
from pathlib import Path

from send2trash import send2trash

from spacelens.config import resolve_user_path
from spacelens.errors import TrashCancelledError, TrashError, UnsafePathError
from spacelens.progress import AtomicCounter

logger = logging.getLogger(__name__)

# Paths that must never be trashed as a whole
CRITICAL_PATHS = frozenset(
    {
        "/",
        "/bin",
        "/sbin",
        "/usr",
        "/usr/bin",
        "/usr/sbin",
        "/etc",
        "/var",
        "/private",
        "/System",
        "/Library",
        "/Library/Extensions",
        "/Applications",
        "/Users",
        "/home",
    }
)


def validate_path_for_deletion(path: str | Path) -> Path:
    """
    Refuse paths that must never be trashed.

    Args:
        path: Path the user asked to delete

    Returns:
        The absolute path

    Raises:
        UnsafePathError: empty, traversal, control characters, the home
            directory, or a critical system directory
    """
    raw = str(path)
    if not raw.strip():
        raise UnsafePathError("empty path")
    if any(ord(c) < 32 or ord(c) == 127 for c in raw):
        raise UnsafePathError(f"path contains control characters: {raw!r}")
    if ".." in Path(raw).parts:
        raise UnsafePathError(f"path traversal not allowed: {raw}")

    target = resolve_user_path(raw)
    if target in CRITICAL_PATHS or target.startswith("/System/"):
        raise UnsafePathError(f"critical system directory: {target}")
    if target == str(Path.home()):
        raise UnsafePathError("refusing to trash the home directory")
    return Path(target)


def count_files(
    path: Path,
    counter: AtomicCounter | None = None,
    cancel: threading.Event | None = None,
) -> int:
    """
    Count regular files under a path, bumping ``counter`` for each one.

    Unreadable subdirectories are skipped. Symlinks are not followed.
    """
    if not path.is_dir() or path.is_symlink():
        if counter is not None:
            counter.increment()
        return 1

    count = 0
    stack = [str(path)]
    while stack:
        if cancel is not None and cancel.is_set():
            raise TrashCancelledError(path, "cancelled before anything was moved")
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                        elif entry.is_file(follow_symlinks=False):
                            count += 1
                            if counter is not None:
                                counter.increment()
                    except OSError:
                        continue
        except OSError as e:
            logger.debug("Cannot list %s while counting: %s", current, e)
    return count


def trash_path(
    path: str | Path,
    counter: AtomicCounter | None = None,
    cancel: threading.Event | None = None,
) -> int:
    """
    Move a file or directory tree to the trash.

    The whole tree is moved with a single call; nothing is ever unlinked
    permanently.

    Args:
        path: Path to trash
        counter: Incremented once per regular file in the tree
        cancel: Event that aborts the operation before the move starts

    Returns:
        Number of regular files moved

    Raises:
        UnsafePathError: the path is refused
        TrashCancelledError: cancelled before the move
        TrashError: the move failed or the path is still in place
    """
    target = validate_path_for_deletion(path)
    if not os.path.lexists(target):
        raise TrashError(target, "no such file or directory")

    count = count_files(target, counter, cancel)
    if cancel is not None and cancel.is_set():
        raise TrashCancelledError(target, "cancelled before anything was moved")

    logger.info("Moving %s (%d files) to trash", target, count)
    try:
        send2trash(str(target))
    except OSError as e:
        raise TrashError(target, f"could not move to trash: {e}") from e

    if os.path.lexists(target):
        raise TrashError(target, "still present after moving to trash")
    return count
