"""Path classification shared with the other cleanup flows.

The explorer must not suggest deleting what another subsystem already
manages: the deep-clean routine empties a fixed set of per-user cache, log
and trash roots, and the purge flow owns project build artifacts.
"""

import os

# Home-relative roots emptied by the deep-clean routine.
# Bump the version whenever the list changes so both sides can be checked.
CLEANER_ROOTS_VERSION = 1
CLEANER_ROOTS: tuple[str, ...] = (
    "Library/Caches",
    "Library/Logs",
    "Library/Saved Application State",
    ".Trash",
    "Library/DiagnosticReports",
)

# Directory names produced by package managers and build tools
PROJECT_ARTIFACT_DIRS = frozenset(
    {
        # JavaScript
        "node_modules",
        "bower_components",
        ".pnpm-store",
        ".next",
        ".nuxt",
        ".output",
        ".parcel-cache",
        ".turbo",
        ".vite",
        ".svelte-kit",
        ".angular",
        ".nyc_output",
        # Python
        "venv",
        ".venv",
        "virtualenv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        ".eggs",
        "htmlcov",
        # JVM / Ruby / PHP
        ".gradle",
        "vendor",
        ".bundle",
        # Build outputs
        "build",
        "dist",
        "target",
        "out",
        "coverage",
        # Apple / mobile
        "DerivedData",
        "Pods",
        "Carthage",
        ".build",
        ".dart_tool",
        # Infrastructure
        ".terraform",
        ".vagrant",
        ".zig-cache",
        "zig-out",
    }
)


def _markers() -> tuple[str, ...]:
    return tuple(f"/{root}/" for root in CLEANER_ROOTS)


def is_handled_by_cleaner(path: str) -> bool:
    """
    Check whether the deep-clean routine already covers a path.

    Matching is case-sensitive: ``/users/u/library/caches/x`` is not the
    same location as ``/Users/u/Library/Caches/x`` to the cleaner.

    Args:
        path: Absolute path to check

    Returns:
        True if the path lies inside one of CLEANER_ROOTS
    """
    if not path or path == os.sep:
        return False
    return any(marker in path for marker in _markers())


def is_cleanable_dir(path: str) -> bool:
    """
    Check whether a directory is a regenerable build artifact.

    Args:
        path: Absolute or bare directory path

    Returns:
        True if the last path segment is a known artifact name and the path
        is not already handled by the deep-clean routine
    """
    if not path:
        return False

    trimmed = path.rstrip(os.sep)
    if not trimmed:
        return False

    if is_handled_by_cleaner(path):
        return False

    return os.path.basename(trimmed) in PROJECT_ARTIFACT_DIRS
