"""Configuration for spacelens.

Settings come from three layers, later ones winning: built-in defaults,
``~/.config/spacelens/config.json`` and ``SPACELENS_*`` environment
variables. Paths are resolved when settings are loaded, not at import time.
"""

import json
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_DAYS = 7
DEFAULT_MTIME_GRACE_MINUTES = 30
DEFAULT_LARGE_FILE_LIMIT = 30
MAX_WORKER_CAP = 32


def expand_path(path: str | Path) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(str(path))))


def resolve_user_path(path: str | Path) -> str:
    """
    Absolute form of a path the user picked.

    Only a leading ~ is expanded. ``$NAME`` is a legal file name character
    sequence and stays literal; the shell has already expanded what the user
    typed.
    """
    return os.path.abspath(os.path.expanduser(str(path)))


def default_max_workers() -> int:
    """Scan fan-out: twice the core count, since scanning is I/O bound."""
    return min(MAX_WORKER_CAP, (os.cpu_count() or 4) * 2)


def config_dir() -> Path:
    return expand_path("~/.config/spacelens")


def config_file() -> Path:
    return config_dir() / "config.json"


class Settings(BaseModel):
    """Tunable policy for scanning and caching."""

    cache_dir: Path = Field(
        default_factory=lambda: expand_path("~/.cache/spacelens"),
        description="Where scan results and the overview index are stored",
    )
    freshness_days: float = Field(
        DEFAULT_FRESHNESS_DAYS,
        gt=0,
        description="Cached scans older than this are discarded even if untouched",
    )
    mtime_grace_minutes: float = Field(
        DEFAULT_MTIME_GRACE_MINUTES,
        ge=0,
        description="Tolerance for directory mtime comparisons",
    )
    max_workers: int = Field(
        default_factory=default_max_workers,
        ge=1,
        description="Maximum subtrees scanned concurrently",
    )
    large_file_limit: int = Field(
        DEFAULT_LARGE_FILE_LIMIT,
        ge=0,
        description="Size of the largest-files shortlist",
    )
    log_file: Optional[Path] = Field(
        default_factory=lambda: config_dir() / "spacelens.log",
        description="Rotating debug log, None to disable",
    )

    @property
    def freshness(self) -> timedelta:
        return timedelta(days=self.freshness_days)

    @property
    def mtime_grace(self) -> timedelta:
        return timedelta(minutes=self.mtime_grace_minutes)

    @property
    def overview_file(self) -> Path:
        return self.cache_dir / "overview_sizes.json"


def _load_config(path: Path) -> dict:
    """Load raw configuration values from disk."""
    if not path.exists():
        return {}

    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a JSON object", path)
        return {}
    return data


def _env_overrides() -> dict:
    overrides = {}
    if cache_dir := os.environ.get("SPACELENS_CACHE_DIR"):
        overrides["cache_dir"] = expand_path(cache_dir)
    if workers := os.environ.get("SPACELENS_MAX_WORKERS"):
        overrides["max_workers"] = workers
    return overrides


def load_settings(path: Path | None = None) -> Settings:
    """
    Build settings from the config file and environment.

    Args:
        path: Config file to read (default: ~/.config/spacelens/config.json)

    Returns:
        Validated Settings; invalid values fall back to the defaults
    """
    values = _load_config(path or config_file())
    values.update(_env_overrides())

    for key in ("cache_dir", "log_file"):
        if isinstance(values.get(key), str):
            values[key] = expand_path(values[key])

    try:
        return Settings(**values)
    except ValidationError as e:
        logger.warning("Invalid configuration, using defaults: %s", e)
        return Settings()
