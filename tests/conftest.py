"""Shared fixtures for spacelens tests."""

import pytest

from spacelens.overview import reset_overview_store


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at a scratch directory so caches never touch the real one."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ("SPACELENS_CACHE_DIR", "SPACELENS_MAX_WORKERS", "SPACELENS_DEBUG"):
        monkeypatch.delenv(var, raising=False)
    reset_overview_store()
    yield home
    reset_overview_store()
