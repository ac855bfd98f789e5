"""Tests for the explorer facade."""

import os
import shutil
import sys
import threading
from unittest.mock import patch

import pytest

from spacelens.cache import ResultCache
from spacelens.config import Settings
from spacelens.errors import ScanCancelledError, TrashError
from spacelens.explorer import Explorer
from spacelens.overview import OverviewStore
from spacelens.progress import AtomicCounter, ScanProgress


@pytest.fixture
def explorer(tmp_path):
    settings = Settings(cache_dir=tmp_path / "cache", max_workers=4, log_file=None)
    with Explorer(
        settings=settings,
        overview_store=OverviewStore(settings.overview_file),
    ) as explorer:
        yield explorer


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "main.py").write_text("print('hi')\n")
    (root / "data").mkdir()
    (root / "data" / "blob.bin").write_bytes(b"z" * 5000)
    return root


@pytest.fixture
def fake_trash(tmp_path):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def move(path):
        shutil.move(path, bin_dir / os.path.basename(path))

    with patch("spacelens.trash.send2trash", side_effect=move):
        yield bin_dir


class TestScanning:
    def test_scan_caches_result(self, explorer, project):
        result = explorer.scan(project)

        cached, hit = explorer.cached_scan(project)
        assert hit
        assert cached == result

    def test_cached_scan_miss(self, explorer, project):
        assert explorer.cached_scan(project) == (None, False)

    def test_scan_or_load_reuses_cache(self, explorer, project):
        first, first_hit = explorer.scan_or_load(project)
        second, second_hit = explorer.scan_or_load(project)

        assert not first_hit
        assert second_hit
        assert second == first

    def test_scan_reports_progress(self, explorer, project):
        progress = ScanProgress()
        explorer.scan(project, progress=progress)
        assert progress.files.value == 2
        assert progress.dirs.value == 2

    def test_uses_configured_large_file_limit(self, tmp_path, project):
        settings = Settings(cache_dir=tmp_path / "cache", large_file_limit=1, log_file=None)
        with Explorer(settings=settings, overview_store=OverviewStore(settings.overview_file)) as e:
            result = e.scan(project)
        assert [f.name for f in result.large_files] == ["blob.bin"]

    def test_cache_write_failure_still_returns(self, tmp_path, project):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        settings = Settings(cache_dir=blocker / "cache", log_file=None)
        with Explorer(settings=settings, overview_store=OverviewStore(tmp_path / "o.json")) as e:
            result = e.scan(project)
        assert result.total_size > 0

    def test_cancelled_scan_is_not_cached(self, explorer, project):
        started = threading.Event()

        def slow_scan(path, progress=None, cancel=None, **kwargs):
            started.set()
            assert cancel.wait(timeout=5)
            raise ScanCancelledError(str(path))

        with patch("spacelens.explorer.scan_path", side_effect=slow_scan):
            job = explorer.start_scan(project)
            assert started.wait(timeout=5)
            job.cancel()
            with pytest.raises(ScanCancelledError):
                job.result(timeout=5)

        assert explorer.cached_scan(project) == (None, False)
        assert not list(explorer.cache.cache_dir.glob("*.json"))

    def test_start_scan_result(self, explorer, project):
        job = explorer.start_scan(project)
        result, hit = job.result(timeout=10)

        assert job.done()
        assert not hit
        assert job.path == str(project)
        assert isinstance(job.progress, ScanProgress)
        assert result.total_size == job.progress.bytes.value

    def test_start_scan_without_cache(self, explorer, project):
        explorer.scan(project)
        _, hit = explorer.start_scan(project, use_cache=False).result(timeout=10)
        assert not hit


@pytest.mark.skipif(sys.platform == "win32", reason="needs st_blocks")
class TestOverview:
    def test_overview_is_live_while_cache_hits(self, explorer, project):
        explorer.scan(project)
        before = explorer.overview(project)

        (project / "data" / "more.bin").write_bytes(b"m" * 20000)

        assert explorer.overview(project) > before
        assert explorer.cached_scan(project)[1]

    def test_stored_overview(self, explorer, project):
        assert explorer.stored_overview(project) is None
        size = explorer.overview(project)
        assert explorer.stored_overview(project) == size


class TestTrash:
    def test_trash_invalidates_lineage(self, explorer, project, fake_trash):
        explorer.scan(project)
        explorer.scan(project / "data")
        explorer.overview_store.store(project, 1)
        explorer.overview_store.store(project / "data", 2)

        moved = explorer.trash(project / "data")

        assert moved == 1
        assert not (project / "data").exists()
        assert explorer.cached_scan(project) == (None, False)
        assert explorer.stored_overview(project) is None
        assert explorer.stored_overview(project / "data") is None

    def test_sibling_cache_survives(self, explorer, project, fake_trash):
        explorer.scan(project / "src")
        explorer.trash(project / "data")
        assert explorer.cached_scan(project / "src")[1]

    def test_failed_trash_keeps_caches(self, explorer, project):
        explorer.scan(project)
        explorer.overview_store.store(project, 123)

        with patch("spacelens.trash.send2trash", side_effect=OSError("no trash here")):
            with pytest.raises(TrashError):
                explorer.trash(project / "data")

        assert explorer.cached_scan(project)[1]
        assert explorer.stored_overview(project) == 123

    def test_start_trash_counts_files(self, explorer, project, fake_trash):
        job = explorer.start_trash(project)
        assert job.result(timeout=10) == 2
        assert isinstance(job.progress, AtomicCounter)
        assert job.progress.value == 2
        assert (fake_trash / "project" / "src" / "main.py").exists()


class TestPredicates:
    def test_reexported(self):
        assert Explorer.is_handled_by_cleaner("/Users/test/Library/Caches/app")
        assert Explorer.is_cleanable_dir("/Users/test/project/node_modules")
        assert not Explorer.is_cleanable_dir("/Users/test/Library/Caches/node_modules")

    def test_default_cache_from_settings(self, tmp_path):
        settings = Settings(cache_dir=tmp_path / "c", freshness_days=1, log_file=None)
        with Explorer(settings=settings) as explorer:
            assert isinstance(explorer.cache, ResultCache)
            assert explorer.cache.cache_dir == tmp_path / "c"
            assert explorer.cache.freshness == settings.freshness
