"""Tests for the persistent scan result cache."""

import os
import time
from datetime import datetime, timedelta, timezone

import pytest

from spacelens.cache import ResultCache, atomic_write_text, cache_key, lineage
from spacelens.errors import CacheWriteError
from spacelens.models import DirEntry, FileEntry, ScanResult


@pytest.fixture
def cache(tmp_path):
    return ResultCache(tmp_path / "cache")


@pytest.fixture
def target(tmp_path):
    path = tmp_path / "cache-target"
    path.mkdir()
    return path


def _result(target) -> ScanResult:
    return ScanResult(
        entries=[DirEntry(name="alpha", path=str(target / "alpha"), size=42, is_dir=True)],
        large_files=[FileEntry(name="big.bin", path=str(target / "big.bin"), size=2048)],
        total_size=42,
    )


def _set_mtime(path, when: datetime) -> None:
    ts = when.timestamp()
    os.utime(path, (ts, ts))


class TestCacheKey:
    def test_stable_for_same_path(self, target):
        assert cache_key(target) == cache_key(str(target))

    def test_relative_and_absolute_agree(self, target, monkeypatch):
        monkeypatch.chdir(target.parent)
        assert cache_key(target.name) == cache_key(target)

    def test_distinct_paths(self, tmp_path):
        assert cache_key(tmp_path / "a") != cache_key(tmp_path / "b")


class TestLineage:
    def test_includes_every_ancestor(self):
        assert lineage("/a/b/c") == ["/a/b/c", "/a/b", "/a", "/"]

    def test_root(self):
        assert lineage("/") == ["/"]


class TestSaveLoad:
    def test_round_trip(self, cache, target):
        result = _result(target)
        cache.save(target, result)
        assert cache.load(target) == result

    def test_miss_when_nothing_saved(self, cache, target):
        assert cache.load(target) is None

    def test_record_file_is_json(self, cache, target):
        path = cache.save(target, _result(target))
        assert path.suffix == ".json"
        assert path.parent == cache.cache_dir
        assert str(target) in path.read_text()

    def test_no_temp_files_left(self, cache, target):
        cache.save(target, _result(target))
        cache.save(target, _result(target))
        assert list(cache.cache_dir.glob("*.tmp")) == []
        assert len(list(cache.cache_dir.iterdir())) == 1

    def test_survives_new_instance(self, cache, target):
        """Keys do not depend on the process that wrote them."""
        cache.save(target, _result(target))
        again = ResultCache(cache.cache_dir)
        assert again.load(target) == _result(target)

    def test_save_failure_raises(self, tmp_path, target):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        broken = ResultCache(blocker / "cache")
        with pytest.raises(CacheWriteError):
            broken.save(target, _result(target))


class TestInvalidation:
    def test_expired_even_if_unmodified(self, cache, target):
        """The freshness ceiling applies regardless of mtime."""
        now = datetime.now(timezone.utc)
        _set_mtime(target, now - timedelta(days=9))
        cache.save(target, _result(target), scan_time=now - timedelta(days=8))

        assert cache.load(target) is None
        assert not cache.cache_path(target).exists()

    def test_fresh_and_unmodified_hits(self, cache, target):
        now = datetime.now(timezone.utc)
        _set_mtime(target, now - timedelta(days=3))
        cache.save(target, _result(target), scan_time=now - timedelta(days=2))
        assert cache.load(target) is not None

    def test_modified_after_grace_window(self, cache, target):
        now = datetime.now(timezone.utc)
        cache.save(target, _result(target), scan_time=now - cache.mtime_grace - timedelta(minutes=1))
        _set_mtime(target, now)

        assert cache.load(target) is None
        assert not cache.cache_path(target).exists()

    def test_modified_within_grace_window(self, cache, target):
        cache.save(target, _result(target))
        time.sleep(0.01)
        (target / "new.txt").write_text("more")
        assert cache.load(target) is not None

    def test_zero_grace_detects_any_change(self, tmp_path, target):
        strict = ResultCache(tmp_path / "strict", mtime_grace=timedelta(0))
        now = datetime.now(timezone.utc)
        strict.save(target, _result(target), scan_time=now - timedelta(seconds=5))
        _set_mtime(target, now)
        assert strict.load(target) is None

    def test_directory_removed(self, cache, target):
        cache.save(target, _result(target))
        target.rmdir()
        assert cache.load(target) is None

    def test_corrupt_record_is_a_miss(self, cache, target):
        cache.save(target, _result(target))
        cache.cache_path(target).write_text("{not json")

        assert cache.load(target) is None
        assert not cache.cache_path(target).exists()

    def test_wrong_shape_is_a_miss(self, cache, target):
        cache.cache_dir.mkdir(parents=True, exist_ok=True)
        cache.cache_path(target).write_text('{"path": 1}')
        assert cache.load(target) is None

    def test_invalidate(self, cache, target):
        cache.save(target, _result(target))
        assert cache.invalidate(target)
        assert not cache.invalidate(target)
        assert cache.load(target) is None

    def test_invalidate_lineage(self, cache, tmp_path):
        child = tmp_path / "a" / "b"
        child.mkdir(parents=True)
        for path in (child, child.parent, tmp_path):
            cache.save(path, ScanResult())
        sibling = tmp_path / "other"
        sibling.mkdir()
        cache.save(sibling, ScanResult())

        assert cache.invalidate_lineage(child) == 3
        assert cache.load(child) is None
        assert cache.load(child.parent) is None
        assert cache.load(tmp_path) is None
        assert cache.load(sibling) is not None

    def test_clear(self, cache, tmp_path):
        for name in ("x", "y"):
            (tmp_path / name).mkdir()
            cache.save(tmp_path / name, ScanResult())
        assert cache.clear() == 2
        assert cache.clear() == 0


class TestAtomicWrite:
    def test_replaces_contents(self, tmp_path):
        path = tmp_path / "nested" / "file.json"
        atomic_write_text(path, "one")
        atomic_write_text(path, "two")
        assert path.read_text() == "two"
        assert [p.name for p in path.parent.iterdir()] == ["file.json"]


class TestLiteralNames:
    def test_dollar_name_has_its_own_key(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DECOY_DIR", "decoy")
        literal = tmp_path / "$DECOY_DIR"
        assert cache_key(literal) != cache_key(tmp_path / "decoy")
        assert lineage(literal)[0] == str(literal)

    def test_dollar_name_round_trip(self, cache, tmp_path, monkeypatch):
        monkeypatch.setenv("DECOY_DIR", "decoy")
        literal = tmp_path / "$DECOY_DIR"
        literal.mkdir()
        (tmp_path / "decoy").mkdir()

        cache.save(literal, _result(literal))

        assert cache.load(literal) == _result(literal)
        assert cache.load(tmp_path / "decoy") is None
