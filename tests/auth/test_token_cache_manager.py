from __future__ import annotations

from pathlib import Path

from cloudpc_manager.auth import TokenCacheManager


def test_clear_removes_cache_file(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.bin"
    cache_path.write_text("{}", encoding="utf-8")
    manager = TokenCacheManager(cache_path)

    manager.clear()

    assert not cache_path.exists()


def test_clear_tolerates_missing_file(tmp_path: Path) -> None:
    manager = TokenCacheManager(tmp_path / "absent.bin")

    manager.clear()

    assert manager.path == tmp_path / "absent.bin"


def test_save_skips_unchanged_cache(tmp_path: Path) -> None:
    cache_path = tmp_path / "nested" / "cache.bin"
    manager = TokenCacheManager(cache_path)

    manager.save()

    assert not cache_path.exists()
