"""Tests for relaygate.credentials."""

from __future__ import annotations

import pytest

from relaygate.credentials import CredentialCache


class TestPathFor:
    def test_safe_ids_map_directly(self, tmp_path):
        cache = CredentialCache(tmp_path)
        assert cache.path_for("biz-1_a") == tmp_path / "session-biz-1_a"

    def test_unsafe_ids_are_hashed(self, tmp_path):
        cache = CredentialCache(tmp_path)
        path = cache.path_for("../../etc")
        assert path.parent == tmp_path
        assert path.name.startswith("session-")
        assert len(path.name) == len("session-") + 64

    def test_hash_is_stable(self, tmp_path):
        cache = CredentialCache(tmp_path)
        assert cache.path_for("a b") == cache.path_for("a b")
        assert cache.path_for("a b") != cache.path_for("a c")

    def test_empty_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            CredentialCache(tmp_path).path_for("")


class TestClear:
    @pytest.mark.asyncio
    async def test_removes_and_recreates(self, tmp_path):
        cache = CredentialCache(tmp_path)
        path = cache.path_for("biz1")
        (path / "Default").mkdir(parents=True)
        (path / "Default" / "Cookies").write_text("secret")

        assert await cache.clear("biz1") is True
        assert path.is_dir()
        assert list(path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_missing_directory(self, tmp_path):
        cache = CredentialCache(tmp_path / "nested" / "root")
        assert await cache.clear("biz1") is False
        assert cache.path_for("biz1").is_dir()

    @pytest.mark.asyncio
    async def test_other_tenants_untouched(self, tmp_path):
        cache = CredentialCache(tmp_path)
        other = cache.path_for("biz2")
        other.mkdir()
        (other / "token").write_text("x")

        await cache.clear("biz1")
        assert (other / "token").exists()

    @pytest.mark.asyncio
    async def test_failure_raises_oserror(self, tmp_path):
        blocker = tmp_path / "root"
        blocker.write_text("not a directory")
        with pytest.raises(OSError):
            await CredentialCache(blocker).clear("biz1")
