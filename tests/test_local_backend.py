"""Tests for the filesystem backend."""

import hashlib

import pytest

from assetvault.errors import ConflictError, NotFoundError, ValidationError
from assetvault.storage import BackendAdapter, LocalBackend, ProbeState


@pytest.fixture
def local(tmp_path):
    return LocalBackend(base_path=tmp_path / "objects")


class TestLocalBackend:
    def test_satisfies_protocol(self, local):
        assert isinstance(local, BackendAdapter)

    @pytest.mark.asyncio
    async def test_put_writes_file(self, local, tmp_path):
        stored = await local.put("assets/a/1", b"content")
        assert (tmp_path / "objects" / "assets" / "a" / "1").read_bytes() == b"content"
        assert stored.fingerprint == hashlib.sha256(b"content").hexdigest()

    @pytest.mark.asyncio
    async def test_probe_states(self, local):
        assert (await local.probe("missing")).state is ProbeState.ABSENT
        stored = await local.put("present", b"x")
        probe = await local.probe("present")
        assert probe.state is ProbeState.EXISTS
        assert probe.fingerprint == stored.fingerprint

    @pytest.mark.asyncio
    async def test_create_only_without_fingerprint(self, local):
        await local.put("doc", b"one")
        with pytest.raises(ConflictError):
            await local.put("doc", b"two")

    @pytest.mark.asyncio
    async def test_overwrite_with_current_fingerprint(self, local):
        first = await local.put("doc", b"one")
        await local.put("doc", b"two", first.fingerprint)
        data, _ = await local.get("doc")
        assert data == b"two"

    @pytest.mark.asyncio
    async def test_overwrite_with_stale_fingerprint_conflicts(self, local):
        first = await local.put("doc", b"one")
        await local.put("doc", b"two", first.fingerprint)
        with pytest.raises(ConflictError):
            await local.put("doc", b"three", first.fingerprint)

    @pytest.mark.asyncio
    async def test_get_missing_is_not_found(self, local):
        with pytest.raises(NotFoundError):
            await local.get("nope")

    @pytest.mark.asyncio
    async def test_delete_prunes_empty_directories(self, local, tmp_path):
        stored = await local.put("assets/a/1", b"x")
        await local.delete("assets/a/1", stored.fingerprint)
        assert not (tmp_path / "objects" / "assets").exists()
        assert (tmp_path / "objects").exists()

    @pytest.mark.asyncio
    async def test_delete_with_stale_fingerprint_keeps_file(self, local):
        await local.put("doc", b"one")
        with pytest.raises(ConflictError):
            await local.delete("doc", hashlib.sha256(b"other").hexdigest())
        assert (await local.get("doc"))[0] == b"one"

    @pytest.mark.asyncio
    async def test_list_file_and_directory(self, local):
        await local.put("assets/a/1", b"x")
        await local.put("assets/a/2", b"y")
        await local.put("assets/b/1", b"z")

        single = await local.list("assets/a/1")
        assert [(e.name, e.kind) for e in single] == [("1", "file")]

        versions = await local.list("assets/a")
        assert [e.name for e in versions] == ["1", "2"]
        assert versions[0].path == "assets/a/1"

        assets = await local.list("assets")
        assert [(e.name, e.is_dir) for e in assets] == [("a", True), ("b", True)]

    @pytest.mark.asyncio
    async def test_list_missing_is_not_found(self, local):
        with pytest.raises(NotFoundError):
            await local.list("assets/none")

    @pytest.mark.asyncio
    async def test_traversal_is_rejected(self, local):
        with pytest.raises(ValidationError):
            await local.put("a/../../etc/passwd", b"x")
