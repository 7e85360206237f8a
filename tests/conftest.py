"""Shared pytest fixtures."""

import pytest

from assetvault.access import Principal, RoleAccessController
from assetvault.config import AssetStoreConfig
from assetvault.metadata import InMemoryMetadataRegistry
from assetvault.storage import MemoryBackend
from assetvault.store import AssetStore


class RecordingBackend:
    """Delegate to a real backend while recording every call made to it."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    async def probe(self, path):
        self.calls.append(("probe", path))
        return await self.inner.probe(path)

    async def put(self, path, data, expected_fingerprint=None, *, message=None):
        self.calls.append(("put", path))
        return await self.inner.put(path, data, expected_fingerprint, message=message)

    async def get(self, path):
        self.calls.append(("get", path))
        return await self.inner.get(path)

    async def delete(self, path, expected_fingerprint, *, message=None):
        self.calls.append(("delete", path))
        return await self.inner.delete(path, expected_fingerprint, message=message)

    async def list(self, path=""):
        self.calls.append(("list", path))
        return await self.inner.list(path)

    async def close(self):
        await self.inner.close()


@pytest.fixture
def backend():
    return RecordingBackend(MemoryBackend())


@pytest.fixture
def registry():
    return InMemoryMetadataRegistry()


@pytest.fixture
def store_config():
    return AssetStoreConfig(retry_backoff=0.0)


@pytest.fixture
def asset_store(backend, registry, store_config):
    return AssetStore(
        backend=backend,
        access=RoleAccessController(),
        registry=registry,
        config=store_config,
    )


@pytest.fixture
def admin():
    return Principal(id="root", roles=frozenset({"admin"}))


@pytest.fixture
def alice():
    return Principal(id="alice", roles=frozenset({"contributor"}))


@pytest.fixture
def bob():
    return Principal(id="bob", roles=frozenset({"viewer"}))


@pytest.fixture
def curator():
    return Principal(id="carol", roles=frozenset({"curator"}))
