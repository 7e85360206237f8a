"""Tests for the metadata registries."""

import pytest

from assetvault.config import MetadataConfig
from assetvault.db.session import create_engine, create_session_maker, create_tables
from assetvault.errors import NotFoundError
from assetvault.metadata import InMemoryMetadataRegistry, MetadataRegistry
from assetvault.metadata.sql import SQLMetadataRegistry


async def make_sql_registry(tmp_path) -> SQLMetadataRegistry:
    engine = create_engine(MetadataConfig(backend="sql", url=f"sqlite+aiosqlite:///{tmp_path}/metadata.db"))
    await create_tables(engine)
    return SQLMetadataRegistry(create_session_maker(engine), engine=engine)


@pytest.fixture(params=["memory", "sql"])
def registry_kind(request):
    return request.param


async def open_registry(kind, tmp_path) -> MetadataRegistry:
    if kind == "memory":
        return InMemoryMetadataRegistry()
    return await make_sql_registry(tmp_path)


class TestMetadataRegistry:
    """Behaviour shared by every registry implementation."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, registry_kind, tmp_path):
        registry = await open_registry(registry_kind, tmp_path)
        try:
            assert isinstance(registry, MetadataRegistry)
            stored = await registry.put("asset-1", None, {"title": "Report", "tags": ["q1"]})
            assert stored == {"title": "Report", "tags": ["q1"]}
            assert await registry.get("asset-1") == {"title": "Report", "tags": ["q1"]}
        finally:
            await registry.close()

    @pytest.mark.asyncio
    async def test_put_replaces_record(self, registry_kind, tmp_path):
        registry = await open_registry(registry_kind, tmp_path)
        try:
            await registry.put("asset-1", None, {"title": "Draft"})
            await registry.put("asset-1", None, {"title": "Final"})
            assert await registry.get("asset-1") == {"title": "Final"}
        finally:
            await registry.close()

    @pytest.mark.asyncio
    async def test_version_records_are_separate(self, registry_kind, tmp_path):
        registry = await open_registry(registry_kind, tmp_path)
        try:
            await registry.put("asset-1", None, {"version": "2"})
            await registry.put("asset-1", "1", {"version": "1"})
            await registry.put("asset-1", "2", {"version": "2"})
            assert (await registry.get("asset-1", "1"))["version"] == "1"
            assert (await registry.get("asset-1"))["version"] == "2"
            with pytest.raises(NotFoundError):
                await registry.get("asset-1", "3")
        finally:
            await registry.close()

    @pytest.mark.asyncio
    async def test_missing_record_is_not_found(self, registry_kind, tmp_path):
        registry = await open_registry(registry_kind, tmp_path)
        try:
            with pytest.raises(NotFoundError):
                await registry.get("nope")
        finally:
            await registry.close()

    @pytest.mark.asyncio
    async def test_delete_removes_every_scope(self, registry_kind, tmp_path):
        registry = await open_registry(registry_kind, tmp_path)
        try:
            await registry.put("asset-1", None, {"a": 1})
            await registry.put("asset-1", "1", {"a": 1})
            await registry.put("asset-2", None, {"b": 2})

            assert await registry.delete("asset-1") == 2
            assert await registry.asset_ids() == ["asset-2"]
            with pytest.raises(NotFoundError):
                await registry.get("asset-1", "1")
            assert await registry.delete("asset-1") == 0
        finally:
            await registry.close()

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, registry_kind, tmp_path):
        registry = await open_registry(registry_kind, tmp_path)
        try:
            await registry.put("asset-1", None, {"tags": ["a"]})
            record = await registry.get("asset-1")
            record["tags"].append("mutated")
            assert await registry.get("asset-1") == {"tags": ["a"]}
        finally:
            await registry.close()
