"""Tests for the hook/filter system."""

import asyncio

import pytest

from assetvault.lib.hooks import (
    AFTER_ASSET_DELETE,
    AFTER_ASSET_STORE,
    ASSET_METADATA,
    BEFORE_ASSET_STORE,
    HookRegistry,
)


@pytest.fixture
def hook_registry():
    """Create a fresh HookRegistry for each test."""
    return HookRegistry()


class TestHookRegistry:
    """Test the HookRegistry class."""

    def test_add_action_registers_handler(self, hook_registry):
        def my_handler():
            pass

        hook_registry.add_action("test_action", my_handler)
        assert hook_registry.has_action("test_action")

    def test_add_filter_registers_handler(self, hook_registry):
        def my_filter(value):
            return value

        hook_registry.add_filter("test_filter", my_filter)
        assert hook_registry.has_filter("test_filter")

    def test_action_priority_ordering(self, hook_registry):
        """Actions run lowest priority number first."""
        call_order = []

        def handler_low():
            call_order.append("low")

        def handler_high():
            call_order.append("high")

        hook_registry.add_action("test", handler_high, priority=20)
        hook_registry.add_action("test", handler_low, priority=5)

        asyncio.run(hook_registry.do_action("test"))

        assert call_order == ["low", "high"]

    def test_filter_priority_ordering(self, hook_registry):
        def append_a(value):
            return value + "a"

        def append_b(value):
            return value + "b"

        hook_registry.add_filter("test", append_b, priority=20)
        hook_registry.add_filter("test", append_a, priority=10)

        assert asyncio.run(hook_registry.apply_filters("test", "")) == "ab"

    @pytest.mark.asyncio
    async def test_async_handlers_are_awaited(self, hook_registry):
        seen = []

        async def handler(value):
            seen.append(value)

        async def double(value):
            return value * 2

        hook_registry.add_action("test", handler)
        hook_registry.add_filter("test", double)

        await hook_registry.do_action("test", "x")
        assert seen == ["x"]
        assert await hook_registry.apply_filters("test", 21) == 42

    @pytest.mark.asyncio
    async def test_filter_receives_extra_args(self, hook_registry):
        def tag(metadata, asset_id):
            return {**metadata, "tagged": asset_id}

        hook_registry.add_filter(ASSET_METADATA, tag)
        result = await hook_registry.apply_filters(ASSET_METADATA, {"a": 1}, "asset-1")
        assert result == {"a": 1, "tagged": "asset-1"}

    def test_remove_action(self, hook_registry):
        def handler():
            pass

        hook_registry.add_action("test", handler)
        assert hook_registry.remove_action("test", handler) is True
        assert not hook_registry.has_action("test")
        assert hook_registry.remove_action("test", handler) is False

    def test_remove_filter(self, hook_registry):
        def my_filter(value):
            return value

        hook_registry.add_filter("test", my_filter)
        assert hook_registry.remove_filter("test", my_filter) is True
        assert not hook_registry.has_filter("test")

    @pytest.mark.asyncio
    async def test_unregistered_hooks_are_noops(self, hook_registry):
        await hook_registry.do_action("nothing")
        assert await hook_registry.apply_filters("nothing", "value") == "value"

    def test_clear(self, hook_registry):
        hook_registry.add_action("a", lambda: None)
        hook_registry.add_filter("b", lambda v: v)
        hook_registry.clear()
        assert not hook_registry.has_action("a")
        assert not hook_registry.has_filter("b")

    def test_registries_are_independent(self):
        first = HookRegistry()
        second = HookRegistry()
        first.add_action(BEFORE_ASSET_STORE, lambda *a: None)
        assert not second.has_action(BEFORE_ASSET_STORE)


class TestStoreLifecycleHooks:
    """Hooks fired by the asset store."""

    @pytest.mark.asyncio
    async def test_store_and_delete_fire_actions(self, asset_store, alice):
        events = []

        asset_store.hooks.add_action(
            AFTER_ASSET_STORE, lambda asset_id, version_id, principal: events.append(("stored", version_id))
        )
        asset_store.hooks.add_action(
            AFTER_ASSET_DELETE, lambda asset_id, principal: events.append(("deleted", principal.id))
        )

        created = await asset_store.store(alice, "hello")
        await asset_store.delete(alice, created["assetId"])

        assert events == [("stored", "1"), ("deleted", "alice")]

    @pytest.mark.asyncio
    async def test_metadata_filter_shapes_the_stored_record(self, asset_store, alice):
        def add_source(metadata, asset_id, principal):
            return {**metadata, "source": "importer"}

        asset_store.hooks.add_filter(ASSET_METADATA, add_source)
        created = await asset_store.store(alice, "hello")

        assert created["metadata"]["source"] == "importer"
        fetched = await asset_store.retrieve(alice, created["assetId"])
        assert fetched["metadata"]["source"] == "importer"

    @pytest.mark.asyncio
    async def test_failing_action_becomes_an_internal_failure(self, asset_store, alice):
        def explode(asset_id, principal):
            raise RuntimeError("boom")

        asset_store.hooks.add_action(BEFORE_ASSET_STORE, explode)
        result = await asset_store.store(alice, "hello")

        assert not result.success
        assert result.error_kind == "internal"
        assert "boom" in result.error


class TestTracingDisabled:
    """With logfire off, spans around store operations and hooks are inert."""

    def test_configure_without_enabling_keeps_tracing_off(self):
        from assetvault.config import Settings
        from assetvault.lib import observability

        observability.configure(Settings())
        assert not observability.is_available()
        with observability.span("asset.store", asset_id="asset-1", principal="alice") as current:
            assert current is None
