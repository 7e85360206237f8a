"""Action/filter hooks around the asset lifecycle.

Actions run callbacks for their side effects; filters pass a value through
every callback and return the result. A ``HookRegistry`` is handed to the
``AssetStore`` that fires it, so each store owns its own set of hooks.

Usage:
    from assetvault.lib.hooks import AFTER_ASSET_STORE, ASSET_METADATA, HookRegistry

    hooks = HookRegistry()

    async def announce(asset_id, version_id, principal):
        print(f"{principal.id} stored {asset_id}@{version_id}")

    def tag_source(metadata, asset_id, principal):
        return {**metadata, "source": "importer"}

    hooks.add_action(AFTER_ASSET_STORE, announce)
    hooks.add_filter(ASSET_METADATA, tag_source, priority=5)
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from assetvault.lib.observability import span

T = TypeVar("T")


@dataclass(order=True)
class HookHandler:
    """A registered hook handler with priority."""

    priority: int
    callback: Callable = field(compare=False)

    async def call(self, *args: Any, **kwargs: Any) -> Any:
        """Call the handler, handling both sync and async callbacks."""
        result = self.callback(*args, **kwargs)
        if asyncio.iscoroutine(result):
            return await result
        return result


class HookRegistry:
    """Registry of actions and filters for one asset store."""

    def __init__(self) -> None:
        self._actions: dict[str, list[HookHandler]] = defaultdict(list)
        self._filters: dict[str, list[HookHandler]] = defaultdict(list)

    def add_action(
        self,
        hook_name: str,
        callback: Callable[..., Any],
        priority: int = 10,
    ) -> None:
        """Register an action callback.

        Args:
            hook_name: Name of the action hook
            callback: Function to call when action is triggered
            priority: Lower numbers execute first (default: 10)
        """
        handler = HookHandler(priority=priority, callback=callback)
        self._actions[hook_name].append(handler)
        self._actions[hook_name].sort()

    def add_filter(
        self,
        hook_name: str,
        callback: Callable[..., T],
        priority: int = 10,
    ) -> None:
        """Register a filter callback.

        Args:
            hook_name: Name of the filter hook
            callback: Function to call to modify value
            priority: Lower numbers execute first (default: 10)
        """
        handler = HookHandler(priority=priority, callback=callback)
        self._filters[hook_name].append(handler)
        self._filters[hook_name].sort()

    def remove_action(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove an action callback. Returns True if it was registered."""
        return self._remove(self._actions, hook_name, callback)

    def remove_filter(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove a filter callback. Returns True if it was registered."""
        return self._remove(self._filters, hook_name, callback)

    @staticmethod
    def _remove(table: dict[str, list[HookHandler]], hook_name: str, callback: Callable) -> bool:
        handlers = table.get(hook_name, [])
        for i, handler in enumerate(handlers):
            if handler.callback is callback:
                handlers.pop(i)
                return True
        return False

    def has_action(self, hook_name: str) -> bool:
        return bool(self._actions.get(hook_name))

    def has_filter(self, hook_name: str) -> bool:
        return bool(self._filters.get(hook_name))

    async def do_action(self, hook_name: str, *args: Any, **kwargs: Any) -> None:
        """Execute all registered action callbacks in priority order."""
        with span(f"hook.action:{hook_name}", hook_name=hook_name):
            for handler in self._actions.get(hook_name, []):
                await handler.call(*args, **kwargs)

    async def apply_filters(self, hook_name: str, value: T, *args: Any, **kwargs: Any) -> T:
        """Pass ``value`` through every registered filter and return the result."""
        with span(f"hook.filter:{hook_name}", hook_name=hook_name):
            for handler in self._filters.get(hook_name, []):
                value = await handler.call(value, *args, **kwargs)
            return value

    def clear(self) -> None:
        """Clear all registered hooks."""
        self._actions.clear()
        self._filters.clear()


# Actions
BEFORE_ASSET_STORE = "before_asset_store"
AFTER_ASSET_STORE = "after_asset_store"
BEFORE_ASSET_DELETE = "before_asset_delete"
AFTER_ASSET_DELETE = "after_asset_delete"
AFTER_METADATA_UPDATE = "after_metadata_update"

# Filters
ASSET_METADATA = "asset_metadata"
