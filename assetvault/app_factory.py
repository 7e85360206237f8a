"""Explicit construction of the asset store and the HTTP application."""

from __future__ import annotations

import logging

from litestar import Litestar

from assetvault.access import Principal, RoleAccessController
from assetvault.config import AuthConfig, MetadataConfig, Settings, get_settings
from assetvault.controllers.operations import OperationsController
from assetvault.dispatch import build_dispatch_table
from assetvault.lib import observability
from assetvault.lib.hooks import HookRegistry
from assetvault.metadata.registry import InMemoryMetadataRegistry, MetadataRegistry
from assetvault.storage import create_storage_backend
from assetvault.store import AssetStore

logger = logging.getLogger(__name__)


async def create_metadata_registry(config: MetadataConfig) -> MetadataRegistry:
    """Instantiate the metadata registry named by ``config.backend``."""
    if config.backend == "memory":
        return InMemoryMetadataRegistry()

    if config.backend == "sql":
        from assetvault.db.session import create_engine, create_session_maker, create_tables
        from assetvault.metadata.sql import SQLMetadataRegistry

        engine = create_engine(config)
        await create_tables(engine)
        return SQLMetadataRegistry(create_session_maker(engine), engine=engine)

    raise ValueError(f"Unknown metadata backend '{config.backend}'. Use 'memory' or 'sql'.")


async def build_asset_store(settings: Settings, hooks: HookRegistry | None = None) -> AssetStore:
    """Wire backend, access controller and registry into an ``AssetStore``."""
    backend = create_storage_backend(settings.storage)
    registry = await create_metadata_registry(settings.metadata)
    logger.info(
        "Asset store using %s content backend and %s metadata",
        settings.storage.backend,
        settings.metadata.backend,
    )
    return AssetStore(
        backend=backend,
        access=RoleAccessController(),
        registry=registry,
        config=settings.store,
        hooks=hooks,
    )


def build_principals(config: AuthConfig) -> dict[str, Principal]:
    """Map each configured bearer token to its principal."""
    return {
        entry.token: Principal(id=entry.principal, roles=frozenset(entry.roles))
        for entry in config.tokens
    }


def create_app(settings: Settings | None = None, store: AssetStore | None = None) -> Litestar:
    """Create the Litestar application serving the operations controller."""
    settings = settings or get_settings()
    observability.configure(settings)
    observability.instrument_httpx()

    async def on_startup(app: Litestar) -> None:
        asset_store = store or await build_asset_store(settings)
        app.state.asset_store = asset_store
        app.state.dispatch_table = build_dispatch_table(asset_store)

    async def on_shutdown(app: Litestar) -> None:
        asset_store = getattr(app.state, "asset_store", None)
        if asset_store is not None:
            await asset_store.close()

    app = Litestar(
        route_handlers=[OperationsController],
        on_startup=[on_startup],
        on_shutdown=[on_shutdown],
        debug=settings.debug,
    )
    app.state.principals = build_principals(settings.auth)
    return app
