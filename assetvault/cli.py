"""CLI commands for assetvault."""

import asyncio
import base64
import json
import logging
import sys
from pathlib import Path

import click

from assetvault.access import Principal
from assetvault.config import clear_settings_cache, get_settings, set_config_path

# The CLI runs with operator rights on the configured store
OPERATOR = Principal(id="cli", roles=frozenset({"admin"}))

MEMORY_BACKEND = "memory"


def _run(operation, params: dict) -> dict:
    """Build a store from settings, dispatch one operation and close the store."""
    from assetvault.app_factory import build_asset_store
    from assetvault.dispatch import build_dispatch_table, dispatch

    settings = get_settings()
    if MEMORY_BACKEND in (settings.storage.backend, settings.metadata.backend):
        click.echo(
            "Warning: memory storage/metadata does not persist between commands; "
            "select local/github storage and sql metadata in the config file (-f).",
            err=True,
        )

    async def _go():
        store = await build_asset_store(settings)
        try:
            result = await dispatch(build_dispatch_table(store), operation, OPERATOR, params)
        finally:
            await store.close()
        return result.to_dict()

    return asyncio.run(_go())


def _emit(envelope: dict) -> None:
    click.echo(json.dumps(envelope, indent=2, default=str))
    if not envelope.get("success"):
        sys.exit(1)


def _parse_meta(pairs) -> dict:
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--meta")
        metadata[key] = value
    return metadata


@click.group()
@click.version_option(package_name="assetvault")
@click.option(
    "-f",
    "--config-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Use this YAML config file instead of app.yaml",
)
@click.option(
    "--log-level",
    default="warning",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def cli(config_file, log_level):
    """assetvault - versioned, access-controlled asset storage."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    if config_file is not None:
        set_config_path(config_file)
        clear_settings_cache()


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
def serve(host, port, reload, workers):
    """Run the HTTP operations server."""
    import signal

    from hypercorn.asyncio import serve as hypercorn_serve
    from hypercorn.config import Config

    config = Config()
    config.application_path = "assetvault.asgi:app"
    config.bind = [f"{host}:{port}"]
    config.workers = 1 if reload else workers
    config.include_server_header = False

    if reload:
        config.use_reloader = True
        from hypercorn.run import run
        run(config)
        return

    from assetvault.asgi import app

    shutdown_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_event.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)
    try:
        loop.run_until_complete(
            hypercorn_serve(app, config, shutdown_trigger=shutdown_event.wait)
        )
    finally:
        loop.close()


@cli.command()
@click.argument("source", type=click.File("rb"))
@click.option("--asset-id", default=None, help="Store as the next version of this asset")
@click.option("--fingerprint", default=None, help="Fingerprint of the latest version you last saw")
@click.option("--classification", default=None, help="Access classification (private, internal, public)")
@click.option("--message", default=None, help="Commit/audit message")
@click.option("--meta", multiple=True, help="Metadata KEY=VALUE (repeatable)")
def put(source, asset_id, fingerprint, classification, message, meta):
    """Store SOURCE (a file, or - for stdin) as an asset version."""
    params = {
        "content": base64.b64encode(source.read()).decode("ascii"),
        "contentEncoding": "base64",
        "metadata": _parse_meta(meta),
        "options": {
            "assetId": asset_id,
            "expectedFingerprint": fingerprint,
            "accessClassification": classification,
            "message": message,
        },
    }
    _emit(_run("store", params))


@cli.command()
@click.argument("asset_id")
@click.option("--version", "version_id", default=None, help="Version to fetch (default: latest)")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write content to this file instead of printing the envelope")
def get(asset_id, version_id, output):
    """Fetch an asset version."""
    envelope = _run("retrieve", {"assetId": asset_id, "versionId": version_id})
    if envelope.get("success") and output is not None:
        output.write_bytes(envelope["content"])
        click.echo(f"Wrote {len(envelope['content'])} bytes to {output}")
        return
    if envelope.get("success"):
        envelope["content"] = base64.b64encode(envelope["content"]).decode("ascii")
        envelope["contentEncoding"] = "base64"
    _emit(envelope)


@cli.command(name="ls")
@click.option("--limit", default=50, type=int, help="Page size")
@click.option("--offset", default=0, type=int, help="Page offset")
@click.option("--sort", "sort_field", default="assetId", help="Sort field")
@click.option("--desc", is_flag=True, help="Sort descending")
def list_assets(limit, offset, sort_field, desc):
    """List stored assets."""
    params = {
        "sort": {"field": sort_field, "order": "desc" if desc else "asc"},
        "pagination": {"offset": offset, "limit": limit},
    }
    _emit(_run("list", params))


@cli.command()
@click.argument("asset_id")
@click.confirmation_option(prompt="Delete every version and all metadata of this asset?")
def rm(asset_id):
    """Delete an asset with all of its versions."""
    _emit(_run("delete", {"assetId": asset_id}))


@cli.command()
def check():
    """Report assets whose content and metadata are out of step."""
    _emit(_run("check-consistency", {}))
