"""CLI entry point for namesync."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from namesync.config import load_config
from namesync.daemon import run_daemon, run_server
from namesync.errors import NameSyncError
from namesync.models.events import BLOCK_HASH_RE, batch_to_wire
from namesync.rpc.client import NameSyncClient
from namesync.storage.sqlite import SQLiteNameStore

log = logging.getLogger("namesync")


def _status_logger(status: str) -> None:
    log.info("namesync: %s", status)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """namesync - Namecoin to SQL database synchronization."""
    ctx.ensure_object(dict)
    cfg = load_config(config_path)
    cfg.status_update = _status_logger
    ctx.obj["config"] = cfg

    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Services ───────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the sync daemon."""
    cfg = ctx.obj["config"]
    click.echo(f"Starting namesync daemon (extractor: {cfg.extractor.rpc_url})")
    try:
        asyncio.run(run_daemon(cfg))
    except NameSyncError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Serve name_sync over JSON-RPC from a namecoind node."""
    cfg = ctx.obj["config"]
    click.echo(f"Starting name_sync server on {cfg.server.host}:{cfg.server.port}")
    asyncio.run(run_server(cfg))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show effective configuration."""
    cfg = ctx.obj["config"]
    click.echo(f"Extractor:    {cfg.extractor.rpc_url}")
    click.echo(f"Node:         {cfg.node.url}")
    click.echo(f"Listen:       {cfg.server.host}:{cfg.server.port}")
    click.echo(f"Start block:  {cfg.sync.start_block_hash}")
    click.echo(f"Batch size:   {cfg.sync.batch_size}")
    click.echo(f"Backoff:      {cfg.sync.initial_backoff}s x{cfg.sync.backoff_multiplier} "
               f"(max {cfg.sync.max_backoff}s, {cfg.sync.max_retries or 'unlimited'} retries)")
    click.echo(f"DB path:      {cfg.db_path}")
    click.echo(f"RPC auth:     {'***configured***' if cfg.extractor.rpc_user else '(not set)'}")


@cli.command()
@click.pass_context
def cursor(ctx: click.Context) -> None:
    """Show the persisted sync cursor."""
    cfg = ctx.obj["config"]

    async def _cursor():
        store = SQLiteNameStore(cfg.db_path)
        await store.initialize()
        try:
            record = await store.get_cursor_record()
            if record is None:
                click.echo(f"No cursor yet (will start at {cfg.sync.start_block_hash})")
                return
            click.echo(f"Block:    {record.block_hash}")
            click.echo(f"Height:   {record.height if record.height is not None else '?'}")
            click.echo(f"Updated:  {record.updated_at}")
            click.echo(f"Names:    {await store.count_names()}")
        finally:
            await store.close()

    asyncio.run(_cursor())


@cli.command("reset-cursor")
@click.option("--block", "block_hash", default=None, help="New cursor block hash (default: clear)")
@click.option("--height", type=int, default=None, help="Height of --block, for display")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def reset_cursor(ctx: click.Context, block_hash: str | None, height: int | None, yes: bool) -> None:
    """Move or clear the cursor, e.g. after a reorg invalidated it."""
    cfg = ctx.obj["config"]
    if block_hash is not None and not BLOCK_HASH_RE.fullmatch(block_hash):
        click.echo("Error: block hash must be 64 hex characters.", err=True)
        sys.exit(1)
    if not yes:
        target = block_hash or f"start block {cfg.sync.start_block_hash}"
        click.confirm(f"Reset cursor to {target}?", abort=True)

    async def _reset():
        store = SQLiteNameStore(cfg.db_path)
        await store.initialize()
        try:
            if block_hash is None:
                await store.clear_cursor()
                await store.log_activity("cursor_reset", "Cursor cleared")
                click.echo("Cursor cleared.")
            else:
                await store.persist_cursor(block_hash.lower(), height)
                await store.log_activity(
                    "cursor_reset", "Cursor set by operator", block_hash=block_hash, height=height,
                )
                click.echo(f"Cursor set to {block_hash.lower()}")
        finally:
            await store.close()

    asyncio.run(_reset())


@cli.command()
@click.argument("name", required=False)
@click.option("--expired", is_flag=True, help="Include expired names")
@click.pass_context
def names(ctx: click.Context, name: str | None, expired: bool) -> None:
    """List mirrored names, or show one NAME."""
    cfg = ctx.obj["config"]

    async def _names() -> bool:
        store = SQLiteNameStore(cfg.db_path)
        await store.initialize()
        try:
            if name is not None:
                record = await store.get_name(name.encode("utf-8", "surrogateescape"))
                if record is None:
                    click.echo(f"{name}: not found", err=True)
                    return False
                value = record.value.decode("utf-8", "replace") if record.value is not None else ""
                click.echo(value)
                return True

            records = await store.get_all_names(include_expired=expired)
            if not records:
                click.echo("No names.")
                return True
            for r in records:
                flag = " (expired)" if r.expired else ""
                value = r.value.decode("utf-8", "replace") if r.value is not None else ""
                click.echo(f"  {r.display_name}{flag}: {value[:60]}")
            return True
        finally:
            await store.close()

    if not asyncio.run(_names()):
        sys.exit(1)


@cli.command()
@click.argument("block_hash")
@click.option("-n", "--count", type=int, default=100, help="Approximate operation budget")
@click.option("--wait", is_flag=True, help="Long-poll if BLOCK_HASH is the tip")
@click.pass_context
def fetch(ctx: click.Context, block_hash: str, count: int, wait: bool) -> None:
    """Call name_sync once and print the events as JSON."""
    cfg = ctx.obj["config"]

    async def _fetch():
        client = NameSyncClient(cfg.extractor)
        try:
            return await client.sync(block_hash, count, wait)
        finally:
            await client.close()

    try:
        events = asyncio.run(_fetch())
    except NameSyncError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    for item in batch_to_wire(events):
        click.echo(json.dumps(item))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
