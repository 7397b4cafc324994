"""Operator CLI — one-shot replay, backfill, progress and checkpoint reset.

Invariants:
    - reset-checkpoint is the only path that may lower last_processed_block
    - backfill replays derived state first (same startup barrier as the API)
    - IndexerError -> message on stderr, exit code 1 (no traceback)
"""

import asyncio
import json
from typing import Awaitable, Callable, TypeVar

import click

from x402_indexer.bootstrap import (
    build_chain_client, build_ingestor, prepare_database, verify_chain,
)
from x402_indexer.config import get_settings
from x402_indexer.core.errors import IndexerError
from x402_indexer.infrastructure.database import DatabaseSessionManager, init_db
from x402_indexer.infrastructure.observability import setup_logging
from x402_indexer.services.replay import ReplayEngine
from x402_indexer.services.system_state_store import SystemStateStore
from x402_indexer.services.workflow_queries import WorkflowQueries

T = TypeVar("T")


def _run(work: Callable[[DatabaseSessionManager], Awaitable[T]]) -> T:
    """Run an async command against a fresh DB manager, then dispose it."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    async def main() -> T:
        manager = init_db(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        try:
            return await work(manager)
        finally:
            await manager.dispose()

    try:
        return asyncio.run(main())
    except IndexerError as e:
        click.echo(f"✗ {e.code}: {e.message}", err=True)
        raise SystemExit(1)


def _echo_json(data: dict) -> None:
    click.echo(json.dumps(data, indent=2))


@click.group()
def cli():
    """x402 workflow indexer CLI."""
    pass


@cli.command()
def replay():
    """Rebuild all derived workflow state from the event log."""

    async def work(manager: DatabaseSessionManager):
        async with manager.session() as db:
            await SystemStateStore(db).ensure_initialized(
                get_settings().confirmation_blocks,
            )
            await db.commit()
        async with manager.session() as db:
            return await ReplayEngine(db).replay_all()

    stats = _run(work)
    click.echo("✓ Replay complete.")
    _echo_json(stats.to_dict())


@cli.command()
@click.option("--from-block", type=int, required=True)
@click.option("--to-block", type=int, required=True)
def backfill(from_block: int, to_block: int):
    """Ingest an explicit block range (clamped to confirmed blocks)."""
    if from_block > to_block:
        raise click.BadParameter("--from-block must be <= --to-block")
    settings = get_settings()

    async def work(manager: DatabaseSessionManager):
        await prepare_database(manager, settings)
        chain = build_chain_client(settings)
        await verify_chain(chain, settings)
        return await build_ingestor(manager, chain, settings).backfill(
            from_block, to_block,
        )

    result = _run(work)
    if result.skipped:
        click.echo("No confirmed blocks in range.")
    else:
        click.echo("✓ Backfill complete.")
    _echo_json(result.to_dict())


@cli.command()
def progress():
    """Show checkpoint and event/workflow totals."""

    async def work(manager: DatabaseSessionManager):
        async with manager.session() as db:
            return await WorkflowQueries(db).get_replay_progress()

    _echo_json(_run(work))


@cli.command("reset-checkpoint")
@click.option("--block", type=click.IntRange(min=0), required=True)
@click.confirmation_option(prompt="Reset the ingestion checkpoint?")
def reset_checkpoint(block: int):
    """Set last_processed_block explicitly (may move it backwards)."""

    async def work(manager: DatabaseSessionManager):
        async with manager.session() as db:
            store = SystemStateStore(db)
            await store.ensure_initialized(get_settings().confirmation_blocks)
            stored = await store.reset_checkpoint(block)
            await db.commit()
            return stored

    click.echo(f"✓ Checkpoint set to block {_run(work)}.")


@cli.command()
@click.option("--host", default="0.0.0.0")
@click.option("--port", type=int, default=8000)
def serve(host: str, port: int):
    """Run the API with the ingestor (uvicorn)."""
    import uvicorn

    uvicorn.run("x402_indexer.main:app", host=host, port=port)


if __name__ == "__main__":
    cli()
