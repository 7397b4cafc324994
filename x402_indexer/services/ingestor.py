"""Ingestor — confirmed-block polling loop feeding the Event Store and the reducer.

Invariants:
    - Only blocks with >= confirmation_blocks confirmations are ever queried
    - Cycles never overlap: the next wait starts only after the current cycle ends
    - Per chunk: all RPC reads first, then one DB transaction (persist -> fold)
    - Checkpoint moves to the window's upper bound once, after every chunk committed
    - Events applied in canonical order within a chunk, whatever the signature fetch order
    - Checkpoint reaches the window's upper bound even when no events were found
    - ChainRPCError aborts the cycle with the checkpoint untouched; committed chunks
      are re-read next cycle and dropped as duplicates
    - Incremental fold == one reducer step only for a strictly later block; anything
      else rebuilds that workflow from the Event Store

Design Decisions:
    - Explicit poll loop over provider subscriptions: bounded, ordered, reorg-gated
    - IngestorConfig passed in (no settings reads): the loop is testable with a fake chain
    - Receipt/block lookups memoized per cycle: many logs share a tx or a block
    - Stop request lets the in-flight cycle finish (no task cancellation)
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from x402_indexer.core.block_ranges import (
    BlockWindow, chunk_range, clamp_window, plan_poll_window,
)
from x402_indexer.core.domain_types import RecordOutcome
from x402_indexer.core.errors import ChainRPCError, IndexerError
from x402_indexer.core.event_abi import EVENT_SIGNATURES, decode_log
from x402_indexer.core.events import ChainEvent
from x402_indexer.core.ordering import sort_canonical
from x402_indexer.core.reducer import is_after, reduce_workflow
from x402_indexer.core.repository_protocols import ChainClient
from x402_indexer.services.event_store import EventStore
from x402_indexer.services.replay import ReplayEngine
from x402_indexer.services.system_state_store import SystemStateStore
from x402_indexer.services.workflow_state_store import WorkflowStateStore

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass(frozen=True)
class IngestorConfig:
    contract_address: str
    start_block: int = 0
    confirmation_blocks: int = 3
    chunk_size: int = 2000
    poll_interval_seconds: float = 12.0


@dataclass
class CycleResult:
    head: int
    skipped: bool = False
    from_block: int | None = None
    to_block: int | None = None
    chunks: int = 0
    events_seen: int = 0
    events_inserted: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _CycleCache:
    receipts: dict[str, dict] = field(default_factory=dict)
    blocks: dict[int, dict] = field(default_factory=dict)


class Ingestor:
    """Non-overlapping poller over confirmed block ranges."""

    def __init__(
        self,
        session_factory: SessionFactory,
        chain: ChainClient,
        config: IngestorConfig,
    ):
        self.session_factory = session_factory
        self.chain = chain
        self.config = config
        self._running = False
        self._cycles_run = 0
        self._last_cycle: CycleResult | None = None
        self._last_error: str | None = None
        self._last_success_at: datetime | None = None

    # ─── Loop ────────────────────────────────────────────────────

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Run cycles until stop_event is set. Each cycle finishes before the next wait."""
        self._running = True
        logger.info(
            "Ingestor started",
            extra={"block_number": self.config.start_block},
        )
        try:
            while not stop_event.is_set():
                await self._guarded_cycle()
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.config.poll_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info("Ingestor stopped")

    async def _guarded_cycle(self) -> None:
        try:
            await self.run_cycle()
        except ChainRPCError as e:
            self._last_error = e.message
            logger.warning(
                f"Poll cycle aborted, retrying next cycle: {e.message}",
                extra={"error_code": e.code},
            )
        except IndexerError as e:
            self._last_error = e.message
            logger.error(
                f"Poll cycle failed: {e.message}", extra={"error_code": e.code},
            )
        except Exception as e:
            self._last_error = str(e)
            logger.error(f"Unexpected poll cycle failure: {e}", exc_info=True)

    # ─── Cycle ───────────────────────────────────────────────────

    async def run_cycle(self) -> CycleResult:
        """One poll: plan the confirmed window, ingest it chunk by chunk."""
        head = await self.chain.get_head_block_number()
        async with self.session_factory() as db:
            checkpoint = await SystemStateStore(db).get()
        last_processed = checkpoint.last_processed_block if checkpoint else 0

        window = plan_poll_window(
            last_processed, self.config.start_block, head,
            self.config.confirmation_blocks,
        )
        if window is None:
            logger.debug(
                "No new confirmed blocks, skipping cycle",
                extra={"block_number": head},
            )
            return self._finish(CycleResult(head=head, skipped=True))

        result = await self._ingest_window(window, head, advance_checkpoint=True)
        return self._finish(result)

    async def backfill(self, from_block: int, to_block: int) -> CycleResult:
        """One-shot ingest of an explicit range, clamped to confirmed blocks."""
        head = await self.chain.get_head_block_number()
        window = clamp_window(
            BlockWindow(from_block, to_block), head, self.config.confirmation_blocks,
        )
        if window is None:
            logger.info("Backfill range has no confirmed blocks")
            return CycleResult(head=head, skipped=True)

        async with self.session_factory() as db:
            checkpoint = await SystemStateStore(db).get()
        last_processed = checkpoint.last_processed_block if checkpoint else 0
        # a gap below the window must not be skipped by the checkpoint
        contiguous = window.from_block <= last_processed + 1
        return await self._ingest_window(window, head, advance_checkpoint=contiguous)

    async def _ingest_window(
        self, window: BlockWindow, head: int, advance_checkpoint: bool,
    ) -> CycleResult:
        result = CycleResult(
            head=head, from_block=window.from_block, to_block=window.to_block,
        )
        cache = _CycleCache()
        for chunk in chunk_range(window.from_block, window.to_block, self.config.chunk_size):
            events = await self._fetch_chunk(chunk, cache)
            inserted = await self._persist_chunk(events)
            result.chunks += 1
            result.events_seen += len(events)
            result.events_inserted += inserted
            logger.info(
                f"Chunk ingested: {inserted}/{len(events)} new events",
                extra={"from_block": chunk.from_block, "to_block": chunk.to_block},
            )
        if advance_checkpoint:
            async with self.session_factory() as db:
                await SystemStateStore(db).advance_checkpoint(window.to_block)
                await db.commit()
        return result

    async def _fetch_chunk(
        self, chunk: BlockWindow, cache: _CycleCache,
    ) -> list[ChainEvent]:
        """All RPC reads for a chunk. Returns canonically sorted events."""
        events: list[ChainEvent] = []
        for sig in EVENT_SIGNATURES:
            logs = await self.chain.get_logs(
                self.config.contract_address, [sig.topic],
                chunk.from_block, chunk.to_block,
            )
            for log in logs:
                if log.block_number > chunk.to_block:
                    logger.warning(
                        "Node returned log beyond requested range, ignoring",
                        extra={"block_number": log.block_number, "tx_hash": log.tx_hash},
                    )
                    continue
                try:
                    decoded = decode_log(log)
                except ValueError as e:
                    logger.warning(
                        f"Skipping malformed log: {e}",
                        extra={"block_number": log.block_number, "tx_hash": log.tx_hash},
                    )
                    continue
                if decoded is None:
                    continue
                receipt = await self._receipt(log.tx_hash, cache)
                block = await self._block(log.block_number, cache)
                events.append(ChainEvent(
                    workflow_id=decoded.workflow_id,
                    event_type=decoded.event_type.value,
                    payload=decoded.payload,
                    block_number=log.block_number,
                    transaction_index=int(receipt["transactionIndex"]),
                    log_index=log.log_index,
                    tx_hash=log.tx_hash,
                    block_timestamp=int(block["timestamp"]),
                    block_hash=log.block_hash or block.get("hash", ""),
                ))
        return sort_canonical(events)

    async def _receipt(self, tx_hash: str, cache: _CycleCache) -> dict:
        if tx_hash not in cache.receipts:
            cache.receipts[tx_hash] = await self.chain.get_transaction_receipt(tx_hash)
        return cache.receipts[tx_hash]

    async def _block(self, number: int, cache: _CycleCache) -> dict:
        if number not in cache.blocks:
            cache.blocks[number] = await self.chain.get_block(number)
        return cache.blocks[number]

    async def _persist_chunk(self, events: list[ChainEvent]) -> int:
        """Persist-then-reduce every event. One commit."""
        inserted = 0
        async with self.session_factory() as db:
            for event in events:
                if await self._apply(db, event) is RecordOutcome.INSERTED:
                    inserted += 1
            await db.commit()
        return inserted

    async def _apply(self, db: AsyncSession, event: ChainEvent) -> RecordOutcome:
        outcome = await EventStore(db).record_event(event)
        if outcome is RecordOutcome.ALREADY_PRESENT:
            return outcome

        states = WorkflowStateStore(db)
        prior = await states.get(event.workflow_id)
        if prior is not None and not is_after(event.position, prior):
            # same block: order vs the folded state is unknown without txIndex
            same_block = event.block_number == prior.last_event_block
            logger.log(
                logging.DEBUG if same_block else logging.WARNING,
                "Event not after derived state, rebuilding workflow",
                extra={
                    "workflow_id": event.workflow_id,
                    "block_number": event.block_number,
                    "tx_hash": event.tx_hash,
                },
            )
            await ReplayEngine(db).replay_workflow(event.workflow_id)
            return outcome

        new_state = reduce_workflow(prior, event)
        await states.upsert(new_state)
        logger.info(
            f"Workflow state updated: {new_state.status.value}",
            extra={"workflow_id": event.workflow_id, "event_type": event.event_type},
        )
        return outcome

    # ─── Status ──────────────────────────────────────────────────

    def _finish(self, result: CycleResult) -> CycleResult:
        self._cycles_run += 1
        self._last_cycle = result
        self._last_error = None
        self._last_success_at = datetime.now(timezone.utc)
        return result

    def status(self) -> dict:
        return {
            "running": self._running,
            "cycles_run": self._cycles_run,
            "last_cycle": self._last_cycle.to_dict() if self._last_cycle else None,
            "last_error": self._last_error,
            "last_success_at": (
                self._last_success_at.isoformat() if self._last_success_at else None
            ),
            "contract_address": self.config.contract_address,
            "confirmation_blocks": self.config.confirmation_blocks,
        }
