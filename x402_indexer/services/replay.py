"""Replay Engine — rebuilds all derived workflow state from the immutable event log.

Invariants:
    - Steps strictly ordered: load -> validate -> group/fold -> clear -> upsert -> checkpoint
    - Ordering violation aborts BEFORE the clear: workflow_states left untouched
    - Clear, upserts and checkpoint advance commit in ONE transaction (atomic swap)
    - Same event log -> identical workflow_states rows on every run
    - Checkpoint advance is monotonic and skipped when the log is empty

Design Decisions:
    - Pure rebuild lives in core/replay_plan.py; this module is only load/write
    - Runs as a startup barrier from the app lifespan (and from the CLI), never in background
    - duration_ms is reporting only, never persisted into derived state
"""

import logging
import time
from dataclasses import dataclass, asdict

from sqlalchemy.ext.asyncio import AsyncSession

from x402_indexer.core.errors import IndexerError
from x402_indexer.core.reducer import WorkflowState, reduce_from_events
from x402_indexer.core.replay_plan import (
    max_block, rebuild_states, validate_canonical_order,
)
from x402_indexer.services.event_store import EventStore
from x402_indexer.services.system_state_store import SystemStateStore
from x402_indexer.services.workflow_state_store import WorkflowStateStore

logger = logging.getLogger(__name__)

PROGRESS_LOG_EVERY = 100


@dataclass(frozen=True)
class ReplayStats:
    events_processed: int
    workflows_rebuilt: int
    duration_ms: int

    def to_dict(self) -> dict:
        return asdict(self)


class ReplayEngine:
    """Full and single-workflow replay over one DB session."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventStore(db)
        self.states = WorkflowStateStore(db)
        self.system = SystemStateStore(db)

    async def replay_all(self) -> ReplayStats:
        """Discard derived state and rebuild it solely from chain_events."""
        started = time.monotonic()
        logger.info("Starting event replay")
        try:
            events = await self.events.list_events()
            logger.info(f"Fetched {len(events)} events for replay")

            rebuilt = rebuild_states(events)
            logger.info(f"Rebuilding {len(rebuilt)} workflows")

            cleared = await self.states.clear_all()
            logger.debug(f"Cleared {cleared} derived workflow rows")

            for count, state in enumerate(rebuilt.values(), start=1):
                await self.states.upsert(state)
                if count % PROGRESS_LOG_EVERY == 0:
                    logger.info(f"Rebuilt {count}/{len(rebuilt)} workflows")

            last_block = max_block(events)
            if last_block is not None:
                await self.system.advance_checkpoint(last_block)

            await self.db.commit()
        except IndexerError as e:
            await self.db.rollback()
            logger.error(
                f"Event replay failed: {e.message}",
                extra={"error_code": e.code},
            )
            raise

        stats = ReplayStats(
            events_processed=len(events),
            workflows_rebuilt=len(rebuilt),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info("Event replay complete", extra={"duration_ms": stats.duration_ms})
        return stats

    async def replay_workflow(self, workflow_id: str) -> WorkflowState | None:
        """Rebuild one workflow from its stored events. Caller owns the commit."""
        events = await self.events.list_events(workflow_id=workflow_id)
        if not events:
            logger.warning(
                "No events found for workflow", extra={"workflow_id": workflow_id},
            )
            return None

        validate_canonical_order(events)
        state = reduce_from_events(events)
        if state is not None:
            await self.states.upsert(state)
            logger.info(
                f"Workflow replayed: {state.status.value}",
                extra={"workflow_id": workflow_id},
            )
        return state
