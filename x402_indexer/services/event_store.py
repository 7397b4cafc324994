"""Event Store — idempotent append and canonical-order reads over chain_events.

Invariants:
    - record_event never raises on an existing (tx_hash, log_index): returns ALREADY_PRESENT
    - First write wins: payload and ordering metadata of an existing row are never touched
    - list_events is always ascending (block_number, transaction_index, log_index)
    - Rows leave this module as immutable core ChainEvent values

Design Decisions:
    - INSERT ... ON CONFLICT DO NOTHING (dialect insert) over SELECT-then-INSERT:
      one round trip, no race window between check and write
    - Caller owns the transaction (no commit here): ingest commits per chunk
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from x402_indexer.core.domain_types import RecordOutcome
from x402_indexer.core.events import ChainEvent, payload_from_dict, payload_to_dict
from x402_indexer.models.chain_event import ChainEvent as ChainEventRow

logger = logging.getLogger(__name__)

_CANONICAL_ORDER = (
    ChainEventRow.block_number.asc(),
    ChainEventRow.transaction_index.asc(),
    ChainEventRow.log_index.asc(),
)


def row_to_event(row: ChainEventRow) -> ChainEvent:
    return ChainEvent(
        workflow_id=row.workflow_id,
        event_type=row.event_type,
        payload=payload_from_dict(row.event_type, row.payload),
        block_number=int(row.block_number),
        transaction_index=int(row.transaction_index),
        log_index=int(row.log_index),
        tx_hash=row.tx_hash,
        block_timestamp=int(row.block_timestamp),
        block_hash=row.block_hash,
    )


class EventStore:
    """Append-only access to the chain event log."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(ChainEventRow)
        if dialect == "sqlite":
            return sqlite.insert(ChainEventRow)
        raise NotImplementedError(f"Unsupported database dialect: {dialect}")

    async def record_event(self, event: ChainEvent) -> RecordOutcome:
        """Insert event unless (tx_hash, log_index) already exists."""
        stmt = self._insert().values(
            workflow_id=event.workflow_id,
            event_type=event.event_type,
            payload=payload_to_dict(event.payload),
            block_number=event.block_number,
            transaction_index=event.transaction_index,
            log_index=event.log_index,
            tx_hash=event.tx_hash,
            block_hash=event.block_hash,
            block_timestamp=event.block_timestamp,
        ).on_conflict_do_nothing(index_elements=["tx_hash", "log_index"])
        result = await self.db.execute(stmt)

        if result.rowcount == 0:
            logger.debug(
                "Event already recorded (duplicate)",
                extra={"tx_hash": event.tx_hash, "workflow_id": event.workflow_id},
            )
            return RecordOutcome.ALREADY_PRESENT

        logger.info(
            "Event persisted",
            extra={
                "workflow_id": event.workflow_id,
                "event_type": event.event_type,
                "block_number": event.block_number,
                "tx_hash": event.tx_hash,
            },
        )
        return RecordOutcome.INSERTED

    async def list_events(
        self,
        workflow_id: str | None = None,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> list[ChainEvent]:
        """Events in canonical order, optionally filtered."""
        query = select(ChainEventRow)
        if workflow_id is not None:
            query = query.where(ChainEventRow.workflow_id == workflow_id)
        if from_block is not None:
            query = query.where(ChainEventRow.block_number >= from_block)
        if to_block is not None:
            query = query.where(ChainEventRow.block_number <= to_block)
        result = await self.db.execute(query.order_by(*_CANONICAL_ORDER))
        return [row_to_event(row) for row in result.scalars().all()]

    async def count(self) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(ChainEventRow),
        )
        return int(result.scalar_one())
