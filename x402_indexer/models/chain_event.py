"""ChainEvent ORM — the immutable, append-only log of contract events.

Invariants:
    - (tx_hash, log_index) is unique: the natural key and idempotency mechanism
    - Rows are never updated or deleted; replay only wipes workflow_states
    - (block_number, transaction_index, log_index) indexed for canonical-order scans
    - created_at is audit-only and never read by derivation

Design Decisions:
    - JSON column for payload: variant shape per event type, parsed into core
      payload dataclasses at the store boundary
    - BigInteger for block_number/block_timestamp: chain values exceed int32
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, DateTime, Index, Integer, JSON, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from x402_indexer.db.base import Base


class ChainEvent(Base):
    """One decoded contract log with full ordering metadata."""
    __tablename__ = "chain_events"
    __table_args__ = (
        UniqueConstraint(
            "tx_hash", "log_index", name="uq_chain_events_tx_hash_log_index",
        ),
        Index(
            "ix_chain_events_canonical_order",
            "block_number", "transaction_index", "log_index",
        ),
        Index("ix_chain_events_workflow_id", "workflow_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    workflow_id: Mapped[str] = mapped_column(String(66), nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transaction_index: Mapped[int] = mapped_column(Integer, nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    block_hash: Mapped[str] = mapped_column(
        String(66), nullable=False, default="",
    )
    block_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
