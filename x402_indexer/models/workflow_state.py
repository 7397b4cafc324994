"""WorkflowState ORM — derived, rebuildable state, one row per workflow.

Invariants:
    - Row == fold(reducer, all chain_events with this workflow_id, canonical order)
    - Written only by the Replay Engine and the Ingestor
    - No wall-clock columns: two replays over the same log produce identical rows

Design Decisions:
    - status as String(16) over a DB enum: portable to SQLite test engine,
      validated by WorkflowStatus at the store boundary
    - initiator nullable: a workflow first seen through a non-start event has none yet
"""

from sqlalchemy import BigInteger, Integer, String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from x402_indexer.db.base import Base


class WorkflowState(Base):
    """Current derived state of one workflow."""
    __tablename__ = "workflow_states"
    __table_args__ = (
        Index("ix_workflow_states_started_at", "started_at"),
        Index("ix_workflow_states_status", "status"),
    )

    workflow_id: Mapped[str] = mapped_column(String(66), primary_key=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    initiator: Mapped[str | None] = mapped_column(String(42), nullable=True)
    started_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_event_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_event_log_index: Mapped[int] = mapped_column(Integer, nullable=False)
