"""SystemState ORM — singleton ingestion checkpoint (id = 1).

Invariants:
    - Exactly one row, created at first boot
    - last_processed_block only increases, except via explicit operator reset

Design Decisions:
    - Single-row table over a key/value store: typed columns, trivial upsert
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from x402_indexer.db.base import Base

SYSTEM_STATE_ID = 1


class SystemState(Base):
    """Processed-block checkpoint and confirmation depth."""
    __tablename__ = "system_state"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, default=SYSTEM_STATE_ID,
    )
    last_processed_block: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0,
    )
    confirmation_blocks: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
