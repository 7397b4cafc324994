"""System State Store — the singleton ingestion checkpoint.

Invariants:
    - ensure_initialized creates row id=1 once; later calls never overwrite it
    - advance_checkpoint is monotonic: a lower block is a no-op
    - reset_checkpoint is the ONLY path that may lower last_processed_block
    - Caller owns the transaction (no commit here)
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from x402_indexer.models.system_state import SystemState, SYSTEM_STATE_ID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Checkpoint:
    last_processed_block: int
    confirmation_blocks: int


class SystemStateStore:
    """Read/advance the processed-block checkpoint."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _row(self) -> SystemState | None:
        return await self.db.get(SystemState, SYSTEM_STATE_ID)

    async def ensure_initialized(self, confirmation_blocks: int) -> Checkpoint:
        row = await self._row()
        if row is None:
            row = SystemState(
                id=SYSTEM_STATE_ID,
                last_processed_block=0,
                confirmation_blocks=confirmation_blocks,
            )
            self.db.add(row)
            await self.db.flush()
            logger.info("System state initialized")
        elif row.confirmation_blocks != confirmation_blocks:
            logger.info(
                f"Confirmation depth changed {row.confirmation_blocks} -> "
                f"{confirmation_blocks}",
            )
            row.confirmation_blocks = confirmation_blocks
            await self.db.flush()
        return Checkpoint(int(row.last_processed_block), int(row.confirmation_blocks))

    async def get(self) -> Checkpoint | None:
        row = await self._row()
        if row is None:
            return None
        return Checkpoint(int(row.last_processed_block), int(row.confirmation_blocks))

    async def advance_checkpoint(self, block: int) -> int:
        """Move last_processed_block forward to block. Returns the stored value."""
        row = await self._row()
        if row is None:
            raise RuntimeError("System state not initialized")
        if block > row.last_processed_block:
            row.last_processed_block = block
            await self.db.flush()
        return int(row.last_processed_block)

    async def reset_checkpoint(self, block: int) -> int:
        """Operator reset — sets last_processed_block unconditionally."""
        row = await self._row()
        if row is None:
            raise RuntimeError("System state not initialized")
        logger.warning(
            f"Checkpoint reset {row.last_processed_block} -> {block}",
            extra={"block_number": block},
        )
        row.last_processed_block = block
        await self.db.flush()
        return block
