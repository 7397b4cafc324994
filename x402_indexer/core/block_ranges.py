"""Block Range Planning — confirmation gate and chunking for the poll cycle.

Invariants:
    - A block is eligible only when head - block >= confirmation_blocks
    - plan_poll_window returns None when lower > safe upper bound (nothing new and confirmed)
    - chunk_range covers [lower, upper] exactly, contiguous, no overlap, each <= size blocks

Design Decisions:
    - last_processed == 0 means "unset": fall back to the configured start block
    - Pure functions over a planner class: the Ingestor owns the loop, this owns the math
"""

from typing import NamedTuple


class BlockWindow(NamedTuple):
    """Inclusive block range."""
    from_block: int
    to_block: int

    @property
    def size(self) -> int:
        return self.to_block - self.from_block + 1


def safe_upper_bound(head: int, confirmation_blocks: int) -> int:
    """Highest block with at least confirmation_blocks confirmations."""
    return head - confirmation_blocks


def plan_poll_window(
    last_processed: int, start_block: int, head: int, confirmation_blocks: int,
) -> BlockWindow | None:
    """Next [lower, upper] range to ingest, or None if nothing is confirmed yet."""
    lower = last_processed + 1 if last_processed > 0 else start_block
    lower = max(lower, start_block, 0)
    upper = safe_upper_bound(head, confirmation_blocks)
    if lower > upper:
        return None
    return BlockWindow(lower, upper)


def clamp_window(
    window: BlockWindow, head: int, confirmation_blocks: int,
) -> BlockWindow | None:
    """Restrict an explicit (backfill) window to confirmed blocks."""
    upper = min(window.to_block, safe_upper_bound(head, confirmation_blocks))
    lower = max(window.from_block, 0)
    if lower > upper:
        return None
    return BlockWindow(lower, upper)


def chunk_range(lower: int, upper: int, size: int) -> list[BlockWindow]:
    """Partition [lower, upper] into consecutive windows of at most size blocks."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    chunks: list[BlockWindow] = []
    start = lower
    while start <= upper:
        end = min(start + size - 1, upper)
        chunks.append(BlockWindow(start, end))
        start = end + 1
    return chunks
