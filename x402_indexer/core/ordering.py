"""Ordering Validator — canonical (block, txIndex, logIndex) order checks.

Invariants:
    - For adjacent (prev, curr): block must not decrease; at equal block the
      transaction index must not decrease; at equal block and transaction the
      log index must strictly increase
    - A repeated (block, txIndex, logIndex) is a data-integrity violation, not a duplicate
    - Pure: no IO, input sequences are never mutated

Design Decisions:
    - first_violation returns the offending index so the fatal error can point at it
    - Comparison spelled out field by field (not tuple <) to mirror the rule literally
"""

from typing import Iterable, Sequence

from x402_indexer.core.domain_types import EventPosition
from x402_indexer.core.events import ChainEvent


def canonical_key(event: ChainEvent) -> EventPosition:
    return event.position


def _in_order(prev: ChainEvent, curr: ChainEvent) -> bool:
    if curr.block_number < prev.block_number:
        return False
    if curr.block_number > prev.block_number:
        return True
    if curr.transaction_index < prev.transaction_index:
        return False
    if curr.transaction_index > prev.transaction_index:
        return True
    return curr.log_index > prev.log_index


def first_violation(events: Sequence[ChainEvent]) -> int | None:
    """Index of the first element that breaks canonical order, or None."""
    for i in range(1, len(events)):
        if not _in_order(events[i - 1], events[i]):
            return i
    return None


def is_ordered(events: Sequence[ChainEvent]) -> bool:
    return first_violation(events) is None


def sort_canonical(events: Iterable[ChainEvent]) -> list[ChainEvent]:
    return sorted(events, key=canonical_key)
