"""Replay Plan — pure rebuild of every workflow state from the full event log.

Invariants:
    - Ordering is validated BEFORE anything is grouped or reduced
    - An ordering violation raises EventOrderingError; no partial result is returned
    - Groups keep canonical order internally and first-seen order across groups
    - Same input sequence -> identical output mapping (no clock, no randomness)

Design Decisions:
    - Split from services/replay.py: the shell does load/clear/write, this module
      decides what to write (ADR: functional core, imperative shell)
"""

from typing import Sequence

from x402_indexer.core.errors import EventOrderingError, ErrorContext
from x402_indexer.core.events import ChainEvent
from x402_indexer.core.ordering import first_violation
from x402_indexer.core.reducer import WorkflowState, reduce_from_events


def validate_canonical_order(events: Sequence[ChainEvent]) -> None:
    """Raise EventOrderingError if events are not canonically sorted."""
    index = first_violation(events)
    if index is None:
        return
    offending = events[index]
    raise EventOrderingError(
        index,
        context=ErrorContext(
            workflow_id=offending.workflow_id,
            block_number=offending.block_number,
            tx_hash=offending.tx_hash,
            debug_info={
                "previous": list(events[index - 1].position),
                "current": list(offending.position),
            },
        ),
    )


def group_by_workflow(events: Sequence[ChainEvent]) -> dict[str, list[ChainEvent]]:
    groups: dict[str, list[ChainEvent]] = {}
    for event in events:
        groups.setdefault(event.workflow_id, []).append(event)
    return groups


def rebuild_states(events: Sequence[ChainEvent]) -> dict[str, WorkflowState]:
    """Validate, group, and fold. Raises EventOrderingError on corrupt input."""
    validate_canonical_order(events)
    states: dict[str, WorkflowState] = {}
    for workflow_id, group in group_by_workflow(events).items():
        state = reduce_from_events(group)
        if state is not None:
            states[workflow_id] = state
    return states


def max_block(events: Sequence[ChainEvent]) -> int | None:
    """Highest block number in a canonically sorted sequence (None if empty)."""
    return events[-1].block_number if events else None
