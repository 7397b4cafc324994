"""Workflow Reducer — pure fold from chain events to derived workflow state.

Invariants:
    - reduce_workflow output depends only on (state, event): no clock, no settings, no IO
    - All temporal fields come from event.block_timestamp
    - Every known transition moves last_event_block/last_event_log_index to the event
    - Unknown event types leave state unchanged (logged as anomaly, never raised)
    - reduce_from_events([]) is None

Design Decisions:
    - Frozen dataclass + dataclasses.replace: each step returns a new state, the
      prior one is never mutated (safe to keep as the incremental "latest known")
    - Anomaly logging is the only side effect and never influences the result
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from x402_indexer.core.domain_types import EventPosition, EventType, WorkflowStatus
from x402_indexer.core.events import (
    ChainEvent,
    DecisionRecordedPayload,
    WorkflowFailedPayload,
    WorkflowStartedPayload,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowState:
    """Derived state for one workflow — one row in workflow_states."""
    workflow_id: str
    status: WorkflowStatus
    initiator: str | None
    started_at: int
    completed_at: int | None
    failure_reason: str | None
    last_event_block: int
    last_event_log_index: int

    @property
    def position(self) -> tuple[int, int]:
        return (self.last_event_block, self.last_event_log_index)

    @property
    def is_terminal(self) -> bool:
        return self.status is not WorkflowStatus.RUNNING


def initial_state(event: ChainEvent) -> WorkflowState:
    """State for a workflow seen for the first time at event."""
    return WorkflowState(
        workflow_id=event.workflow_id,
        status=WorkflowStatus.RUNNING,
        initiator=None,
        started_at=event.block_timestamp,
        completed_at=None,
        failure_reason=None,
        last_event_block=event.block_number,
        last_event_log_index=event.log_index,
    )


def reduce_workflow(state: WorkflowState | None, event: ChainEvent) -> WorkflowState:
    """Apply one event to the workflow state. Pure."""
    if state is None:
        state = initial_state(event)

    event_type = event.known_type
    if event_type is None:
        logger.warning(
            f"Unknown event type in reducer: {event.event_type}",
            extra={
                "workflow_id": event.workflow_id,
                "event_type": event.event_type,
                "block_number": event.block_number,
                "tx_hash": event.tx_hash,
            },
        )
        return state

    moved = replace(
        state,
        last_event_block=event.block_number,
        last_event_log_index=event.log_index,
    )
    payload = event.payload
    ts = event.block_timestamp

    if event_type is EventType.WORKFLOW_STARTED:
        initiator = (
            payload.initiator
            if isinstance(payload, WorkflowStartedPayload) else state.initiator
        )
        return replace(
            moved, status=WorkflowStatus.RUNNING,
            initiator=initiator, started_at=ts,
        )

    if event_type is EventType.DECISION_RECORDED:
        approved = isinstance(payload, DecisionRecordedPayload) and payload.approved
        if approved:
            # awaiting settlement
            return replace(moved, status=WorkflowStatus.RUNNING)
        reason = payload.reason if isinstance(payload, DecisionRecordedPayload) else ""
        return replace(
            moved, status=WorkflowStatus.REJECTED,
            completed_at=ts, failure_reason=reason,
        )

    if event_type is EventType.PAYMENT_EXECUTED:
        # awaiting completion
        return replace(moved, status=WorkflowStatus.RUNNING)

    if event_type is EventType.WORKFLOW_COMPLETED:
        return replace(moved, status=WorkflowStatus.COMPLETED, completed_at=ts)

    reason = payload.reason if isinstance(payload, WorkflowFailedPayload) else ""
    return replace(
        moved, status=WorkflowStatus.FAILED,
        completed_at=ts, failure_reason=reason,
    )


def reduce_from_events(events: Iterable[ChainEvent]) -> WorkflowState | None:
    """Fold reduce_workflow left-to-right over canonically sorted events."""
    state: WorkflowState | None = None
    for event in events:
        state = reduce_workflow(state, event)
    return state


def is_after(event_position: EventPosition, state: WorkflowState) -> bool:
    """True when the event is provably later than everything folded into state.

    State keeps (block, logIndex) but not the transaction index, and logIndex
    restarts per transaction, so an event in the same block cannot be placed
    and counts as not after.
    """
    return event_position.block_number > state.last_event_block
