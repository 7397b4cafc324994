"""Workflow Views — pure shaping of derived state and timelines for the query layer.

Invariants:
    - Stats: total = sum of all statuses; REJECTED counted under "failed"
    - Timeline entries keep canonical order; decisions/settlements are order-preserving filters
    - All outputs are JSON-safe dicts (str enums resolved to values)

Design Decisions:
    - Kept in core (not in routes): the query service and the CLI share the same shapes
"""

from typing import Iterable, Mapping

from x402_indexer.core.domain_types import EventType, WorkflowStatus
from x402_indexer.core.events import ChainEvent, payload_to_dict
from x402_indexer.core.reducer import WorkflowState


def state_to_dict(state: WorkflowState) -> dict:
    return {
        "workflow_id": state.workflow_id,
        "status": state.status.value,
        "initiator": state.initiator,
        "started_at": state.started_at,
        "completed_at": state.completed_at,
        "failure_reason": state.failure_reason,
        "last_event_block": state.last_event_block,
        "last_event_log_index": state.last_event_log_index,
    }


def timeline_entry(event: ChainEvent) -> dict:
    return {
        "event_type": event.event_type,
        "block_number": event.block_number,
        "transaction_index": event.transaction_index,
        "log_index": event.log_index,
        "tx_hash": event.tx_hash,
        "block_timestamp": event.block_timestamp,
        "payload": payload_to_dict(event.payload),
    }


def split_timeline(events: Iterable[ChainEvent]) -> dict[str, list[dict]]:
    """Full timeline plus its decisions and settlements views."""
    timeline = [timeline_entry(e) for e in events]
    return {
        "timeline": timeline,
        "decisions": [
            e for e in timeline
            if e["event_type"] == EventType.DECISION_RECORDED.value
        ],
        "settlements": [
            e for e in timeline
            if e["event_type"] == EventType.PAYMENT_EXECUTED.value
        ],
    }


def compute_stats(status_counts: Mapping[str, int]) -> dict:
    """Aggregate per-status row counts into dashboard stats. Pure, no IO."""
    by_status = {s.value: int(status_counts.get(s.value, 0)) for s in WorkflowStatus}
    return {
        "total": sum(by_status.values()),
        "running": by_status[WorkflowStatus.RUNNING.value],
        "completed": by_status[WorkflowStatus.COMPLETED.value],
        "failed": (
            by_status[WorkflowStatus.FAILED.value]
            + by_status[WorkflowStatus.REJECTED.value]
        ),
        "by_status": by_status,
    }
