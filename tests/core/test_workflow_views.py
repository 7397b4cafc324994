"""Workflow Views — pure shaping for the query layer.

Tests:
    - Stats: RUNNING + COMPLETED + REJECTED -> total 3, failed 1
    - Missing statuses count as zero
    - Timeline split keeps canonical order
"""

from x402_indexer.core.domain_types import EventType, WorkflowStatus
from x402_indexer.core.reducer import reduce_workflow
from x402_indexer.core.workflow_views import compute_stats, split_timeline, state_to_dict

from tests.factories import make_event


def test_rejected_counts_as_failed():
    stats = compute_stats({"RUNNING": 1, "COMPLETED": 1, "REJECTED": 1})
    assert stats["total"] == 3
    assert stats["running"] == 1
    assert stats["completed"] == 1
    assert stats["failed"] == 1
    assert stats["by_status"]["REJECTED"] == 1


def test_failed_and_rejected_are_summed():
    stats = compute_stats({"FAILED": 2, "REJECTED": 3})
    assert stats["failed"] == 5
    assert stats["total"] == 5


def test_empty_counts():
    stats = compute_stats({})
    assert stats["total"] == 0
    assert set(stats["by_status"]) == {s.value for s in WorkflowStatus}


def test_split_timeline_filters_decisions_and_settlements():
    events = [
        make_event(EventType.WORKFLOW_STARTED, 10),
        make_event(EventType.DECISION_RECORDED, 11),
        make_event(EventType.PAYMENT_EXECUTED, 12),
        make_event(EventType.PAYMENT_EXECUTED, 12, log_index=1),
        make_event(EventType.WORKFLOW_COMPLETED, 13),
    ]
    views = split_timeline(events)
    assert [e["block_number"] for e in views["timeline"]] == [10, 11, 12, 12, 13]
    assert len(views["decisions"]) == 1
    assert [e["log_index"] for e in views["settlements"]] == [0, 1]
    assert views["settlements"][0]["payload"]["amount"] == "1000"


def test_state_to_dict_uses_status_value():
    state = reduce_workflow(None, make_event(EventType.WORKFLOW_STARTED, 10))
    data = state_to_dict(state)
    assert data["status"] == "RUNNING"
    assert data["last_event_block"] == 10
